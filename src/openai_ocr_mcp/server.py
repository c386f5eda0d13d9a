"""
OCR MCP Server — Entry Point

Builds the server context, registers the tools and starts the JSON-RPC
listener on stdio. Diagnostics go to stderr; stdout carries only protocol
messages.

Tools (2):
  extract_text_from_image — OCR text (and analysis) from a local image
  append_analysis         — append analysis to an OCR text file

Notifications:
  notifications/llm_response — append client analysis to the last output file
"""

from __future__ import annotations

import argparse
import dataclasses
import functools
import logging
import os
import sys
from types import TracebackType

from .capabilities import CapabilityRegistry
from .config import Settings, mask_key
from .context import ServerContext
from .mcp_base import MCPServer
from .notifications import handle_llm_response
from .tools import AppendAnalysis, ExtractTextFromImage
from .vision_client import VisionClient

logger = logging.getLogger(__name__)

SERVER_NAME = "openai-ocr-service"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSION = "2024-11-05"

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


# ─── Server Setup ────────────────────────────────────────────────────────────


def build_server(context: ServerContext) -> MCPServer:
    """Wire the tools and notification handlers around ``context``."""
    registry = CapabilityRegistry([ExtractTextFromImage(context), AppendAnalysis(context)])
    return MCPServer(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        protocol_version=PROTOCOL_VERSION,
        context=context,
        registry=registry,
        notification_handlers={
            "notifications/llm_response": functools.partial(handle_llm_response, context),
        },
    )


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    logger.critical("UNCAUGHT EXCEPTION: %s", exc, exc_info=(exc_type, exc, tb))


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OCR MCP server over stdio")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    parser.add_argument(
        "--exit-on-eof",
        action="store_true",
        help="Exit once stdin closes instead of staying alive",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or os.getenv("OCR_MCP_LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    sys.excepthook = _log_uncaught
    logger.info("OpenAI OCR MCP Server starting up...")

    settings = Settings.from_env(args.env_file)
    if args.exit_on_eof:
        settings = dataclasses.replace(settings, exit_on_eof=True)
    if args.log_level is None:
        logging.getLogger().setLevel(settings.log_level)

    if settings.api_key is None:
        logger.error(
            "Valid OpenAI API key not found in environment variables or .env file. "
            "Set OPENAI_API_KEY=<key> (must start with sk- or sk-proj-)."
        )
    logger.info("API key status: %s", mask_key(settings.api_key))

    context = ServerContext(settings=settings, vision=VisionClient(settings))
    build_server(context).start()


if __name__ == "__main__":
    main()
