"""
Server configuration: environment variables, optional .env file and
OpenAI credential discovery.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS: tuple[str, ...] = ("OPENAI_API_KEY", "openai_api_key", "OpenAI_API_Key")
API_KEY_PLACEHOLDER = "your-api-key-here"

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_HEARTBEAT_SECONDS = 30.0


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


# ─── Credentials ─────────────────────────────────────────────────────────────


def validate_api_key(key: str) -> str | None:
    """Return a description of what is wrong with ``key``, or None if it looks usable."""
    if not key:
        return "API key is empty"

    clean = key.strip()
    if clean == "sk-proj-" or clean.startswith("sk-proj-*"):
        return "API key appears to be truncated"

    is_standard = clean.startswith("sk-") and len(clean) > 20
    is_project = clean.startswith("sk-proj-") and len(clean) > 30
    if not is_standard and not is_project:
        return (
            'Invalid key format. Key must start with "sk-" or "sk-proj-" and be of '
            f"sufficient length. Got: {clean[:8]}..."
        )
    return None


def resolve_api_key() -> str | None:
    """Find the first valid OpenAI API key among the accepted variable names."""
    for name in API_KEY_ENV_VARS:
        key = os.environ.get(name)
        if not key or key == API_KEY_PLACEHOLDER:
            continue
        clean = key.strip()
        issue = validate_api_key(clean)
        if issue is None:
            logger.info("Found valid API key in environment variable: %s", name)
            return clean
        logger.warning("Found API key in %s but it was invalid: %s", name, issue)
    return None


def mask_key(key: str | None) -> str:
    return f"{key[:8]}..." if key else "Not found"


# ─── Settings ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    request_timeout: float | None = None
    log_level: str = "INFO"
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS
    exit_on_eof: bool = False

    @classmethod
    def from_env(cls, env_file: str | None = None) -> Settings:
        """Build settings from the environment after loading ``.env`` (if any)."""
        dotenv_path = env_file or find_dotenv(usecwd=True)
        if dotenv_path and load_dotenv(dotenv_path, override=False):
            logger.info("Loaded environment from %s", dotenv_path)

        return cls(
            api_key=resolve_api_key(),
            base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            model=os.getenv("OCR_MCP_MODEL", DEFAULT_MODEL),
            max_tokens=int(os.getenv("OCR_MCP_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
            request_timeout=_env_float("OCR_MCP_REQUEST_TIMEOUT"),
            log_level=os.getenv("OCR_MCP_LOG_LEVEL", "INFO").upper(),
            heartbeat_seconds=float(
                os.getenv("OCR_MCP_HEARTBEAT_SECONDS", str(DEFAULT_HEARTBEAT_SECONDS))
            ),
            exit_on_eof=_env_bool("OCR_MCP_EXIT_ON_EOF"),
        )
