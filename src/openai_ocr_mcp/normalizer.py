"""
Tool-call normalizer: resolve client parameter shapes to a ToolInvocation.

Clients of different MCP dialects send tools/call and callTool params in
different shapes. Each shape is a small parser; they are tried in a fixed
order and the first one that recognizes the params wins:

  1. "photo.jpg"                                  bare path string
  2. {"name": ..., "params": "photo.jpg"}         named, string params
  3. {"name": ..., "params": {"image_path": ...}} named, object params
  4. {"image_path": ...}                          direct extraction call
  5. {"name": ..., "arguments": str | object}     standard MCP shape

A bare path string is bound to the tool's path argument (``image_path`` for
extraction, ``text_file_path`` for append_analysis).
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from .ocr_types import ToolInvocation

DEFAULT_TOOL = "extract_text_from_image"
DEFAULT_PATH_ARGUMENT = "image_path"

ShapeParser = Callable[[Any, Mapping[str, str]], ToolInvocation | None]


class UnrecognizedToolCall(ValueError):
    """Raised when no known shape matches the tool-call params."""


def _path_call(name: str, path: str, path_arguments: Mapping[str, str]) -> ToolInvocation:
    argument = path_arguments.get(name, DEFAULT_PATH_ARGUMENT)
    return ToolInvocation(tool_name=name, arguments={argument: path})


def _named(params: Any) -> str | None:
    if isinstance(params, dict):
        name = params.get("name")
        if isinstance(name, str) and name:
            return name
    return None


# ─── Shape Parsers ───────────────────────────────────────────────────────────


def _bare_string(params: Any, path_arguments: Mapping[str, str]) -> ToolInvocation | None:
    if isinstance(params, str):
        return _path_call(DEFAULT_TOOL, params, path_arguments)
    return None


def _named_string_params(params: Any, path_arguments: Mapping[str, str]) -> ToolInvocation | None:
    name = _named(params)
    if name and isinstance(params.get("params"), str):
        return _path_call(name, params["params"], path_arguments)
    return None


def _named_object_params(params: Any, path_arguments: Mapping[str, str]) -> ToolInvocation | None:
    name = _named(params)
    inner = params.get("params") if name else None
    if isinstance(inner, dict) and inner.get("image_path"):
        return ToolInvocation(tool_name=name, arguments={"image_path": inner["image_path"]})
    return None


def _direct_image_path(params: Any, path_arguments: Mapping[str, str]) -> ToolInvocation | None:
    if isinstance(params, dict) and params.get("image_path"):
        return ToolInvocation(tool_name=DEFAULT_TOOL, arguments={"image_path": params["image_path"]})
    return None


def _named_arguments(params: Any, path_arguments: Mapping[str, str]) -> ToolInvocation | None:
    name = _named(params)
    arguments = params.get("arguments") if name else None
    if isinstance(arguments, str) and arguments:
        return _path_call(name, arguments, path_arguments)
    if isinstance(arguments, dict):
        return ToolInvocation(tool_name=name, arguments=arguments)
    return None


SHAPE_PARSERS: tuple[ShapeParser, ...] = (
    _bare_string,
    _named_string_params,
    _named_object_params,
    _direct_image_path,
    _named_arguments,
)


def normalize_tool_call(
    params: Any,
    path_arguments: Mapping[str, str] | None = None,
) -> ToolInvocation:
    """Resolve ``params`` to a ToolInvocation using the first matching shape."""
    path_arguments = path_arguments or {}
    for parser in SHAPE_PARSERS:
        invocation = parser(params, path_arguments)
        if invocation is not None:
            return invocation

    raise UnrecognizedToolCall(
        f"Invalid params: tool call shape not recognized: {json.dumps(params, default=str)[:200]}"
    )
