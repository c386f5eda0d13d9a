"""
JSON-RPC 2.0 Transport Utilities

Low-level JSON-RPC message handling for the stdio transport: message
builders, request/notification classification and line framing.
Used by mcp_base.py; typically not imported directly by tool implementations.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

JSONRPC_VERSION = "2.0"
NOTIFICATION_PREFIX = "notifications/"

RequestId = str | int | float | bool | None


@dataclass
class JsonRpcRequest:
    """A JSON-RPC 2.0 request or notification."""

    method: str
    id: RequestId = None
    params: Any = None
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        """Notifications never receive a reply."""
        return self.method.startswith(NOTIFICATION_PREFIX) or not self.has_id

    @classmethod
    def from_message(cls, msg: Any) -> JsonRpcRequest | None:
        """Build a request from a decoded message, or None if it is not one."""
        if not is_valid_request(msg):
            return None
        return cls(
            method=msg["method"],
            id=msg.get("id"),
            params=msg.get("params"),
            has_id="id" in msg,
        )


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    """Create a JSON-RPC success response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(
    request_id: RequestId,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Create a JSON-RPC error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def is_valid_request(msg: Any) -> bool:
    """Check that a decoded value is an object with a string method and a scalar id."""
    if not isinstance(msg, dict) or not isinstance(msg.get("method"), str):
        return False
    return not isinstance(msg.get("id"), (dict, list))


def encode_message(msg: dict[str, Any]) -> str:
    """Serialize one message as a single newline-terminated line."""
    return json.dumps(msg) + "\n"
