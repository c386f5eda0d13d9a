"""
MCP Server Base Classes

Shared foundation for the OCR MCP server.
Implements newline-delimited JSON-RPC 2.0 over stdio, request/notification
routing and tool dispatch.

Usage:
    from openai_ocr_mcp.mcp_base import MCPServer, MCPTool, MCPResult, MCPError
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TextIO, TypeVar

from pydantic import BaseModel, ValidationError

from .capabilities import ToolDescriptor
from .json_rpc import (
    JsonRpcRequest,
    encode_message,
    error_response,
    success_response,
)
from .normalizer import UnrecognizedToolCall, normalize_tool_call

if TYPE_CHECKING:
    from .capabilities import CapabilityRegistry
    from .context import ServerContext

logger = logging.getLogger(__name__)

# ─── Type Variables ──────────────────────────────────────────────────────────

TParams = TypeVar("TParams", bound=BaseModel)

RequestHandler = Callable[[Any], Awaitable[Any]]
NotificationHandler = Callable[[Any], Awaitable[None]]

# Readline limit for stdin; base64 payloads never travel inbound but
# analysis notifications can be long.
STREAM_LIMIT = 16 * 1024 * 1024
LOG_TRUNCATE = 500

# ─── Result & Error Types ────────────────────────────────────────────────────


@dataclass
class MCPResult:
    """Result returned by a tool execution.

    ``content`` holds the text content blocks sent to the client. ``data``
    is an optional structured view for in-process callers and is never
    serialized.
    """

    content: list[dict[str, str]] = field(default_factory=list)
    is_error: bool = False
    data: Any = None

    @classmethod
    def text(cls, *texts: str, data: Any = None) -> MCPResult:
        return cls(content=[{"type": "text", "text": t} for t in texts], data=data)

    @classmethod
    def error(cls, message: str) -> MCPResult:
        return cls(content=[{"type": "text", "text": f"Error: {message}"}], is_error=True)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"content": self.content}
        if self.is_error:
            payload["isError"] = True
        return payload


class MCPError(Exception):
    """Structured error for protocol-level failures."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


class ErrorCodes:
    """JSON-RPC error codes used by the server."""

    PARSE_ERROR = -32700
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    TOOL_EXECUTION_ERROR = -32000


# ─── Tool Base Class ─────────────────────────────────────────────────────────


def _strip_titles(schema: Any) -> Any:
    """Drop pydantic's generated ``title`` keys from a JSON Schema."""
    if isinstance(schema, dict):
        return {
            key: _strip_titles(value)
            for key, value in schema.items()
            if not (key == "title" and isinstance(value, str))
        }
    if isinstance(schema, list):
        return [_strip_titles(item) for item in schema]
    return schema


class MCPTool(ABC, Generic[TParams]):
    """
    Abstract base class for MCP tools.

    Every tool must define:
    - name: the tool name clients call
    - description: for the LLM
    - Params type: pydantic BaseModel for input validation
    - path_argument: the parameter a bare path string maps onto
    - output_description: describes the text content blocks it returns
    - execute(): the implementation
    """

    name: str = ""
    description: str = ""
    path_argument: str = "image_path"
    output_description: str = ""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    @abstractmethod
    async def execute(self, params: TParams) -> MCPResult:
        """Execute the tool with validated parameters."""
        ...

    def get_params_model(self) -> type[BaseModel]:
        """Get the Pydantic model class for params validation."""
        for base in type(self).__orig_bases__:  # type: ignore[attr-defined]
            if hasattr(base, "__args__") and len(base.__args__) >= 1:
                return base.__args__[0]
        raise TypeError(f"Tool {self.name} must specify Generic params type")

    def get_input_schema(self) -> dict[str, Any]:
        """Generate JSON Schema from the Pydantic params model."""
        return _strip_titles(self.get_params_model().model_json_schema())

    def get_output_schema(self) -> dict[str, Any]:
        """Schema of the content-block envelope every tool returns."""
        return {
            "type": "object",
            "properties": {
                "content": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string", "description": "Type of content (text)"},
                            "text": {"type": "string", "description": self.output_description},
                        },
                    },
                }
            },
        }

    def to_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameter_schema=self.get_input_schema(),
            output_schema=self.get_output_schema(),
        )


# ─── MCP Server ──────────────────────────────────────────────────────────────


class MCPServer:
    """
    MCP Server over stdio.

    Reads one JSON-RPC message per line, classifies requests and
    notifications, routes them by exact method name and writes replies.
    Each line is handled in its own task so reading never waits on a
    slow tool.

    Usage:
        server = MCPServer(
            name="openai-ocr-service",
            version="1.0.0",
            protocol_version="2024-11-05",
            context=context,
            registry=CapabilityRegistry([ExtractTextFromImage(context), ...]),
        )
        server.start()
    """

    def __init__(
        self,
        name: str,
        version: str,
        protocol_version: str,
        context: ServerContext,
        registry: CapabilityRegistry,
        notification_handlers: dict[str, NotificationHandler] | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.protocol_version = protocol_version
        self.context = context
        self.registry = registry
        self._tasks: set[asyncio.Task[None]] = set()

        self.request_handlers: dict[str, RequestHandler] = {
            "initialize": self._handle_initialize,
            "ListOfferings": self._handle_list_offerings,
            "tools/list": self._handle_tool_list,
            "tools/call": self._handle_tool_call,
            "callTool": self._handle_tool_call,
        }
        self.notification_handlers: dict[str, NotificationHandler] = {
            "notifications/initialized": self._on_initialized,
            "notifications/exit": self._on_exit,
        }
        if notification_handlers:
            self.notification_handlers.update(notification_handlers)

    # ─── Process Lifecycle ───────────────────────────────────────────────────

    def start(self) -> None:
        """Start the JSON-RPC listener on stdio (blocking)."""
        try:
            asyncio.run(self._run())
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")

    async def _run(self) -> None:
        """Main event loop: read stdin, dispatch, write stdout."""
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(_log_loop_exception)

        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except (NotImplementedError, RuntimeError):
                pass

        reader = asyncio.StreamReader(limit=STREAM_LIMIT)
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        heartbeat = None
        if self.context.settings.heartbeat_seconds > 0:
            heartbeat = asyncio.create_task(self._heartbeat())

        logger.info("%s ready and waiting for messages on stdin", self.name)
        try:
            serving = asyncio.create_task(self.serve(reader, sys.stdout))
            stopped = asyncio.create_task(stop.wait())
            done, _ = await asyncio.wait({serving, stopped}, return_when=asyncio.FIRST_COMPLETED)

            if serving in done and not self.context.settings.exit_on_eof:
                logger.info("stdin was closed, keeping process alive")
                await stopped
            for task in (serving, stopped):
                task.cancel()
        finally:
            if heartbeat is not None:
                heartbeat.cancel()
            logger.info("Server stopped")

    async def _heartbeat(self) -> None:
        interval = self.context.settings.heartbeat_seconds
        while True:
            await asyncio.sleep(interval)
            logger.info("Keep-alive heartbeat")

    async def serve(self, reader: asyncio.StreamReader, out: TextIO) -> None:
        """Read framed messages until end-of-stream, then drain in-flight handlers."""
        while True:
            try:
                line = await reader.readline()
            except ValueError as exc:
                # Oversized line; the reader has already discarded it.
                logger.error("Dropped oversized message: %s", exc)
                self._write(out, error_response(None, ErrorCodes.PARSE_ERROR, "Message too large"))
                continue

            if not line:
                break

            line_str = line.decode("utf-8", errors="replace").strip()
            if not line_str:
                continue

            task = asyncio.create_task(self._process_line(line_str, out))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _process_line(self, line: str, out: TextIO) -> None:
        try:
            response = await self.handle_line(line)
            if response is not None:
                self._write(out, response)
        except Exception:
            logger.exception("Unhandled error while processing message")

    def _write(self, out: TextIO, response: dict[str, Any]) -> None:
        out.write(encode_message(response))
        out.flush()
        if "error" in response:
            logger.info(
                "Sent error for id: %s, code: %s, message: %s",
                response["id"],
                response["error"]["code"],
                response["error"]["message"],
            )
        else:
            logger.info("Sent response for id: %s", response["id"])

    # ─── Dispatch ────────────────────────────────────────────────────────────

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Parse and dispatch one framed message."""
        truncated = line if len(line) <= LOG_TRUNCATE else f"{line[:LOG_TRUNCATE]}..."
        logger.info("Received message: %s", truncated)

        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            return error_response(None, ErrorCodes.PARSE_ERROR, f"Parse error: {exc}")

        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Dispatch a decoded JSON-RPC message; returns the reply, if any."""
        request = JsonRpcRequest.from_message(message)
        if request is None:
            # Anything that is not a request object is answered like unparseable input.
            return error_response(
                None, ErrorCodes.PARSE_ERROR, "Parse error: message is not a JSON-RPC request"
            )

        if request.is_notification:
            await self._handle_notification(request)
            return None

        logger.info("Processing method: %s, id: %s", request.method, request.id)
        handler = self.request_handlers.get(request.method)
        if handler is None:
            return error_response(
                request.id,
                ErrorCodes.METHOD_NOT_FOUND,
                f"Method not supported: {request.method}",
            )

        try:
            return success_response(request.id, await handler(request.params))
        except MCPError as e:
            return error_response(request.id, e.code, str(e))
        except Exception as e:
            logger.exception("Handler for %s failed", request.method)
            return error_response(request.id, ErrorCodes.INTERNAL_ERROR, f"Internal error: {e!s}")

    async def _handle_notification(self, request: JsonRpcRequest) -> None:
        """Run a notification handler; failures are logged, never replied to."""
        handler = self.notification_handlers.get(request.method)
        if handler is None:
            if request.method.startswith("notifications/"):
                logger.info("Unknown notification method: %s", request.method)
            else:
                logger.warning("Dropping %s message without an id", request.method)
            return

        logger.info("Handling notification: %s", request.method)
        try:
            await handler(request.params)
        except Exception:
            logger.exception("Notification %s failed", request.method)

    async def _on_initialized(self, params: Any) -> None:
        logger.info("Client has been fully initialized")

    async def _on_exit(self, params: Any) -> None:
        logger.info("Client has requested exit")

    # ─── Method Handlers ─────────────────────────────────────────────────────

    def _server_info(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version}

    async def _handle_initialize(self, params: Any) -> dict[str, Any]:
        """Handle initialize: report identity and the tool capability map."""
        if isinstance(params, dict):
            if "protocolVersion" in params:
                logger.info("Client protocol version: %s", params["protocolVersion"])
            if params.get("clientInfo"):
                self.context.client_info = params["clientInfo"]
                logger.info("Client info: %s", json.dumps(self.context.client_info))

        result: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "serverInfo": self._server_info(),
            "capabilities": {"tools": self.registry.capability_map()},
        }
        if self.context.client_info:
            result["clientInfo"] = self.context.client_info
        return result

    async def _handle_list_offerings(self, params: Any) -> dict[str, Any]:
        """Handle ListOfferings (legacy dialect of tools/list)."""
        result: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "serverInfo": self._server_info(),
            "offerings": {"tools": self.registry.offerings()},
        }
        if self.context.client_info:
            result["clientInfo"] = self.context.client_info
        return result

    async def _handle_tool_list(self, params: Any) -> dict[str, Any]:
        """Handle a tools/list request."""
        return {"tools": self.registry.tool_list()}

    async def _handle_tool_call(self, params: Any) -> dict[str, Any]:
        """Handle tools/call and callTool: normalize, validate, execute."""
        try:
            invocation = normalize_tool_call(params, self.registry.path_arguments())
        except UnrecognizedToolCall as e:
            raise MCPError(ErrorCodes.INVALID_PARAMS, str(e)) from e
        logger.info("Parsed tool call - name: %s", invocation.tool_name)

        tool = self.registry.get(invocation.tool_name)
        if tool is None:
            raise MCPError(ErrorCodes.METHOD_NOT_FOUND, f"Tool not found: {invocation.tool_name}")

        try:
            validated_params = tool.get_params_model()(**invocation.arguments)
        except ValidationError as e:
            raise MCPError(ErrorCodes.INVALID_PARAMS, f"Invalid parameters: {e}") from e

        try:
            result = await tool.execute(validated_params)
        except MCPError:
            raise
        except Exception as e:
            logger.exception("Error executing tool %s", tool.name)
            raise MCPError(
                ErrorCodes.TOOL_EXECUTION_ERROR, f"Error executing tool: {e!s}"
            ) from e

        return result.to_payload()


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Event loop exception handler: log and keep running."""
    exc = context.get("exception")
    logger.error("Unhandled event loop error: %s", context.get("message"), exc_info=exc)
