"""OCR over a line-delimited JSON-RPC (MCP-style) stdio server."""

from .mcp_base import ErrorCodes, MCPError, MCPResult, MCPServer, MCPTool

__all__ = ["MCPServer", "MCPTool", "MCPResult", "MCPError", "ErrorCodes"]
