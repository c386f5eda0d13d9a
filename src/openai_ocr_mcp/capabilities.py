"""
Capability registry: the fixed catalogue of tools this server offers.

The registry is built once at startup and never changes afterwards. Its
order is the enumeration order of every listing, and it renders the same
descriptors in the shape each protocol dialect expects:

  initialize    → {name: {description, parameters}}
  tools/list    → [{name, description, inputSchema, outputSchema}]
  ListOfferings → [{name, description, parameters}]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .mcp_base import MCPTool


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and schemas of one tool."""

    name: str
    description: str
    parameter_schema: dict[str, Any]
    output_schema: dict[str, Any]


class CapabilityRegistry:
    """Immutable, ordered set of tools."""

    def __init__(self, tools: Sequence[MCPTool[Any]]) -> None:
        names = [tool.name for tool in tools]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate tool names: {names}")

        self._tools = tuple(tools)
        self._by_name = MappingProxyType({tool.name: tool for tool in self._tools})
        self._descriptors = tuple(tool.to_descriptor() for tool in self._tools)

    def get(self, name: str) -> MCPTool[Any] | None:
        return self._by_name.get(name)

    def path_arguments(self) -> dict[str, str]:
        """Map each tool name to the argument a bare path string binds to."""
        return {tool.name: tool.path_argument for tool in self._tools}

    def capability_map(self) -> dict[str, dict[str, Any]]:
        return {
            d.name: {"description": d.description, "parameters": d.parameter_schema}
            for d in self._descriptors
        }

    def tool_list(self) -> list[dict[str, Any]]:
        return [
            {
                "name": d.name,
                "description": d.description,
                "inputSchema": d.parameter_schema,
                "outputSchema": d.output_schema,
            }
            for d in self._descriptors
        ]

    def offerings(self) -> list[dict[str, Any]]:
        return [
            {"name": d.name, "description": d.description, "parameters": d.parameter_schema}
            for d in self._descriptors
        ]
