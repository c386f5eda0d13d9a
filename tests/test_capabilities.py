"""Tests for the capability registry."""

from __future__ import annotations

import pytest

from openai_ocr_mcp.capabilities import CapabilityRegistry
from openai_ocr_mcp.context import ServerContext
from openai_ocr_mcp.tools import AppendAnalysis, ExtractTextFromImage


@pytest.fixture()
def registry(context: ServerContext) -> CapabilityRegistry:
    return CapabilityRegistry([ExtractTextFromImage(context), AppendAnalysis(context)])


def test_tool_list_order_and_schemas(registry: CapabilityRegistry) -> None:
    """tools/list enumerates both tools in registration order with full schemas."""
    tools = registry.tool_list()

    assert [t["name"] for t in tools] == ["extract_text_from_image", "append_analysis"]
    assert tools[0]["inputSchema"] == {
        "type": "object",
        "properties": {
            "image_path": {
                "type": "string",
                "description": "Full path to a local image file (e.g., /Users/username/Pictures/image.jpg)",
            }
        },
        "required": ["image_path"],
    }
    assert set(tools[1]["inputSchema"]["properties"]) == {"text_file_path", "analysis"}
    for tool in tools:
        content = tool["outputSchema"]["properties"]["content"]
        assert content["type"] == "array"
        assert content["items"]["properties"]["text"]["type"] == "string"


def test_tool_list_is_stable(registry: CapabilityRegistry) -> None:
    assert registry.tool_list() == registry.tool_list()


def test_capability_map(registry: CapabilityRegistry) -> None:
    capabilities = registry.capability_map()

    assert list(capabilities) == ["extract_text_from_image", "append_analysis"]
    assert capabilities["append_analysis"]["parameters"]["required"] == [
        "text_file_path",
        "analysis",
    ]
    assert "description" in capabilities["extract_text_from_image"]


def test_offerings_shape(registry: CapabilityRegistry) -> None:
    offerings = registry.offerings()

    assert [o["name"] for o in offerings] == ["extract_text_from_image", "append_analysis"]
    assert set(offerings[0]) == {"name", "description", "parameters"}


def test_path_arguments(registry: CapabilityRegistry) -> None:
    assert registry.path_arguments() == {
        "extract_text_from_image": "image_path",
        "append_analysis": "text_file_path",
    }


def test_lookup(registry: CapabilityRegistry) -> None:
    assert isinstance(registry.get("append_analysis"), AppendAnalysis)
    assert registry.get("missing") is None


def test_duplicate_names_rejected(context: ServerContext) -> None:
    with pytest.raises(ValueError, match="Duplicate tool names"):
        CapabilityRegistry([AppendAnalysis(context), AppendAnalysis(context)])
