"""Tests for notifications/llm_response correlation."""

from __future__ import annotations

import json
from pathlib import Path

from openai_ocr_mcp.context import ServerContext
from openai_ocr_mcp.file_store import save_extracted_text
from openai_ocr_mcp.notifications import format_analysis, handle_llm_response


def test_format_analysis() -> None:
    assert format_analysis("plain note") == "plain note"
    assert format_analysis({"analysis": "from field", "x": 1}) == "from field"
    assert format_analysis({"content": "c"}) == json.dumps({"content": "c"}, indent=2)


async def test_appends_to_last_image_output(context: ServerContext, sample_image: Path) -> None:
    """Analysis lands in the output file of the most recent image."""
    txt_path = save_extracted_text(sample_image, "Hello")
    context.correlation.record_extraction(sample_image, "Hello")

    await handle_llm_response(context, "This says hello.")

    assert txt_path.read_text(encoding="utf-8").endswith("]\nThis says hello.\n")
    assert [e.response for e in context.correlation.analysis_log] == ["This says hello."]


async def test_picks_lexicographically_last_variant(
    context: ServerContext, sample_image: Path
) -> None:
    paths = sorted([save_extracted_text(sample_image, "one"), save_extracted_text(sample_image, "two")])
    context.correlation.record_extraction(sample_image, "two")

    await handle_llm_response(context, "note")

    assert "note" not in paths[0].read_text(encoding="utf-8")
    assert "note" in paths[-1].read_text(encoding="utf-8")


async def test_explicit_target_skips_correlation(
    context: ServerContext, sample_image: Path, tmp_dir: Path
) -> None:
    explicit = tmp_dir / "elsewhere.txt"
    explicit.write_text("OCR\n", encoding="utf-8")

    await handle_llm_response(
        context, {"text_file_path": str(explicit), "analysis": "targeted note"}
    )

    assert explicit.read_text(encoding="utf-8").endswith("]\ntargeted note\n")


async def test_no_previous_image_only_logs(context: ServerContext) -> None:
    await handle_llm_response(context, "orphan")

    assert [e.response for e in context.correlation.analysis_log] == ["orphan"]


async def test_no_matching_file_is_dropped(context: ServerContext, sample_image: Path) -> None:
    context.correlation.record_extraction(sample_image, "never saved")

    await handle_llm_response(context, "lost")

    assert list(sample_image.parent.glob("*.txt")) == []
    assert len(context.correlation.analysis_log) == 1


async def test_bad_explicit_target_is_swallowed(context: ServerContext, tmp_dir: Path) -> None:
    """Notifications never raise, even when the target is unusable."""
    await handle_llm_response(context, {"text_file_path": str(tmp_dir / "nope.txt")})

    assert not (tmp_dir / "nope.txt").exists()
