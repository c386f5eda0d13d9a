"""Tests for image and text-file validators."""

from __future__ import annotations

from pathlib import Path

import pytest

from openai_ocr_mcp.validation import (
    MAX_FILE_SIZE,
    AnalysisTargetError,
    ImageValidationError,
    assert_text_file,
    get_mime_type,
    validate_image_file,
)


def test_valid_image_resolves_to_absolute(sample_image: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(sample_image.parent)

    resolved = validate_image_file(sample_image.name)

    assert resolved.is_absolute()
    assert resolved.resolve() == sample_image.resolve()


def test_empty_path() -> None:
    with pytest.raises(ImageValidationError, match="required"):
        validate_image_file("")


def test_missing_file(tmp_dir: Path) -> None:
    with pytest.raises(ImageValidationError, match="File not found"):
        validate_image_file(str(tmp_dir / "missing.png"))


def test_tilde_is_not_expanded(sample_image: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A leading ~ is a plain directory name relative to the working directory."""
    monkeypatch.chdir(sample_image.parent)
    monkeypatch.setenv("HOME", str(sample_image.parent))

    with pytest.raises(ImageValidationError, match="File not found") as exc_info:
        validate_image_file("~/scan.png")

    assert "/~/scan.png" in str(exc_info.value)


def test_directory_is_not_a_file(tmp_dir: Path) -> None:
    folder = tmp_dir / "folder.png"
    folder.mkdir()

    with pytest.raises(ImageValidationError, match="Not a file"):
        validate_image_file(str(folder))


def test_too_large(tmp_dir: Path) -> None:
    big = tmp_dir / "big.jpg"
    with open(big, "wb") as f:
        f.truncate(MAX_FILE_SIZE + 1)

    with pytest.raises(ImageValidationError, match="File too large"):
        validate_image_file(str(big))


def test_exactly_max_size_is_allowed(tmp_dir: Path) -> None:
    edge = tmp_dir / "edge.jpg"
    with open(edge, "wb") as f:
        f.truncate(MAX_FILE_SIZE)

    assert validate_image_file(str(edge)) == edge


@pytest.mark.parametrize("name", ["doc.pdf", "image.bmp", "noext"])
def test_invalid_file_type(tmp_dir: Path, name: str) -> None:
    path = tmp_dir / name
    path.write_bytes(b"data")

    with pytest.raises(ImageValidationError, match="Invalid file type"):
        validate_image_file(str(path))


def test_extension_check_is_case_insensitive(tmp_dir: Path) -> None:
    path = tmp_dir / "UPPER.PNG"
    path.write_bytes(b"data")

    assert validate_image_file(str(path)) == path


@pytest.mark.parametrize(
    ("name", "mime"),
    [
        ("a.jpg", "image/jpeg"),
        ("a.JPEG", "image/jpeg"),
        ("a.png", "image/png"),
        ("a.gif", "image/gif"),
        ("a.webp", "image/webp"),
        ("a.unknown", "image/jpeg"),
    ],
)
def test_get_mime_type(name: str, mime: str) -> None:
    assert get_mime_type(name) == mime


def test_assert_text_file(tmp_dir: Path) -> None:
    txt = tmp_dir / "notes.txt"
    txt.write_text("x", encoding="utf-8")

    assert assert_text_file(str(txt)) == txt


def test_assert_text_file_missing(tmp_dir: Path) -> None:
    with pytest.raises(AnalysisTargetError, match="Text file not found"):
        assert_text_file(str(tmp_dir / "missing.txt"))


def test_assert_text_file_wrong_suffix(tmp_dir: Path) -> None:
    md = tmp_dir / "notes.md"
    md.write_text("x", encoding="utf-8")

    with pytest.raises(AnalysisTargetError, match="must be a .txt file"):
        assert_text_file(str(md))
