"""Tests for verdict/request_file.py."""

from pathlib import Path

import pytest

from verdict.errors import InvalidRequest
from verdict.models import ModelSpec
from verdict.request_file import load_attachment, parse_file


def test_parse_file_without_front_matter(tmp_path: Path):
    path = tmp_path / "q.md"
    path.write_text("Is the sky green?\n", encoding="utf-8")

    prompt, meta = parse_file(path)

    assert prompt == "Is the sky green?"
    assert meta == {}


def test_parse_file_with_front_matter(tmp_path: Path):
    (tmp_path / "notes.txt").write_text("context notes", encoding="utf-8")
    path = tmp_path / "q.md"
    path.write_text(
        "---\n"
        "outcomes: [home, draw, away]\n"
        "iterations: 2\n"
        "models:\n"
        "  - {provider: openai, model: gpt-4o, weight: 0.7, count: 2}\n"
        "  - {provider: anthropic, model: claude-2.1, weight: 0.3}\n"
        "attachments: [notes.txt]\n"
        "---\n"
        "Who wins tonight?\n",
        encoding="utf-8",
    )

    prompt, meta = parse_file(path)

    assert prompt == "Who wins tonight?"
    assert meta["outcomes"] == ["home", "draw", "away"]
    assert meta["iterations"] == 2
    assert meta["models"] == [
        ModelSpec("openai", "gpt-4o", 0.7, 2),
        ModelSpec("anthropic", "claude-2.1", 0.3, 1),
    ]
    assert meta["attachments"][0].payload == "context notes"


def test_parse_file_comma_separated_outcomes(tmp_path: Path):
    path = tmp_path / "q.md"
    path.write_text("---\noutcomes: yes, no\n---\nReally?\n", encoding="utf-8")
    _, meta = parse_file(path)
    assert meta["outcomes"] == ["yes", "no"]


def test_load_attachment_image(tmp_path: Path):
    path = tmp_path / "chart.png"
    path.write_bytes(b"\x89PNG\r\n")

    attachment = load_attachment(path)

    assert attachment.kind == "image"
    assert attachment.media_type == "image/png"
    assert attachment.payload == b"\x89PNG\r\n"
    assert attachment.name == "chart.png"


def test_load_attachment_text(tmp_path: Path):
    path = tmp_path / "data.csv"
    path.write_text("a,b\n1,2\n", encoding="utf-8")

    attachment = load_attachment(path)

    assert attachment.kind == "text"
    assert attachment.payload == "a,b\n1,2\n"


def test_load_attachment_unknown_extension_is_text(tmp_path: Path):
    path = tmp_path / "README"
    path.write_text("hello", encoding="utf-8")
    attachment = load_attachment(path)
    assert attachment.kind == "text"
    assert attachment.media_type == "text/plain"


def test_parse_file_rejects_non_integer_iterations(tmp_path: Path):
    path = tmp_path / "q.md"
    path.write_text("---\niterations: many\n---\nReally?\n", encoding="utf-8")
    with pytest.raises(InvalidRequest, match="iterations"):
        parse_file(path)


def test_parse_file_rejects_model_without_provider(tmp_path: Path):
    path = tmp_path / "q.md"
    path.write_text("---\nmodels:\n  - {model: gpt-4o, weight: 0.5}\n---\nReally?\n", encoding="utf-8")
    with pytest.raises(InvalidRequest, match="missing provider"):
        parse_file(path)
