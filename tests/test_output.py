"""Tests for parley/output.py transcript export."""

from pathlib import Path

import pytest

from parley.models import (
    AssistantMessage,
    Comparison,
    ComparisonMessage,
    ComparisonSide,
    ErrorMessage,
    SystemMessage,
    UserMessage,
)
from parley.output import _slug, print_message, save_transcript


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Hello World", "hello-world"),
        ("  What's new?!  ", "whats-new"),
        ("snake_case and-dashes", "snake-case-and-dashes"),
        ("", ""),
    ],
)
def test_slug(text, expected):
    assert _slug(text) == expected


def test_slug_truncates():
    assert len(_slug("word " * 30)) <= 40


@pytest.fixture
def filled_thread(message_log, thread_id):
    message_log.append(thread_id, UserMessage("Which is faster?"))
    message_log.append(thread_id, AssistantMessage("Rust, usually.", model_id="m1"))
    message_log.append(thread_id, ErrorMessage("[p2] rate limit", model_id="m2"))
    message_log.append(thread_id, SystemMessage("Discussion stopped by user"))
    message_log.append(
        thread_id,
        ComparisonMessage(
            "Which is faster?",
            comparison=Comparison(
                "Which is faster?",
                ComparisonSide("m1", "Answer one"),
                ComparisonSide("gpt-4", "Answer two"),
            ),
        ),
    )
    return message_log.get_thread(thread_id)


def test_save_transcript_writes_markdown(filled_thread, catalog, tmp_path: Path):
    path = save_transcript(filled_thread, catalog, tmp_path / "out")

    assert path.exists()
    assert path.parent == tmp_path / "out"
    assert path.name.endswith("_test-thread.md")

    content = path.read_text(encoding="utf-8")
    assert content.startswith("# Test thread")
    assert "**Thread:** t1" in content
    assert "**Messages:** 5" in content
    assert "**Models:** GPT-4, Model One" in content
    assert "### User" in content
    assert "### Model One" in content
    assert "Error from Model Two" in content
    assert "> [p2] rate limit" in content
    assert "*Discussion stopped by user*" in content
    assert "#### GPT-4" in content


def test_save_transcript_keeps_message_order(filled_thread, catalog, tmp_path: Path):
    content = save_transcript(filled_thread, catalog, tmp_path).read_text(encoding="utf-8")
    assert content.index("Which is faster?") < content.index("Rust, usually.") < content.index("rate limit")


def test_save_transcript_slug_override(filled_thread, catalog, tmp_path: Path):
    path = save_transcript(filled_thread, catalog, tmp_path, slug_override="custom")
    assert path.name.endswith("_custom.md")


def test_save_transcript_empty_thread(message_log, catalog, tmp_path: Path):
    thread = message_log.create_thread(name="!!!", thread_id="blank")

    content = save_transcript(thread, catalog, tmp_path).read_text(encoding="utf-8")

    assert "**Models:** none" in content
    assert "**Messages:** 0" in content


def test_save_transcript_falls_back_to_thread_id(message_log, catalog, tmp_path: Path):
    thread = message_log.create_thread(name="???", thread_id="abc123")
    assert save_transcript(thread, catalog, tmp_path).name.endswith("_abc123.md")


def test_print_message_renders_each_role(filled_thread, catalog, capsys):
    for message in filled_thread.messages:
        print_message(message, catalog)

    out = capsys.readouterr().out
    assert "Which is faster?" in out
    assert "Model One" in out
    assert "Discussion stopped by user" in out
    assert "Answer two" in out
