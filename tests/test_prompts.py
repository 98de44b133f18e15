"""Tests for prompts module."""

from pathlib import Path
from typing import List

import pytest

from loopcast.playlist_builder import OrderingMode
from loopcast.prompts import (
    collect_settings,
    prompt_media_folder,
    prompt_ordering,
    prompt_stream_destination,
)


class ScriptedInput:
    """Feeds canned answers to the prompts and records what was asked."""

    def __init__(self, answers: List[str]) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


@pytest.mark.unit
def test_prompt_media_folder_retries(temp_dir: Path):
    messages: List[str] = []
    answers = ScriptedInput(["", str(temp_dir / "missing"), f"  {temp_dir}  "])
    assert prompt_media_folder(answers, messages.append) == str(temp_dir)
    assert messages == ["Invalid folder path. Please try again."] * 2


@pytest.mark.unit
def test_prompt_stream_destination_retries():
    messages: List[str] = []
    answers = ScriptedInput(["rtmp://x/live", "", "rtmp://x/live", "key"])
    assert prompt_stream_destination(answers, messages.append) == ("rtmp://x/live", "key")
    assert messages == ["RTMP URL and Stream Key cannot be empty. Please try again."]
    assert len(answers.prompts) == 4


@pytest.mark.unit
def test_prompt_ordering():
    messages: List[str] = []
    assert prompt_ordering(ScriptedInput(["3", "shuffle", "2"]), messages.append) is OrderingMode.SHUFFLED
    assert len(messages) == 2
    assert prompt_ordering(ScriptedInput(["1"]), messages.append) is OrderingMode.SEQUENTIAL


@pytest.mark.unit
def test_collect_settings_asks_only_for_missing(temp_dir: Path):
    answers = ScriptedInput(["2"])
    data = {"media_folder": str(temp_dir), "rtmp_url": "rtmp://x/live", "stream_key": "k"}
    result = collect_settings(data, answers, lambda *args: None)

    assert result["ordering"] is OrderingMode.SHUFFLED
    assert result["rtmp_url"] == "rtmp://x/live"
    assert len(answers.prompts) == 1
    assert "ordering" not in data


@pytest.mark.unit
def test_collect_settings_complete_data_never_prompts(temp_dir: Path):
    data = {
        "media_folder": str(temp_dir),
        "rtmp_url": "rtmp://x/live",
        "stream_key": "k",
        "ordering": "sequential",
    }
    assert collect_settings(data, ScriptedInput([]), lambda *args: None) == data


@pytest.mark.unit
def test_collect_settings_replaces_missing_folder(temp_dir: Path):
    answers = ScriptedInput([str(temp_dir), "rtmp://x/live", "k", "1"])
    result = collect_settings({"media_folder": str(temp_dir / "gone")}, answers, lambda *args: None)
    assert result["media_folder"] == str(temp_dir)
    assert result["stream_key"] == "k"
    assert result["ordering"] is OrderingMode.SEQUENTIAL


@pytest.mark.unit
def test_collect_settings_eof_propagates():
    with pytest.raises(EOFError):
        collect_settings({}, ScriptedInput([]), lambda *args: None)


@pytest.mark.unit
def test_collect_settings_blank_key_asks_for_destination(temp_dir: Path):
    """A whitespace-only stream key counts as missing."""
    answers = ScriptedInput(["rtmp://y/live", "new-key"])
    data = {"media_folder": str(temp_dir), "rtmp_url": "rtmp://x/live", "stream_key": "  ", "ordering": "shuffled"}
    result = collect_settings(data, answers, lambda *args: None)
    assert (result["rtmp_url"], result["stream_key"]) == ("rtmp://y/live", "new-key")
    assert len(answers.prompts) == 2


@pytest.mark.unit
def test_collect_settings_keeps_ordering_enum(temp_dir: Path):
    data = {
        "media_folder": str(temp_dir),
        "rtmp_url": "rtmp://x/live",
        "stream_key": "k",
        "ordering": OrderingMode.SHUFFLED,
    }
    assert collect_settings(data, ScriptedInput([]), lambda *args: None)["ordering"] is OrderingMode.SHUFFLED
