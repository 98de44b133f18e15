"""Pytest configuration and shared fixtures."""

import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import Callable, List

import pytest

# Set test environment variables before importing modules
os.environ["LOOPCAST_CONFIG"] = str(
    Path(__file__).parent / "fixtures" / "test_loopcast.json"
)


@pytest.fixture(autouse=True)
def clean_loopcast_env(monkeypatch):
    """Keep the developer's LOOPCAST_* overrides out of the tests."""
    for name in list(os.environ):
        if name.startswith("LOOPCAST_") and name != "LOOPCAST_CONFIG":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def media_dir(temp_dir: Path) -> Path:
    """Create a media folder with a mix of videos, other files and a subfolder."""
    folder = temp_dir / "media"
    folder.mkdir()
    for name in ["b_show.mkv", "a_intro.mp4", "C_clip.MOV", "notes.txt", "cover.jpg"]:
        (folder / name).write_text("fake video content")
    (folder / "season.mp4").mkdir()
    return folder


@pytest.fixture
def cancel_event() -> threading.Event:
    return threading.Event()


class PythonLauncher:
    """Stand-in for subprocess.Popen that runs a Python snippet instead of ffmpeg."""

    def __init__(self, code: str) -> None:
        self.code = code
        self.commands: List[List[str]] = []
        self.processes: List[subprocess.Popen] = []

    def __call__(self, cmd, **kwargs) -> subprocess.Popen:
        self.commands.append(list(cmd))
        process = subprocess.Popen([sys.executable, "-c", self.code], **kwargs)
        self.processes.append(process)
        return process


@pytest.fixture
def python_launcher() -> Callable[[str], PythonLauncher]:
    """Factory for launchers running a given Python snippet as the encoder."""
    launchers: List[PythonLauncher] = []

    def factory(code: str) -> PythonLauncher:
        launcher = PythonLauncher(code)
        launchers.append(launcher)
        return launcher

    yield factory

    # Never leave children behind, even when an assertion failed mid-test.
    for launcher in launchers:
        for process in launcher.processes:
            if process.poll() is None:
                process.kill()
                process.wait()
