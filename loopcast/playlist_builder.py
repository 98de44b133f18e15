"""
Scan the media folder and order its video files into a playlist pass.
"""

from __future__ import annotations

import enum
import logging
import os
import random
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

LOGGER = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".flv")

# (name, path, is_file)
DirEntry = Tuple[str, str, bool]
DirLister = Callable[[str], Iterable[DirEntry]]


class OrderingMode(str, enum.Enum):
    SEQUENTIAL = "sequential"
    SHUFFLED = "shuffled"


class DirectoryUnreadable(OSError):
    """Raised when the media folder cannot be listed."""


def scan_directory(folder: str) -> List[DirEntry]:
    """List a directory as (name, path, is_file) tuples."""
    with os.scandir(folder) as it:
        return [(entry.name, entry.path, entry.is_file()) for entry in it]


def is_video_file(name: str) -> bool:
    return name.lower().endswith(VIDEO_EXTENSIONS)


def build_playlist(
    folder: Union[str, Path],
    ordering: OrderingMode,
    list_dir: DirLister = scan_directory,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Return the qualifying video files in ``folder`` as one playlist pass.

    An empty result is a normal outcome; the caller decides how long to wait
    before scanning again.
    """
    try:
        entries = list(list_dir(str(folder)))
    except OSError as exc:
        raise DirectoryUnreadable(f"Cannot list media folder {folder}: {exc}") from exc

    videos = [(name, path) for name, path, is_file in entries if is_file and is_video_file(name)]
    LOGGER.debug("Found %d video files in %s", len(videos), folder)

    if ordering == OrderingMode.SHUFFLED:
        playlist = [path for _, path in videos]
        (rng or random.Random()).shuffle(playlist)
        return playlist

    videos.sort(key=lambda item: item[0])
    return [path for _, path in videos]
