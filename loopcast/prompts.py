"""
Interactive prompts for the settings the config file and environment did not supply.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict

from loopcast.playlist_builder import OrderingMode
from loopcast.settings_service import missing_fields

InputFn = Callable[[str], str]
PrintFn = Callable[..., None]

ORDERING_CHOICES = {"1": OrderingMode.SEQUENTIAL, "2": OrderingMode.SHUFFLED}


def _ask(input_fn: InputFn, prompt: str) -> str:
    return (input_fn(prompt) or "").strip()


def prompt_media_folder(input_fn: InputFn = input, print_fn: PrintFn = print) -> str:
    while True:
        folder = _ask(input_fn, "Enter the path to your video folder: ")
        if folder and os.path.isdir(os.path.expanduser(folder)):
            return folder
        print_fn("Invalid folder path. Please try again.")


def prompt_stream_destination(input_fn: InputFn = input, print_fn: PrintFn = print) -> tuple[str, str]:
    rtmp_url = _ask(input_fn, "Enter your RTMP URL: ")
    stream_key = _ask(input_fn, "Enter your Stream Key: ")
    while not rtmp_url or not stream_key:
        print_fn("RTMP URL and Stream Key cannot be empty. Please try again.")
        rtmp_url = _ask(input_fn, "Enter your RTMP URL: ")
        stream_key = _ask(input_fn, "Enter your Stream Key: ")
    return rtmp_url, stream_key


def prompt_ordering(input_fn: InputFn = input, print_fn: PrintFn = print) -> OrderingMode:
    while True:
        choice = _ask(input_fn, "Stream in (1) Alphabetic Order or (2) Shuffle? Enter 1 or 2: ")
        if choice in ORDERING_CHOICES:
            return ORDERING_CHOICES[choice]
        print_fn("Invalid choice. Please enter 1 or 2.")


def collect_settings(
    data: Dict[str, Any],
    input_fn: InputFn = input,
    print_fn: PrintFn = print,
) -> Dict[str, Any]:
    """Fill in missing or unusable values by asking the operator.

    Values already present are kept unless they obviously cannot work (an
    empty string, a folder that does not exist). ``EOFError`` from
    ``input_fn`` propagates to the caller.
    """
    settings = dict(data)
    missing = set(missing_fields(settings))

    folder = str(settings.get("media_folder") or "").strip()
    if "media_folder" in missing or not os.path.isdir(os.path.expanduser(folder)):
        settings["media_folder"] = prompt_media_folder(input_fn, print_fn)

    if missing & {"rtmp_url", "stream_key"}:
        settings["rtmp_url"], settings["stream_key"] = prompt_stream_destination(input_fn, print_fn)

    ordering = settings.get("ordering")
    if "ordering" in missing or not isinstance(ordering, str) or ordering not in [mode.value for mode in OrderingMode]:
        settings["ordering"] = prompt_ordering(input_fn, print_fn)

    return settings
