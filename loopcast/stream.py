#!/usr/bin/env python3
"""
Continuous RTMP streamer.
Simple state machine: Scan folder -> Play each file -> Rescan, forever.
Waits and rescans while the folder is empty; stops when cancelled.
"""

from __future__ import annotations

import argparse
import enum
import logging
import sys
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from loopcast.cancellation import CancellationBridge
from loopcast.playlist_builder import DirectoryUnreadable, OrderingMode, build_playlist
from loopcast.prompts import collect_settings
from loopcast.settings_service import (
    DEFAULT_WAIT_INTERVAL,
    StreamSettings,
    apply_env_overrides,
    build_settings,
    load_settings,
)
from loopcast.stream_job import JobOutcome, JobStatus, run_stream_job

LOGGER = logging.getLogger(__name__)


class SupervisorState(enum.Enum):
    SCANNING_FOR_FILES = 1
    PLAYING_ONE = 2
    WAITING_FOR_CONTENT = 3
    STOPPED = 4


PlaylistBuildFn = Callable[[str, OrderingMode], List[str]]
JobRunnerFn = Callable[[str, str, threading.Event], JobOutcome]


class StreamSupervisor:
    """Owns the scan -> play -> repeat cycle for one stream target.

    Only one job runs at a time, and the supervisor never starts a new one
    once ``cancel_event`` is set.
    """

    def __init__(
        self,
        folder: str,
        target: str,
        ordering: OrderingMode,
        cancel_event: threading.Event,
        wait_interval: float = DEFAULT_WAIT_INTERVAL,
        build: PlaylistBuildFn = build_playlist,
        run_job: JobRunnerFn = run_stream_job,
        on_state_change: Optional[Callable[[SupervisorState], None]] = None,
    ) -> None:
        self.folder = folder
        self.target = target
        self.ordering = ordering
        self.cancel_event = cancel_event
        self.wait_interval = wait_interval
        self._build = build
        self._run_job = run_job
        self._on_state_change = on_state_change

        self.state = SupervisorState.SCANNING_FOR_FILES
        self.passes = 0
        self._playlist: List[str] = []
        self._position = 0

    def _set_state(self, state: SupervisorState) -> None:
        if state is not self.state:
            LOGGER.debug("State %s -> %s", self.state.name, state.name)
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def run(self) -> None:
        LOGGER.info("Starting stream... Press Ctrl+C to stop.")
        LOGGER.debug("Entering streaming loop. Ordering: %s", self.ordering.value)
        self._set_state(SupervisorState.SCANNING_FOR_FILES)

        while self.state is not SupervisorState.STOPPED:
            if self.state is SupervisorState.SCANNING_FOR_FILES:
                self._scan()
            elif self.state is SupervisorState.WAITING_FOR_CONTENT:
                self._wait_for_content()
            elif self.state is SupervisorState.PLAYING_ONE:
                self._play_current()

        LOGGER.info("Streaming stopped.")

    def _scan(self) -> None:
        if self.cancel_event.is_set():
            self._set_state(SupervisorState.STOPPED)
            return

        try:
            playlist = self._build(self.folder, self.ordering)
        except DirectoryUnreadable as exc:
            LOGGER.warning("%s", exc)
            playlist = []

        if not playlist:
            self._set_state(SupervisorState.WAITING_FOR_CONTENT)
            return

        self.passes += 1
        self._playlist = list(playlist)
        self._position = 0
        LOGGER.info("Pass %d: %d video(s) queued", self.passes, len(self._playlist))
        LOGGER.debug("Playlist: %s", ", ".join(Path(entry).name for entry in self._playlist))
        self._set_state(SupervisorState.PLAYING_ONE)

    def _wait_for_content(self) -> None:
        LOGGER.info(
            "No video files found in %s. Waiting for %g seconds...",
            self.folder,
            self.wait_interval,
        )
        if self.cancel_event.wait(self.wait_interval):
            self._set_state(SupervisorState.STOPPED)
        else:
            self._set_state(SupervisorState.SCANNING_FOR_FILES)

    def _play_current(self) -> None:
        if self.cancel_event.is_set():
            LOGGER.debug("Cancellation requested before next video.")
            self._set_state(SupervisorState.STOPPED)
            return

        entry = self._playlist[self._position]
        LOGGER.info("Now streaming: %s", Path(entry).name)
        outcome = self._run_job(entry, self.target, self.cancel_event)
        self._log_outcome(entry, outcome)

        if outcome.is_cancelled:
            self._set_state(SupervisorState.STOPPED)
            return

        self._position += 1
        if self._position < len(self._playlist):
            self._set_state(SupervisorState.PLAYING_ONE)
        else:
            LOGGER.debug("End of playlist. Restarting from a fresh scan.")
            self._set_state(SupervisorState.SCANNING_FOR_FILES)

    @staticmethod
    def _log_outcome(entry: str, outcome: JobOutcome) -> None:
        name = Path(entry).name
        if outcome.status is JobStatus.CANCELLED:
            LOGGER.info("Stopped streaming %s", name)
        elif outcome.status is JobStatus.FAILED:
            LOGGER.error("Skipping %s: %s", name, outcome.error)
        elif outcome.exit_code == 0:
            LOGGER.info("Finished streaming: %s", name)
        else:
            LOGGER.warning("Finished streaming %s with ffmpeg exit code %d", name, outcome.exit_code)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="loopcast",
        description="Stream a folder of videos to an RTMP endpoint in an endless loop.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="show ffmpeg output and debug logging")
    parser.add_argument("-c", "--config", help="path to a JSON settings file")
    parser.add_argument("--ffmpeg", help="ffmpeg executable to use (default: ffmpeg on PATH)")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def resolve_settings(args: argparse.Namespace) -> StreamSettings:
    data = apply_env_overrides(load_settings(args.config))
    if args.verbose:
        data["verbose"] = True
    if args.ffmpeg:
        data["ffmpeg_path"] = args.ffmpeg
    return build_settings(collect_settings(data))


def run_stream(settings: StreamSettings, cancel_event: threading.Event) -> None:
    def run_job(entry: str, target: str, event: threading.Event) -> JobOutcome:
        return run_stream_job(
            entry,
            target,
            event,
            verbose=settings.verbose,
            ffmpeg_path=settings.ffmpeg_path,
        )

    supervisor = StreamSupervisor(
        str(settings.media_folder),
        settings.stream_target,
        settings.ordering,
        cancel_event,
        wait_interval=settings.wait_interval,
        run_job=run_job,
    )
    supervisor.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    if args.verbose:
        LOGGER.info("Verbose mode enabled.")

    print("--- loopcast: endless RTMP streamer ---")
    try:
        settings = resolve_settings(args)
        if settings.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            LOGGER.error("Invalid setting %s: %s", field, error["msg"])
        return 1
    except (EOFError, KeyboardInterrupt):
        LOGGER.error("Input closed before configuration was complete.")
        return 1
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed to load settings: %s", exc)
        return 1

    exit_code = 0
    bridge = CancellationBridge()
    try:
        with bridge:
            run_stream(settings, bridge.cancel_event)
        LOGGER.info("Streaming was successfully stopped by the user.")
    except Exception as exc:
        LOGGER.error("An unexpected error occurred: %s", exc, exc_info=settings.verbose)
        exit_code = 1
    finally:
        LOGGER.info("Application is shutting down.")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
