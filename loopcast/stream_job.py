"""
Run a single media file through ffmpeg to the RTMP target.

One call starts exactly one encoder process and does not return until that
process has exited and been reaped, whether it finished on its own or was
stopped because the cancellation event fired.
"""

from __future__ import annotations

import enum
import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, List, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_FFMPEG_PATH = "ffmpeg"
POLL_INTERVAL = 0.1
TERMINATE_TIMEOUT = 5.0
DRAIN_JOIN_TIMEOUT = 5.0

Launcher = Callable[..., subprocess.Popen]


class EncoderLaunchError(RuntimeError):
    """The encoder process could not be started."""


class JobStatus(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class JobOutcome:
    status: JobStatus
    exit_code: Optional[int] = None
    error: Optional[BaseException] = None

    @classmethod
    def completed(cls, exit_code: int) -> "JobOutcome":
        return cls(JobStatus.COMPLETED, exit_code=exit_code)

    @classmethod
    def cancelled(cls) -> "JobOutcome":
        return cls(JobStatus.CANCELLED)

    @classmethod
    def failed(cls, error: BaseException) -> "JobOutcome":
        return cls(JobStatus.FAILED, error=error)

    @property
    def is_cancelled(self) -> bool:
        return self.status is JobStatus.CANCELLED


def build_ffmpeg_command(src: str, target: str, ffmpeg_path: str = DEFAULT_FFMPEG_PATH) -> List[str]:
    """Build the fixed encoder invocation: real-time read, video copy, AAC audio, FLV out."""
    return [
        ffmpeg_path,
        "-re",  # Real-time streaming
        "-i", src,
        "-c:v", "copy",
        "-c:a", "aac",
        "-ar", "44100",
        "-b:a", "128k",
        "-f", "flv",
        target,
    ]


def read_process_output(stream: IO[str], label: str) -> None:
    """Read lines from one encoder pipe until EOF so the pipe never fills."""
    try:
        for line in iter(stream.readline, ""):
            LOGGER.debug("[ffmpeg:%s] %s", label, line.rstrip())
    except (OSError, ValueError) as exc:
        LOGGER.debug("Error reading ffmpeg %s: %s", label, exc)
        _discard_remaining(stream)
    finally:
        try:
            stream.close()
        except OSError:
            pass


def _discard_remaining(stream: IO[str]) -> None:
    """Keep emptying a pipe whose text layer broke, until the encoder closes it."""
    raw = getattr(stream, "buffer", None)
    if raw is None:
        return
    try:
        for _ in iter(lambda: raw.read(4096), b""):
            pass
    except (OSError, ValueError) as exc:
        LOGGER.debug("Gave up draining ffmpeg output: %s", exc)


def _start_drain_threads(process: subprocess.Popen) -> List[threading.Thread]:
    threads = []
    for label, stream in (("stdout", process.stdout), ("stderr", process.stderr)):
        if stream is None:
            continue
        thread = threading.Thread(
            target=read_process_output,
            args=(stream, label),
            daemon=True,
            name=f"ffmpeg-{label}-reader",
        )
        thread.start()
        threads.append(thread)
    return threads


def reap_process(process: subprocess.Popen, terminate_timeout: float = TERMINATE_TIMEOUT) -> int:
    """Terminate ``process`` and block until it has exited.

    This wait deliberately ignores the cancellation event: returning before
    the child is gone would leave an encoder still pushing to the target.
    """
    if process.poll() is None:
        LOGGER.debug("Terminating ffmpeg (PID %d)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=terminate_timeout)
        except subprocess.TimeoutExpired:
            LOGGER.warning("ffmpeg (PID %d) did not terminate, killing...", process.pid)
            process.kill()
            process.wait()
    return process.returncode


def run_stream_job(
    src: str,
    target: str,
    cancel_event: threading.Event,
    verbose: bool = False,
    ffmpeg_path: str = DEFAULT_FFMPEG_PATH,
    launcher: Launcher = subprocess.Popen,
    poll_interval: float = POLL_INTERVAL,
    terminate_timeout: float = TERMINATE_TIMEOUT,
) -> JobOutcome:
    """Stream one file to ``target`` and report how the encoder ended."""
    if cancel_event.is_set():
        return JobOutcome.cancelled()

    cmd = build_ffmpeg_command(src, target, ffmpeg_path)
    output = subprocess.PIPE if verbose else subprocess.DEVNULL
    LOGGER.debug("Starting ffmpeg for: %s", src)

    try:
        process = launcher(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=output,
            stderr=output,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            start_new_session=os.name == "posix",
        )
    except (OSError, ValueError) as exc:
        error = EncoderLaunchError(f"Failed to start {ffmpeg_path}: {exc}")
        LOGGER.error("Error streaming %s: %s", Path(src).name, error)
        return JobOutcome.failed(error)

    LOGGER.debug("ffmpeg started (PID: %d)", process.pid)
    drain_threads = _start_drain_threads(process) if verbose else []

    try:
        while process.poll() is None:
            if cancel_event.wait(poll_interval):
                LOGGER.debug("Cancellation requested, stopping ffmpeg (PID %d)", process.pid)
                reap_process(process, terminate_timeout)
                return JobOutcome.cancelled()
    finally:
        # Reap on every exit path, including an exception raised while waiting.
        reap_process(process, terminate_timeout)
        for thread in drain_threads:
            thread.join(timeout=DRAIN_JOIN_TIMEOUT)
            if thread.is_alive():
                LOGGER.warning("%s still running after ffmpeg exited; leaving it behind", thread.name)

    returncode = process.returncode
    LOGGER.debug("ffmpeg exited with code %d", returncode)
    if returncode != 0:
        LOGGER.warning("ffmpeg exited with code %d for %s", returncode, Path(src).name)
    return JobOutcome.completed(returncode)
