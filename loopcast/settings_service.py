"""
Helpers for reading and validating the stream run configuration.

Values come from a JSON settings file, then environment variables, then the
operator prompts for whatever is still missing.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from loopcast.playlist_builder import OrderingMode
from loopcast.stream_job import DEFAULT_FFMPEG_PATH

LOGGER = logging.getLogger(__name__)

CONFIG_PATH = Path.cwd() / "config" / "loopcast.json"
DEFAULT_WAIT_INTERVAL = 30.0

REQUIRED_FIELDS = ("media_folder", "rtmp_url", "stream_key", "ordering")

ENV_OVERRIDES = {
    "LOOPCAST_MEDIA_FOLDER": "media_folder",
    "LOOPCAST_RTMP_URL": "rtmp_url",
    "LOOPCAST_STREAM_KEY": "stream_key",
    "LOOPCAST_ORDERING": "ordering",
    "LOOPCAST_FFMPEG": "ffmpeg_path",
    "LOOPCAST_VERBOSE": "verbose",
}


class StreamSettings(BaseModel):
    media_folder: Path = Field(..., description="Folder scanned for videos on every pass.")
    rtmp_url: str = Field(..., description="RTMP ingest URL, without the stream key.")
    stream_key: str = Field(..., description="Stream key appended to the ingest URL.")
    ordering: OrderingMode = OrderingMode.SEQUENTIAL
    ffmpeg_path: str = DEFAULT_FFMPEG_PATH
    verbose: bool = False
    wait_interval: float = Field(DEFAULT_WAIT_INTERVAL, gt=0)

    @field_validator("media_folder")
    @classmethod
    def _folder_exists(cls, value: Path) -> Path:
        value = value.expanduser()
        if not value.is_dir():
            raise ValueError(f"{value} is not an existing directory")
        return value

    @field_validator("rtmp_url", "stream_key", "ffmpeg_path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def stream_target(self) -> str:
        return join_stream_target(self.rtmp_url, self.stream_key)


def join_stream_target(rtmp_url: str, stream_key: str) -> str:
    if rtmp_url.endswith("/"):
        return rtmp_url + stream_key
    return f"{rtmp_url}/{stream_key}"


def resolve_config_path(override: Optional[str] = None) -> Path:
    if override:
        return Path(override).expanduser()
    env_path = os.environ.get("LOOPCAST_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_PATH


def load_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """Load raw settings from the JSON file. A missing file means no settings."""
    config_path = resolve_config_path(path)
    if not config_path.exists():
        LOGGER.debug("No settings file at %s", config_path)
        return {}

    with config_path.open("r", encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file {config_path} must contain a JSON object.")
    LOGGER.debug("Loaded settings from %s", config_path)
    return raw


def apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(data)
    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            merged[key] = value
    return merged


def missing_fields(data: Dict[str, Any]) -> List[str]:
    return [key for key in REQUIRED_FIELDS if not str(data.get(key) or "").strip()]


def build_settings(data: Dict[str, Any]) -> StreamSettings:
    """Validate raw settings. Raises ``pydantic.ValidationError``."""
    return StreamSettings.model_validate(data)
