"""Application configuration for streetart."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from streetart._constants import (
    DB_NAME,
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
    DESCRIPTION_PROMPT,
    FLY_DURATION_S,
    FOCUS_ZOOM,
    GEMINI_BASE_URL,
    GEMINI_MODEL,
    IMAGE_MAX_WIDTH,
    IMAGE_QUALITY,
    LOCAL_STORAGE_FILE,
)


def _default_data_dir() -> Path:
    return Path.home() / ".local" / "share" / "streetart"


@dataclasses.dataclass(frozen=True)
class MapDefaults:
    """Initial view and focus behaviour of the map."""

    center: tuple[float, float] = DEFAULT_CENTER
    zoom: int = DEFAULT_ZOOM
    focus_zoom: int = FOCUS_ZOOM
    fly_duration: float = FLY_DURATION_S


@dataclasses.dataclass(frozen=True)
class StreetArtConfig:
    """Application configuration.

    Parameters
    ----------
    data_dir : Path
        Directory holding the spot database and the local key/value file.
    api_key : str or None
        Generative Language API key. Only needed for AI descriptions.
    gemini_model : str
        Model used for image descriptions.
    gemini_base_url : str
        Generative Language API base URL.
    description_prompt : str
        Fixed instruction sent with every image.
    describe_timeout : float
        Total timeout in seconds for one description request.
    image_max_width : int
        Uploaded images wider than this are downscaled.
    image_quality : int
        JPEG quality (1-95) of stored images.
    map : MapDefaults
        Initial view and focus behaviour.
    """

    data_dir: Path = dataclasses.field(default_factory=_default_data_dir)
    api_key: str | None = None
    gemini_model: str = GEMINI_MODEL
    gemini_base_url: str = GEMINI_BASE_URL
    description_prompt: str = DESCRIPTION_PROMPT
    describe_timeout: float = 30.0
    image_max_width: int = IMAGE_MAX_WIDTH
    image_quality: int = IMAGE_QUALITY
    map: MapDefaults = dataclasses.field(default_factory=MapDefaults)

    @property
    def db_path(self) -> Path:
        return Path(self.data_dir) / f"{DB_NAME}.sqlite3"

    @property
    def local_storage_path(self) -> Path:
        return Path(self.data_dir) / LOCAL_STORAGE_FILE

    @classmethod
    def from_env(cls, **overrides: Any) -> StreetArtConfig:
        """Create configuration from environment variables.

        Reads optional ``STREETART_*`` variables; the API key falls back
        to the bare ``API_KEY`` variable. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StreetArtConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        data_dir = env.get("STREETART_DATA_DIR")
        if data_dir:
            config_kwargs["data_dir"] = Path(data_dir).expanduser()

        api_key = env.get("STREETART_API_KEY") or env.get("API_KEY")
        if api_key:
            config_kwargs["api_key"] = api_key

        _ENV_STR_MAP = {
            "STREETART_GEMINI_MODEL": "gemini_model",
            "STREETART_GEMINI_BASE_URL": "gemini_base_url",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric values, handle separately
        width_env = env.get("STREETART_IMAGE_MAX_WIDTH")
        if width_env is not None and "image_max_width" not in overrides:
            config_kwargs["image_max_width"] = int(width_env)

        quality_env = env.get("STREETART_IMAGE_QUALITY")
        if quality_env is not None and "image_quality" not in overrides:
            config_kwargs["image_quality"] = int(quality_env)

        timeout_env = env.get("STREETART_DESCRIBE_TIMEOUT")
        if timeout_env is not None and "describe_timeout" not in overrides:
            config_kwargs["describe_timeout"] = float(timeout_env)

        map_overrides = overrides.pop("map", None)
        if isinstance(map_overrides, dict):
            config_kwargs["map"] = MapDefaults(**map_overrides)
        elif isinstance(map_overrides, MapDefaults):
            config_kwargs["map"] = map_overrides

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
