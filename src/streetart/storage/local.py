"""Flat string key/value slots persisted as a single JSON file.

Mirrors browser local storage: synchronous, string values only. It holds
the legacy spot snapshot and the session flag.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

_logger = logging.getLogger(__name__)


class LocalStorage:
    """String key/value store backed by one JSON object file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            _logger.warning("Local storage %s is unreadable; treating as empty", self._path, exc_info=True)
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Local storage %s is not valid JSON; treating as empty", self._path)
            return {}
        if not isinstance(data, dict):
            _logger.warning("Local storage %s is not a JSON object; treating as empty", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())
