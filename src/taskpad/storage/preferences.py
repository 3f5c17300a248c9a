# src/taskpad/storage/preferences.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

LANGUAGE_KEY = "language"
THEME_KEY = "theme"

THEMES = ("light", "dark")


class PreferencesStore:
    """
    Small key-value settings file (language, theme), independent of tasks.

    Best-effort: a missing or corrupt file means defaults, and a failed write
    is logged; view settings are never worth crashing the app over.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._values: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to load preferences from %s", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        if self._values.get(key) == value:
            return
        self._values[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._values, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            logger.debug("Saved preference %s=%s", key, value)
        except OSError:
            logger.exception("Failed to save preferences to %s", self._path)
