# src/taskpad/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..i18n import DEFAULT_LANGUAGE, LANGUAGES
from ..storage.preferences import LANGUAGE_KEY, THEME_KEY
from ..tasks.task_store import TaskStore
from .ports import PreferencesRepo


@dataclass
class AppState:
    # Settings object (config.Settings or a test stand-in).
    settings: object

    store: TaskStore
    preferences: PreferencesRepo

    @property
    def language(self) -> str:
        default = str(getattr(self.settings, "default_language", DEFAULT_LANGUAGE))
        lang = self.preferences.get(LANGUAGE_KEY, default) or default
        return lang if lang in LANGUAGES else DEFAULT_LANGUAGE

    @property
    def theme(self) -> str:
        return self.preferences.get(THEME_KEY, "light") or "light"
