# src/taskpad/i18n.py

"""User-facing strings for the console (English and Korean)."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "app_title": "TaskPad",
        "welcome": "Type a task to add it. Use /help for commands, /exit to quit.",
        "empty_state": "No tasks found. Try a different filter or create a new one!",
        "added": "Task added.",
        "deleted": "Task deleted.",
        "updated": "Task updated.",
        "imported": "Imported {count} tasks!",
        "no_tasks": "No tasks found in the text.",
        "paste_first": "Please paste some text first.",
        "paste_prompt": "Paste text, then a line with /end to finish:",
        "not_found": "No such task: {ref}",
        "no_focus": "No task is focused.",
        "bad_value": "Invalid value: {value}",
        "usage": "Usage: {usage}",
        "language_set": "Language: {value}",
        "theme_set": "Theme: {value}",
        "filter_label": "filter",
        "sort_label": "sort",
        "list_label": "list",
        "search_label": "search",
        "description": "Description",
        "source": "Source",
        "steps": "Steps",
        "write_status": "Last write: {outcome} (writes={writes})",
    },
    "ko": {
        "app_title": "태스크패드",
        "welcome": "할 일을 입력해 추가하세요. /help 명령어 목록, /exit 종료.",
        "empty_state": "할 일이 없습니다. 필터를 변경하거나 새로 만들어보세요!",
        "added": "할 일이 추가되었습니다!",
        "deleted": "할 일이 삭제되었습니다.",
        "updated": "할 일이 수정되었습니다.",
        "imported": "{count}개의 할 일을 가져왔습니다!",
        "no_tasks": "텍스트에서 할 일을 찾을 수 없습니다.",
        "paste_first": "먼저 텍스트를 붙여넣어 주세요.",
        "paste_prompt": "텍스트를 붙여넣고 /end 줄로 마치세요:",
        "not_found": "해당 할 일이 없습니다: {ref}",
        "no_focus": "선택된 할 일이 없습니다.",
        "bad_value": "잘못된 값: {value}",
        "usage": "사용법: {usage}",
        "language_set": "언어: {value}",
        "theme_set": "테마: {value}",
        "filter_label": "필터",
        "sort_label": "정렬",
        "list_label": "목록",
        "search_label": "검색",
        "description": "상세 설명",
        "source": "출처",
        "steps": "단계",
    },
}

LANGUAGES = tuple(TRANSLATIONS)


def t(lang: str, key: str, **kwargs: object) -> str:
    """Translate key; falls back to English, then to the key itself."""
    value = TRANSLATIONS.get(lang, {}).get(key)
    if value is None:
        if lang != DEFAULT_LANGUAGE:
            logger.debug("Missing translation key=%s lang=%s", key, lang)
        value = TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)
    return value.format(**kwargs) if kwargs else value
