# src/taskpad/tasks/task_extractor.py

"""
Heuristic task extraction from pasted text (chat transcripts, notes).

Each line is matched against the patterns below, first match wins:
1. markdown checklist  "- [ ] Buy milk", "- [x] Call mom"
2. "todo:" prefix      "TODO: water plants"
3. bullet              "- Item", "* Item"
4. numbered item       "1. First"

Anything else is dropped: conversational lines must never turn into tasks.
"""

from __future__ import annotations

import re

_CHECKBOX_RE = re.compile(r"^-\s*\[[ xX]?\]\s+(.+)$")
_BULLET_RE = re.compile(r"^[-*]\s+(.+)$")
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$")
_TODO_PREFIX = "todo:"


def _extract_line(line: str) -> str | None:
    m = _CHECKBOX_RE.match(line)
    if m:
        return m.group(1).strip()

    if line.lower().startswith(_TODO_PREFIX):
        return line[len(_TODO_PREFIX) :].strip()

    # Checked after checklists so "- [ ] x" is never taken as a plain bullet.
    m = _BULLET_RE.match(line)
    if m:
        return m.group(1).strip()

    m = _NUMBERED_RE.match(line)
    if m:
        return m.group(1).strip()

    return None


def extract_tasks(text: str) -> list[str]:
    """Return candidate task strings from text, in line order."""
    tasks: list[str] = []
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        candidate = _extract_line(line)
        if candidate:
            tasks.append(candidate)
    return tasks
