"""Line-level helpers for trigger log messages.

Lines keep their position in the full message as their number even when a
filter hides their neighbours.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

LEVEL_MARKERS: tuple[tuple[str, str], ...] = (
    ("[ERROR]", "error"),
    ("[WARNING]", "warning"),
    ("[SUCCESS]", "success"),
    ("[START]", "start"),
    ("[END]", "end"),
)


@dataclass(frozen=True)
class LogLine:
    number: int
    level: str | None
    text: str


def classify_line(line: str) -> str | None:
    for marker, level in LEVEL_MARKERS:
        if marker in line:
            return level
    return None


def format_log_lines(message: str | None, filter_text: str = "") -> list[LogLine]:
    if not message:
        return []
    needle = (filter_text or "").lower()
    lines: list[LogLine] = []
    for index, line in enumerate(message.split("\n"), start=1):
        if needle and needle not in line.lower():
            continue
        lines.append(LogLine(number=index, level=classify_line(line), text=line))
    return lines


def highlight_spans(line: str, record_id: str | None) -> list[tuple[int, int]]:
    """Return ``(start, end)`` offsets of every occurrence of ``record_id``."""

    if not record_id:
        return []
    return [(match.start(), match.end()) for match in re.finditer(re.escape(record_id), line)]
