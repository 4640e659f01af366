from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Sequence

from reprocessor.core.errors import ValidationError


def total_pages(count: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValidationError("page size must be positive")
    return math.ceil(count / page_size)


@dataclass(frozen=True)
class PreviewPage:
    """A window over the full preview result set."""

    records: tuple[dict[str, Any], ...] = ()
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.records), self.page_size)

    @property
    def paged_records(self) -> list[dict[str, Any]]:
        start = (self.page - 1) * self.page_size
        return list(self.records[start : self.page * self.page_size])

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def first_page(records: Sequence[dict[str, Any]], page_size: int) -> PreviewPage:
    if page_size <= 0:
        raise ValidationError("page size must be positive")
    return PreviewPage(records=tuple(records), page=1, page_size=page_size)


def next_page(view: PreviewPage) -> PreviewPage:
    if not view.has_next:
        return view
    return replace(view, page=view.page + 1)


def prev_page(view: PreviewPage) -> PreviewPage:
    if not view.has_previous:
        return view
    return replace(view, page=view.page - 1)
