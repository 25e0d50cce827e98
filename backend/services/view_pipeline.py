"""Sort and paginate transaction grids."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Sequence

from shared.models import PAGE_SIZE, Page, SortConfig, SortDirection, SortKey, Transaction


SortValue = Callable[[Transaction], "str | Decimal | datetime | None"]


def _text(attribute: str) -> SortValue:
    def value_of(transaction: Transaction) -> str | None:
        value = getattr(transaction, attribute)
        return None if value is None else str(value)

    return value_of


def _numeric(attribute: str) -> SortValue:
    def value_of(transaction: Transaction) -> Decimal | None:
        value = getattr(transaction, attribute)
        return None if value is None else Decimal(value)

    return value_of


def _created_at(transaction: Transaction) -> datetime | None:
    return transaction.created_at


# ISO dates are zero-padded, so lexicographic order is chronological order.
_SORT_VALUES: dict[SortKey, SortValue] = {
    SortKey.ID: _numeric("id"),
    SortKey.DATE: _text("date"),
    SortKey.CATEGORY: _text("category"),
    SortKey.ITEM: _text("item"),
    SortKey.VENDOR: _text("vendor"),
    SortKey.AMOUNT: _numeric("amount"),
    SortKey.FROM_ACCOUNT: _text("from_account"),
    SortKey.PAID_BY: _text("paid_by"),
    SortKey.CREATED_AT: _created_at,
}


def sort_transactions(items: Sequence[Transaction], config: SortConfig) -> list[Transaction]:
    """Return a stably sorted copy; records missing the sort value always come last."""

    value_of = _SORT_VALUES[config.key]
    present = [item for item in items if value_of(item) is not None]
    missing = [item for item in items if value_of(item) is None]
    ordered = sorted(present, key=value_of, reverse=config.direction == SortDirection.DESC)
    return [*ordered, *missing]


def next_sort_config(current: SortConfig, key: SortKey) -> SortConfig:
    """Clicking the active ascending key flips to descending; anything else sorts ascending."""

    if current.key == key and current.direction == SortDirection.ASC:
        return SortConfig(key=key, direction=SortDirection.DESC)
    return SortConfig(key=key, direction=SortDirection.ASC)


def total_pages(total_items: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total_items / page_size)


def paginate(items: Sequence[Transaction], page: int, page_size: int = PAGE_SIZE) -> list[Transaction]:
    """Return the 1-based page slice. Out-of-range pages are empty; callers clamp."""

    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(items[start : start + page_size])


def clamp_page(page: int, page_count: int) -> int:
    return max(1, min(page, page_count)) if page_count > 0 else 1


@dataclass(slots=True)
class GridView:
    """Transient sort and page state of one data grid."""

    sort: SortConfig = field(default_factory=SortConfig)
    page: int = 1
    page_size: int = PAGE_SIZE

    def request_sort(self, key: SortKey) -> SortConfig:
        self.sort = next_sort_config(self.sort, key)
        return self.sort

    def reset_page(self) -> None:
        self.page = 1

    def clamp(self, total_items: int) -> int:
        self.page = clamp_page(self.page, total_pages(total_items, self.page_size))
        return self.page

    def render(self, items: Sequence[Transaction], page: int | None = None) -> Page:
        if page is not None:
            self.page = page
        ordered = sort_transactions(items, self.sort)
        return Page(
            items=paginate(ordered, self.page, self.page_size),
            page=self.page,
            page_size=self.page_size,
            total_items=len(ordered),
            total_pages=total_pages(len(ordered), self.page_size),
            sort=self.sort,
        )
