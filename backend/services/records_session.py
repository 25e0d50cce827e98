"""Per-application view state wired around the record repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from backend.repositories.record_repository import RecordRepository
from backend.services.view_pipeline import GridView
from shared.models import Page, SearchSpec, SortKey, SortConfig, Transaction, TransactionCreateRequest


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordsSession:
    """Records grid, search grid and the repository they render from.

    Page resets follow the grid rules: a new insert or search starts on page 1,
    a delete keeps the current page but clamps it to the shrunken page count.
    """

    repository: RecordRepository
    records_grid: GridView = field(default_factory=GridView)
    search_grid: GridView = field(default_factory=GridView)

    def records_page(self, page: int | None = None) -> Page:
        return self.records_grid.render(self.repository.transactions, page)

    def search_page(self, page: int | None = None) -> Page | None:
        results = self.repository.search_results
        if results is None:
            return None
        return self.search_grid.render(results, page)

    def sort_records(self, key: SortKey) -> SortConfig:
        return self.records_grid.request_sort(key)

    def sort_search(self, key: SortKey) -> SortConfig:
        return self.search_grid.request_sort(key)

    def insert(self, candidate: TransactionCreateRequest | Mapping[str, object]) -> Transaction:
        created = self.repository.insert(candidate)
        self.records_grid.reset_page()
        return created

    def delete(self, record_id: int) -> None:
        self.repository.delete(record_id)
        self.records_grid.clamp(len(self.repository.transactions))
        results = self.repository.search_results
        if results is not None:
            self.search_grid.clamp(len(results))

    def search(self, spec: SearchSpec) -> Page:
        results = self.repository.search(spec)
        self.search_grid.reset_page()
        logger.info("search_grid_reset results=%s", len(results))
        return self.search_grid.render(results)
