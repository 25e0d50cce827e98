"""In-memory cache of consumption records kept in sync with Supabase.

The repository owns the recent-transactions list, the three lookup
collections and the current search results. Writers replace whole lists under
a lock; readers get copies, so a view never observes a half-applied load.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping

from pydantic import ValidationError as PydanticValidationError

from backend.db.supabase_client import RemoteStore
from backend.repositories.query_builder import TRANSACTIONS_TABLE, search_transactions
from shared.errors import (
    ConsumptionRecordsError,
    RequestError,
    SubmissionInProgressError,
    ValidationError,
)
from shared.models import (
    LookupCollections,
    LookupItem,
    LookupKind,
    SearchSpec,
    Transaction,
    TransactionCreateRequest,
)


logger = logging.getLogger(__name__)

DEFAULT_LOAD_LIMIT = 100

StoreProvider = Callable[[], RemoteStore]


def _parse_transactions(rows: list[dict[str, object]]) -> list[Transaction]:
    try:
        return [Transaction.model_validate(row) for row in rows]
    except PydanticValidationError as exc:
        raise RequestError(f"Unexpected transaction row from Supabase: {exc}") from exc


def _created_transaction(rows: list[dict[str, object]]) -> Transaction:
    if not rows:
        raise RequestError("Supabase did not return the created transaction")
    return _parse_transactions(rows[:1])[0]


def _parse_lookup_items(rows: list[dict[str, object]]) -> list[LookupItem]:
    try:
        return [LookupItem.model_validate(row) for row in rows]
    except PydanticValidationError as exc:
        raise RequestError(f"Unexpected lookup row from Supabase: {exc}") from exc


def validate_candidate(candidate: TransactionCreateRequest | Mapping[str, object]) -> TransactionCreateRequest:
    """Return a validated create request or raise `ValidationError`."""

    if isinstance(candidate, TransactionCreateRequest):
        request = candidate
    else:
        try:
            request = TransactionCreateRequest.model_validate(dict(candidate))
        except PydanticValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise ValidationError(details) from exc

    if not request.amount.is_finite():
        raise ValidationError("amount must be a finite number")
    return request


class RecordRepository:
    """Session cache for transactions, lookups and search results."""

    def __init__(self, store_provider: StoreProvider, *, load_limit: int = DEFAULT_LOAD_LIMIT) -> None:
        self._store_provider = store_provider
        self._load_limit = load_limit
        self._lock = threading.Lock()
        self._transactions: list[Transaction] = []
        self._lookups = LookupCollections()
        self._search_results: list[Transaction] | None = None
        self._load_error: ConsumptionRecordsError | None = None
        self._load_ticket = 0
        self._insert_in_flight = False
        # Deletes that completed while a load or search was fetching: id -> delete sequence.
        self._delete_seq = 0
        self._deleted_ids: dict[int, int] = {}
        self._read_token = 0
        self._reads_in_flight: dict[int, int] = {}

    @property
    def transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._transactions)

    @property
    def lookups(self) -> LookupCollections:
        with self._lock:
            return self._lookups.model_copy(deep=True)

    @property
    def search_results(self) -> list[Transaction] | None:
        """Return `None` before any search, otherwise the latest results (maybe empty)."""
        with self._lock:
            return None if self._search_results is None else list(self._search_results)

    @property
    def load_error(self) -> ConsumptionRecordsError | None:
        with self._lock:
            return self._load_error

    @property
    def insert_in_flight(self) -> bool:
        with self._lock:
            return self._insert_in_flight

    def load(self) -> bool:
        """Refresh transactions and lookups; return False when a newer load superseded this one."""

        with self._lock:
            self._load_ticket += 1
            ticket = self._load_ticket
            read_token, delete_seq = self._begin_read()

        try:
            store = self._store_provider()
            transactions = _parse_transactions(
                store.select(TRANSACTIONS_TABLE, order="created_at.desc", limit=self._load_limit)
            )
            lookups = LookupCollections(
                **{
                    kind.value: _parse_lookup_items(store.select(kind.value, order="name.asc"))
                    for kind in LookupKind
                }
            )
        except ConsumptionRecordsError as exc:
            with self._lock:
                self._end_read(read_token)
                if ticket == self._load_ticket:
                    self._load_error = exc
            logger.warning("records_load_failed error_type=%s error=%s", type(exc).__name__, exc)
            raise
        except Exception:
            with self._lock:
                self._end_read(read_token)
            raise

        # Filter, end the read and apply in one critical section.
        with self._lock:
            transactions = self._without_deleted(transactions, delete_seq)
            self._end_read(read_token)
            if ticket != self._load_ticket:
                logger.info("records_load_stale_dropped ticket=%s latest=%s", ticket, self._load_ticket)
                return False
            self._transactions = transactions
            self._lookups = lookups
            self._load_error = None

        logger.info(
            "records_load_completed transactions=%s categories=%s accounts=%s payers=%s",
            len(transactions),
            len(lookups.categories),
            len(lookups.accounts),
            len(lookups.payers),
        )
        return True

    def insert(self, candidate: TransactionCreateRequest | Mapping[str, object]) -> Transaction:
        """Persist a transaction, register new lookup values, then reload."""

        request = validate_candidate(candidate)

        with self._lock:
            if self._insert_in_flight:
                raise SubmissionInProgressError("A record is already being saved")
            self._insert_in_flight = True
            known_lookups = self._lookups

        try:
            store = self._store_provider()
            rows = store.insert(TRANSACTIONS_TABLE, [request.to_row()])
            try:
                created = _created_transaction(rows)
            except RequestError:
                # The row may be stored even though its representation is unusable.
                logger.warning("records_insert_response_unreadable rows=%s", len(rows))
                self._register_lookups(store, request, known_lookups)
                self._refresh_after_insert(None)
                raise
            logger.info("records_insert_completed id=%s", created.id)
            self._register_lookups(store, request, known_lookups)
        finally:
            with self._lock:
                self._insert_in_flight = False

        self._refresh_after_insert(created.id)
        return created

    def _refresh_after_insert(self, record_id: int | None) -> None:
        try:
            self.load()
        except ConsumptionRecordsError:
            logger.warning("records_refresh_after_insert_failed id=%s", record_id)

    def _register_lookups(
        self,
        store: RemoteStore,
        request: TransactionCreateRequest,
        known_lookups: LookupCollections,
    ) -> None:
        for kind in LookupKind:
            name = getattr(request, kind.transaction_field)
            if not name or known_lookups.contains(kind, name):
                continue
            try:
                store.insert(kind.value, [{"name": name}])
            except ConsumptionRecordsError as exc:
                logger.warning("lookup_insert_failed kind=%s name=%s error=%s", kind.value, name, exc)
                continue
            logger.info("lookup_insert_completed kind=%s name=%s", kind.value, name)

    def delete(self, record_id: int) -> None:
        """Delete one record remotely, then drop it from the cached lists without a reload."""

        store = self._store_provider()
        store.delete(TRANSACTIONS_TABLE, record_id)

        with self._lock:
            self._delete_seq += 1
            if self._reads_in_flight:
                self._deleted_ids[record_id] = self._delete_seq
            self._transactions = [item for item in self._transactions if item.id != record_id]
            if self._search_results is not None:
                self._search_results = [item for item in self._search_results if item.id != record_id]
        logger.info("records_delete_completed id=%s", record_id)

    def search(self, spec: SearchSpec) -> list[Transaction]:
        """Run a filtered fetch and keep it as the current search results."""

        with self._lock:
            read_token, delete_seq = self._begin_read()
        try:
            store = self._store_provider()
            results = search_transactions(store, spec)
        except Exception:
            with self._lock:
                self._end_read(read_token)
            raise

        with self._lock:
            results = self._without_deleted(results, delete_seq)
            self._end_read(read_token)
            self._search_results = results
        return list(results)

    # Read bookkeeping below runs with self._lock held.

    def _begin_read(self) -> tuple[int, int]:
        self._read_token += 1
        self._reads_in_flight[self._read_token] = self._delete_seq
        return self._read_token, self._delete_seq

    def _end_read(self, read_token: int) -> None:
        self._reads_in_flight.pop(read_token, None)
        oldest = min(self._reads_in_flight.values(), default=self._delete_seq)
        self._deleted_ids = {
            record_id: seq for record_id, seq in self._deleted_ids.items() if seq > oldest
        }

    def _without_deleted(self, items: list[Transaction], since_seq: int) -> list[Transaction]:
        """Drop records deleted after a read started; the read may still have seen them."""
        return [
            item
            for item in items
            if item.id is None or self._deleted_ids.get(item.id, 0) <= since_seq
        ]
