"""Translate a search form into a filtered fetch against `transactions`."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError

from backend.db.supabase_client import Filters, RemoteStore
from shared.errors import RequestError, ValidationError
from shared.models import SearchSpec, Transaction


logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"
SEARCH_ORDER = "date.desc"


def build_search_filters(spec: SearchSpec) -> Filters:
    """Return PostgREST filters for an inclusive date range and optional category."""

    if spec.from_date is not None and spec.to_date is not None and spec.from_date > spec.to_date:
        raise ValidationError("from_date must be before or equal to to_date")

    filters: Filters = []
    if spec.from_date is not None:
        filters.append(("date", f"gte.{spec.from_date.isoformat()}"))
    if spec.to_date is not None:
        filters.append(("date", f"lte.{spec.to_date.isoformat()}"))
    if spec.category:
        filters.append(("category", f"eq.{spec.category}"))
    return filters


def search_transactions(store: RemoteStore, spec: SearchSpec) -> list[Transaction]:
    filters = build_search_filters(spec)
    rows = store.select(TRANSACTIONS_TABLE, filters=filters, order=SEARCH_ORDER)
    try:
        results = [Transaction.model_validate(row) for row in rows]
    except PydanticValidationError as exc:
        raise RequestError(f"Unexpected transaction row from Supabase: {exc}") from exc

    logger.info(
        "records_search_completed from_date=%s to_date=%s category=%s count=%s",
        spec.from_date,
        spec.to_date,
        spec.category or None,
        len(results),
    )
    return results
