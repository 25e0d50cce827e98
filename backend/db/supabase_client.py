"""Minimal Supabase PostgREST client used by the record services only."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from shared.errors import NetworkError, RequestError


logger = logging.getLogger(__name__)

Filters = list[tuple[str, str | int]]

NETWORK_ERROR_MESSAGE = (
    "Network Error: Failed to reach Supabase. This usually means the URL is incorrect, "
    "the project is paused, or there is a local network issue. Please double-check "
    "SUPABASE_URL."
)


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    anon_key: str
    timeout_seconds: float = 10.0


def _error_message(body: str) -> str:
    """Extract PostgREST's `message` field, falling back to the raw body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return body
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return body


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def _request(
        self,
        *,
        method: str,
        table: str,
        query: Filters,
        body: object | None = None,
    ) -> list[dict[str, Any]]:
        encoded_query = urlencode(query, doseq=True)
        url = f"{self.settings.url}/rest/v1/{table}"
        if encoded_query:
            url = f"{url}?{encoded_query}"
        payload = json.dumps(body).encode("utf-8") if body is not None else None
        api_key = self.settings.anon_key
        request = Request(
            url=url,
            data=payload,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            method=method,
        )

        try:
            with urlopen(request, timeout=self.settings.timeout_seconds) as response:  # noqa: S310 - URL comes from trusted env config
                status = response.status
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            body_text = exc.read().decode("utf-8", errors="replace")[:500]
            logger.warning(
                "supabase_request_rejected method=%s table=%s status=%s",
                method,
                table,
                exc.code,
            )
            raise RequestError(
                f"Supabase request failed with status {exc.code}: {_error_message(body_text)}",
                status_code=exc.code,
            ) from exc
        except (URLError, TimeoutError, ConnectionError) as exc:
            logger.warning(
                "supabase_unreachable method=%s table=%s error=%s",
                method,
                table,
                exc,
            )
            raise NetworkError(NETWORK_ERROR_MESSAGE) from exc

        if not raw.strip():
            return []
        try:
            rows = json.loads(raw)
        except ValueError as exc:
            logger.warning("supabase_response_invalid_json method=%s table=%s status=%s", method, table, status)
            raise RequestError(
                f"Supabase returned an invalid JSON body: {raw[:200]}",
                status_code=status,
            ) from exc
        return rows if isinstance(rows, list) else [rows]

    def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows, e.g. `select("transactions", order="created_at.desc", limit=100)`."""

        query: Filters = [*(filters or []), ("select", "*")]
        if order:
            query.append(("order", order))
        if limit is not None:
            query.append(("limit", limit))
        return self._request(method="GET", table=table, query=query)

    def insert(self, table: str, rows: Iterable[Mapping[str, object]]) -> list[dict[str, Any]]:
        """Insert rows and return the stored representation."""

        payload = [dict(row) for row in rows]
        return self._request(method="POST", table=table, query=[("select", "*")], body=payload)

    def delete(self, table: str, key: int) -> list[dict[str, Any]]:
        """Delete the row whose `id` equals `key` and return the deleted rows."""

        return self._request(method="DELETE", table=table, query=[("id", f"eq.{key}")])


class RemoteStore(Protocol):
    """Subset of the PostgREST API consumed by the record services."""

    def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows matching the filters."""

    def insert(self, table: str, rows: Iterable[Mapping[str, object]]) -> list[dict[str, Any]]:
        """Insert rows and return them as stored."""

    def delete(self, table: str, key: int) -> list[dict[str, Any]]:
        """Delete the row keyed by `key`."""
