"""Unit tests for Supabase client query encoding and error normalization."""

from __future__ import annotations

import json
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

from backend.db.supabase_client import NETWORK_ERROR_MESSAGE, SupabaseClient, SupabaseSettings
from shared.errors import NetworkError, RequestError


def _build_client() -> SupabaseClient:
    return SupabaseClient(SupabaseSettings(url="https://example.supabase.co", anon_key="anon-key"))


class _Response:
    headers: dict[str, str] = {}
    status = 200

    def __init__(self, body: bytes = b"[]") -> None:
        self._body = body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self._body


def test_select_uses_doseq_for_repeated_query_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()
    seen: dict[str, object] = {}

    def _fake_urlopen(request, timeout):
        seen["url"] = request.full_url
        seen["method"] = request.get_method()
        seen["timeout"] = timeout
        return _Response(b'[{"id": 1}]')

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows = client.select(
        "transactions",
        filters=[("date", "gte.2024-01-01"), ("date", "lte.2024-01-31")],
        order="date.desc",
    )

    assert rows == [{"id": 1}]
    assert seen["method"] == "GET"
    assert seen["timeout"] == 10.0
    assert "date=gte.2024-01-01" in str(seen["url"])
    assert "date=lte.2024-01-31" in str(seen["url"])
    assert "order=date.desc" in str(seen["url"])
    assert "limit" not in str(seen["url"])


def test_select_sends_anon_key_and_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request, timeout):
        assert request.get_header("Apikey") == "anon-key"
        assert request.get_header("Authorization") == "Bearer anon-key"
        assert request.full_url == (
            "https://example.supabase.co/rest/v1/transactions?select=%2A&order=created_at.desc&limit=100"
        )
        return _Response()

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    assert client.select("transactions", order="created_at.desc", limit=100) == []


def test_insert_posts_json_rows_with_representation_header(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request, timeout):
        assert request.get_method() == "POST"
        assert request.full_url == "https://example.supabase.co/rest/v1/categories?select=%2A"
        assert request.get_header("Prefer") == "return=representation"
        assert json.loads(request.data.decode("utf-8")) == [{"name": "Food"}]
        return _Response(b'[{"id": 7, "name": "Food"}]')

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    assert client.insert("categories", [{"name": "Food"}]) == [{"id": 7, "name": "Food"}]


def test_delete_uses_delete_method_and_id_filter(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request, timeout):
        assert request.get_method() == "DELETE"
        assert request.full_url == "https://example.supabase.co/rest/v1/transactions?id=eq.42"
        return _Response(b"")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    assert client.delete("transactions", 42) == []


def test_http_error_becomes_request_error_with_store_message(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_http_error(_request, timeout):
        raise HTTPError(
            url="https://example.supabase.co/rest/v1/transactions",
            code=400,
            msg="Bad Request",
            hdrs=None,
            fp=BytesIO(b'{"message": "column transactions.bogus does not exist"}'),
        )

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_http_error)

    with pytest.raises(RequestError, match="status 400") as error:
        client.select("transactions")

    assert "column transactions.bogus does not exist" in str(error.value)
    assert error.value.status_code == 400


def test_unreachable_host_becomes_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_url_error(_request, timeout):
        raise URLError("[Errno -2] Name or service not known")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_url_error)

    with pytest.raises(NetworkError) as error:
        client.select("transactions")

    assert str(error.value) == NETWORK_ERROR_MESSAGE


def test_timeout_becomes_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_timeout(_request, timeout):
        raise TimeoutError("timed out")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_timeout)

    with pytest.raises(NetworkError):
        client.delete("transactions", 1)


def test_non_json_success_body_becomes_request_error(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    client = _build_client()

    def _fake_urlopen(_request, timeout):
        return _Response(b"<html>gateway</html>")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    with pytest.raises(RequestError, match="invalid JSON body") as error:
        client.select("transactions")

    assert error.value.status_code == 200
    assert "supabase_response_invalid_json" in caplog.text
