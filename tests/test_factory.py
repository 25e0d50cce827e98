"""Tests for the composition root and the lazy Supabase store provider."""

from __future__ import annotations

import pytest

from backend.db.supabase_client import SupabaseClient
from backend.factory import SupabaseStoreProvider, build_record_repository
from backend.repositories.record_repository import RecordRepository
from shared.errors import ConfigurationError


def test_provider_raises_configuration_error_without_settings(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://placeholder.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "placeholder-key")

    with pytest.raises(ConfigurationError):
        SupabaseStoreProvider()()


def test_provider_reuses_client_until_settings_change(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://one.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-one")
    monkeypatch.delenv("SUPABASE_TIMEOUT_SECONDS", raising=False)
    provider = SupabaseStoreProvider()

    first = provider()
    second = provider()
    monkeypatch.setenv("SUPABASE_URL", "https://two.supabase.co")
    third = provider()

    assert isinstance(first, SupabaseClient)
    assert first is second
    assert third is not first
    assert third.settings.url == "https://two.supabase.co"


def test_build_record_repository_does_not_touch_network(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)

    repository = build_record_repository()

    assert isinstance(repository, RecordRepository)
    assert repository.transactions == []
    assert repository.search_results is None
