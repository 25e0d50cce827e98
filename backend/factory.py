"""Composition root for backend services."""

from __future__ import annotations

import threading

from backend.db.supabase_client import RemoteStore, SupabaseClient, SupabaseSettings
from backend.repositories.record_repository import RecordRepository
from shared import config


class SupabaseStoreProvider:
    """Build the Supabase client lazily, re-checking configuration on every call.

    Settings are validated before any request is attempted, so a missing or
    placeholder URL surfaces as `ConfigurationError` instead of a failed call.
    Once the environment is fixed, the next call picks the new values up.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._client: SupabaseClient | None = None

    def __call__(self) -> RemoteStore:
        url, anon_key = config.require_supabase_settings()
        settings = SupabaseSettings(
            url=url,
            anon_key=anon_key,
            timeout_seconds=config.supabase_timeout_seconds(),
        )
        with self._lock:
            if self._client is None or self._client.settings != settings:
                self._client = SupabaseClient(settings)
            return self._client


def build_record_repository(store_provider: SupabaseStoreProvider | None = None) -> RecordRepository:
    """Build the session record repository backed by Supabase."""

    return RecordRepository(
        store_provider or SupabaseStoreProvider(),
        load_limit=config.records_load_limit(),
    )
