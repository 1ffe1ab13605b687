"""
Storage backend selection.

``create_store()`` builds the backend named by STORAGE_BACKEND.
"""

from __future__ import annotations

from court_booking.config import DB_PATH, JSON_DATA_PATH, STORAGE_BACKEND
from court_booking.storage.base import Store
from court_booking.storage.json_file import JsonFileStore
from court_booking.storage.sqlite import SQLiteStore


def create_store() -> Store:
    if STORAGE_BACKEND == "sqlite":
        return SQLiteStore(DB_PATH)
    if STORAGE_BACKEND == "json":
        return JsonFileStore(JSON_DATA_PATH)
    raise ValueError(f"Unknown STORAGE_BACKEND {STORAGE_BACKEND!r} (expected 'sqlite' or 'json')")
