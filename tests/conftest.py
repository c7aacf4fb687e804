"""Shared fixtures for the record grid tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reflex_data_explorer.models import Column, user_columns
from reflex_data_explorer.record_store import RecordStore

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store() -> RecordStore:
    """A fresh 250-record store per test."""
    return RecordStore(250, now=FIXED_NOW)


@pytest.fixture
def columns() -> list[Column]:
    return user_columns()
