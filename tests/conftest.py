"""Pytest configuration for test isolation.

The ingestion pipeline reads a few settings from the environment
(``DATABASE_URL``, ``STATEMENT_INGEST_BATCH_SIZE``) and ``db.client`` keeps a
process-wide engine. Either can leak between tests: a developer's ``.env`` may
point at a real database, and an engine bound to one test's SQLite file would
refuse the next test's URL.

To keep tests hermetic, an autouse fixture clears those variables and disposes
the shared engine after every test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from db.client import dispose_engine


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop env-driven settings and reset the shared engine around each test."""

    for name in ("DATABASE_URL", "STATEMENT_INGEST_BATCH_SIZE", "STATEMENT_INGEST_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    dispose_engine()
    yield
    dispose_engine()


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    """A freshly created SQLite database with the ledger schema."""

    from tests.helpers.db import bootstrap_sqlite_db

    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
