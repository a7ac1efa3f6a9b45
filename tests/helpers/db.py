"""DB helpers for tests: bootstrap a temporary SQLite DB and seed reference rows."""

from __future__ import annotations

import os
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import Category, Statement, Transaction
from sqlalchemy import select
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_transactions_schema_in_sync(url)

    # Make it the default for any code paths that read from the environment
    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_category(*, database_url: str, name: str) -> int:
    with session_scope(database_url=database_url) as session:
        category = Category(name=name)
        session.add(category)
        session.flush()
        return category.id


def seed_statement(*, database_url: str, account_name: str = "Checking") -> int:
    with session_scope(database_url=database_url) as session:
        stmt = Statement(account_name=account_name, file_name="seed.pdf")
        session.add(stmt)
        session.flush()
        return stmt.id


def all_transactions(*, database_url: str) -> list[Transaction]:
    """Return every ``transactions`` row ordered by id (detached, fully loaded)."""

    with session_scope(database_url=database_url) as session:
        return list(session.execute(select(Transaction).order_by(Transaction.id)).scalars())


def _assert_transactions_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column set matches the SQLite table column set."""

    expected = {c.name for c in Transaction.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('transactions')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"transactions schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
    )
