# ruff: noqa: I001
"""Ledger core tables: categories, statements, transactions.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _pk_type() -> sa.types.TypeEngine:
    return sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", _pk_type(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "statements",
        sa.Column("id", _pk_type(), primary_key=True, autoincrement=True),
        sa.Column("account_name", sa.Text(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "length(trim(account_name)) > 0", name="ck_statements_account_name"
        ),
    )

    op.create_table(
        "transactions",
        sa.Column("id", _pk_type(), primary_key=True, autoincrement=True),
        sa.Column(
            "statement_id",
            _pk_type(),
            sa.ForeignKey("statements.id"),
            nullable=False,
        ),
        sa.Column("trx_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("credit", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("debit", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("balance", sa.Numeric(18, 2), nullable=True),
        sa.Column("transaction_no", sa.String(), nullable=True),
        sa.Column("unique_key", sa.CHAR(64), nullable=False),
        sa.Column(
            "category_id",
            _pk_type(),
            sa.ForeignKey("categories.id"),
            nullable=True,
        ),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("unique_key", name="uq_transactions_unique_key"),
        sa.CheckConstraint("credit >= 0", name="ck_transactions_credit_non_negative"),
        sa.CheckConstraint("debit >= 0", name="ck_transactions_debit_non_negative"),
    )
    op.create_index("ix_transactions_statement_id", "transactions", ["statement_id"])
    op.create_index("ix_transactions_transaction_no", "transactions", ["transaction_no"])


def downgrade() -> None:
    op.drop_index("ix_transactions_transaction_no", table_name="transactions")
    op.drop_index("ix_transactions_statement_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("statements")
    op.drop_table("categories")
