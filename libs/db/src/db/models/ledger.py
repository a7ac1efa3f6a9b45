from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr

# BIGINT keys in Postgres; SQLite only auto-increments INTEGER PRIMARY KEY.
_PK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: categories
# ---------------------------


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Upload header: statements
# ---------------------------


class Statement(Base):
    __tablename__ = "statements"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(trim(account_name)) > 0", name="ck_statements_account_name"),
    )


# ---------------------------
# Core: transactions
# ---------------------------


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    statement_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("statements.id"), nullable=False, index=True
    )
    trx_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    credit: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    # Running balance after the transaction; not always recoverable from text.
    balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    # Bank-assigned reference (e.g. FT25213...); natural key when present.
    transaction_no: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    # SHA-256 over the statement-independent identity of the row. See
    # `statement_ingest.reconcile.compute_unique_key`.
    unique_key: Mapped[str] = mapped_column(CHAR(64), nullable=False, unique=True)
    # Categorization fields are owned by the admin UI; ingestion never writes them.
    category_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("categories.id"), nullable=True
    )
    hidden: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("credit >= 0", name="ck_transactions_credit_non_negative"),
        CheckConstraint("debit >= 0", name="ck_transactions_debit_non_negative"),
    )


__all__ = [
    "Base",
    "Category",
    "Statement",
    "Transaction",
]
