"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models (statements and their transactions) used
by ``statement_ingest``.
"""

from .ledger import Base, Category, Statement, Transaction

__all__ = [
    "Base",
    "Category",
    "Statement",
    "Transaction",
]
