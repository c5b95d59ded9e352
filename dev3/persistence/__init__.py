"""Dev3 Decision Store.

Provides the DecisionStore contract with in-memory and SQLite-backed
implementations, the ``open_store`` factory, and JSON/Markdown export.
"""

from __future__ import annotations

from typing import Any

from dev3.persistence.base import DecisionStore
from dev3.persistence.database import close_db, init_db
from dev3.persistence.export import export_json, export_markdown
from dev3.persistence.memory import MemoryDecisionStore
from dev3.persistence.sqlite import SQLiteDecisionStore
from dev3.schemas.config import Dev3Config, StoreBackend


async def open_store(config: Dev3Config | None = None, **kwargs: Any) -> DecisionStore:
    """Open the Decision Store selected by ``config.store.backend``.

    Extra keyword arguments (``clock``, ``id_factory``, ``voters``) are
    passed to the store constructor. Call ``store.close()`` when done.
    """
    config = config or Dev3Config()
    if config.store.backend == StoreBackend.MEMORY:
        return MemoryDecisionStore(**kwargs)
    db = await init_db(config.store.db_path)
    return SQLiteDecisionStore(db, **kwargs)


__all__ = [
    "DecisionStore",
    "MemoryDecisionStore",
    "SQLiteDecisionStore",
    "close_db",
    "export_json",
    "export_markdown",
    "init_db",
    "open_store",
]
