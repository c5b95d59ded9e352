"""SQLite database layer for the persistent Decision Store.

Manages the SQLite connection and schema creation. Uses aiosqlite for
async access, WAL mode for concurrent reads, and foreign keys so that
deleting a decision cascades to its responses and consensus.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS decisions (
    id           TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    description  TEXT NOT NULL,
    context      TEXT,
    category     TEXT NOT NULL,
    priority     TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS responses (
    id                   TEXT PRIMARY KEY,
    decision_id          TEXT NOT NULL REFERENCES decisions(id) ON DELETE CASCADE,
    voter                TEXT NOT NULL,
    slot                 INTEGER NOT NULL,
    vote                 TEXT NOT NULL,
    reasoning            TEXT NOT NULL DEFAULT '',
    confidence           INTEGER NOT NULL,
    risks_json           TEXT,
    recommendations_json TEXT,
    created_at           TEXT NOT NULL,
    UNIQUE (decision_id, voter)
);

CREATE TABLE IF NOT EXISTS consensus (
    id                    TEXT PRIMARY KEY,
    decision_id           TEXT NOT NULL UNIQUE
                          REFERENCES decisions(id) ON DELETE CASCADE,
    outcome               TEXT NOT NULL,
    unanimity             INTEGER NOT NULL DEFAULT 0,
    approve_count         INTEGER NOT NULL DEFAULT 0,
    reject_count          INTEGER NOT NULL DEFAULT 0,
    abstain_count         INTEGER NOT NULL DEFAULT 0,
    synthesized_reasoning TEXT NOT NULL DEFAULT '',
    action_items_json     TEXT,
    created_at            TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_responses_decision ON responses(decision_id, slot);
CREATE INDEX IF NOT EXISTS idx_decisions_created ON decisions(created_at);
"""


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Open the database and create tables if needed.

    Creates parent directories if they don't exist, enables WAL mode and
    foreign keys, then runs the schema DDL.

    Args:
        db_path: Path to the SQLite database file, or ``:memory:``.
            Supports ~ expansion.

    Returns:
        An open aiosqlite connection ready for use.
    """
    if db_path == ":memory:":
        target = db_path
    else:
        resolved = Path(db_path).expanduser()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        target = str(resolved)

    db = await aiosqlite.connect(target)
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.executescript(_SCHEMA)
    await db.commit()

    logger.info("Decision database initialized at %s", target)
    return db


async def close_db(db: aiosqlite.Connection) -> None:
    """Close the database connection."""
    await db.close()
