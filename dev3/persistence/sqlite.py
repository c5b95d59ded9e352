"""Persistent Decision Store backed by SQLite.

Implements the DecisionStore primitives on an aiosqlite connection
opened by ``database.init_db()``. Responses keep a ``slot`` column so a
replacement from the same voter stays in its original position. Every
primitive holds one connection-wide asyncio lock, so a snapshot read
never interleaves with a write.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any

import aiosqlite

from dev3.persistence.base import DecisionStore
from dev3.persistence.database import close_db
from dev3.schemas.decision import (
    AIResponse,
    Consensus,
    Decision,
    DecisionStatus,
    VoteSummary,
)

logger = logging.getLogger(__name__)

# Columns that update_decision may overwrite
_UPDATABLE = ("title", "description", "context", "category", "priority", "status")


def _ts(value: datetime) -> str:
    # Fixed precision keeps lexicographic order equal to time order
    return value.isoformat(timespec="microseconds")


def _dump_list(items: list[str] | None) -> str | None:
    return json.dumps(items) if items is not None else None


def _load_list(raw: str | None) -> list[str] | None:
    return json.loads(raw) if raw is not None else None


class SQLiteDecisionStore(DecisionStore):
    """Decision Store on a single aiosqlite connection."""

    def __init__(self, db: aiosqlite.Connection, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._db = db
        self._db.row_factory = aiosqlite.Row
        # Held for the whole of every primitive below
        self._io = asyncio.Lock()

    async def close(self) -> None:
        await close_db(self._db)

    async def _insert_decision(self, decision: Decision) -> None:
        async with self._io:
            await self._db.execute(
                """
                INSERT INTO decisions
                    (id, title, description, context, category, priority,
                     status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    decision.id,
                    decision.title,
                    decision.description,
                    decision.context,
                    decision.category.value,
                    decision.priority.value,
                    decision.status.value,
                    _ts(decision.created_at),
                    _ts(decision.updated_at),
                ),
            )
            await self._db.commit()

    async def _load_decision(self, decision_id: str) -> Decision | None:
        async with self._io:
            async with self._db.execute(
                "SELECT * FROM decisions WHERE id = ?", (decision_id,),
            ) as cursor:
                row = await cursor.fetchone()
            if not row:
                return None
            return await self._row_to_decision(row)

    async def _load_all(self) -> list[Decision]:
        decisions: list[Decision] = []
        async with self._io:
            async with self._db.execute(
                "SELECT * FROM decisions ORDER BY created_at DESC, rowid DESC",
            ) as cursor:
                rows = await cursor.fetchall()
            for row in rows:
                decisions.append(await self._row_to_decision(row))
        return decisions

    async def _update_fields(
        self, decision_id: str, fields: dict[str, Any], updated_at: datetime,
    ) -> None:
        columns = [key for key in fields if key in _UPDATABLE]
        assignments = [f"{col} = ?" for col in columns] + ["updated_at = ?"]
        params: list[object] = [
            fields[col].value if isinstance(fields[col], Enum) else fields[col]
            for col in columns
        ]
        params.extend([_ts(updated_at), decision_id])
        async with self._io:
            await self._db.execute(
                f"UPDATE decisions SET {', '.join(assignments)} WHERE id = ?",  # noqa: S608
                params,
            )
            await self._db.commit()

    async def _remove_decision(self, decision_id: str) -> bool:
        async with self._io:
            cursor = await self._db.execute(
                "DELETE FROM decisions WHERE id = ?", (decision_id,),
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def _write_response(
        self,
        response: AIResponse,
        status: DecisionStatus | None,
        updated_at: datetime,
    ) -> None:
        values = (
            response.id,
            response.vote.value,
            response.reasoning,
            response.confidence,
            _dump_list(response.risks),
            _dump_list(response.recommendations),
            _ts(response.created_at),
        )

        async with self._io:
            # Replace in place: the slot column is left untouched
            cursor = await self._db.execute(
                """
                UPDATE responses
                   SET id = ?, vote = ?, reasoning = ?, confidence = ?,
                       risks_json = ?, recommendations_json = ?, created_at = ?
                 WHERE decision_id = ? AND voter = ?
                """,
                (*values, response.decision_id, response.voter.value),
            )
            if cursor.rowcount == 0:
                await self._db.execute(
                    """
                    INSERT INTO responses
                        (id, vote, reasoning, confidence, risks_json,
                         recommendations_json, created_at, decision_id, voter, slot)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?,
                            (SELECT COALESCE(MAX(slot) + 1, 0)
                               FROM responses WHERE decision_id = ?))
                    """,
                    (*values, response.decision_id, response.voter.value,
                     response.decision_id),
                )

            if status is not None:
                await self._db.execute(
                    "UPDATE decisions SET status = ?, updated_at = ? WHERE id = ?",
                    (status.value, _ts(updated_at), response.decision_id),
                )
            await self._db.commit()

    async def _write_consensus(
        self,
        consensus: Consensus,
        status: DecisionStatus,
        updated_at: datetime,
    ) -> None:
        summary = consensus.vote_summary
        async with self._io:
            await self._db.execute(
                """
                INSERT OR REPLACE INTO consensus
                    (id, decision_id, outcome, unanimity, approve_count,
                     reject_count, abstain_count, synthesized_reasoning,
                     action_items_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    consensus.id,
                    consensus.decision_id,
                    consensus.outcome.value,
                    int(consensus.unanimity),
                    summary.approve,
                    summary.reject,
                    summary.abstain,
                    consensus.synthesized_reasoning,
                    _dump_list(consensus.action_items),
                    _ts(consensus.created_at),
                ),
            )
            await self._db.execute(
                "UPDATE decisions SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, _ts(updated_at), consensus.decision_id),
            )
            await self._db.commit()

    async def _row_to_decision(self, row: aiosqlite.Row) -> Decision:
        """Convert a decisions row plus its child rows into a Decision.

        Callers hold ``self._io`` so the three reads see one state.
        """
        decision_id = row["id"]

        responses: list[AIResponse] = []
        async with self._db.execute(
            "SELECT * FROM responses WHERE decision_id = ? ORDER BY slot",
            (decision_id,),
        ) as cursor:
            async for rrow in cursor:
                responses.append(AIResponse(
                    id=rrow["id"],
                    decision_id=decision_id,
                    voter=rrow["voter"],
                    vote=rrow["vote"],
                    reasoning=rrow["reasoning"],
                    confidence=rrow["confidence"],
                    risks=_load_list(rrow["risks_json"]),
                    recommendations=_load_list(rrow["recommendations_json"]),
                    created_at=datetime.fromisoformat(rrow["created_at"]),
                ))

        consensus = None
        async with self._db.execute(
            "SELECT * FROM consensus WHERE decision_id = ?", (decision_id,),
        ) as cursor:
            crow = await cursor.fetchone()
        if crow:
            consensus = Consensus(
                id=crow["id"],
                decision_id=decision_id,
                outcome=crow["outcome"],
                unanimity=bool(crow["unanimity"]),
                vote_summary=VoteSummary(
                    approve=crow["approve_count"],
                    reject=crow["reject_count"],
                    abstain=crow["abstain_count"],
                ),
                synthesized_reasoning=crow["synthesized_reasoning"],
                action_items=_load_list(crow["action_items_json"]),
                created_at=datetime.fromisoformat(crow["created_at"]),
            )

        return Decision(
            id=decision_id,
            title=row["title"],
            description=row["description"],
            context=row["context"],
            category=row["category"],
            priority=row["priority"],
            status=row["status"],
            responses=responses,
            consensus=consensus,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
