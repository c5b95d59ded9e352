"""Volatile in-memory Decision Store.

Each decision owns its responses in a dict keyed by voter, so the
one-response-per-voter rule is structural: assigning to an existing key
replaces the value and keeps the key's original insertion position.
Data is lost when the process exits.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dev3.persistence.base import DecisionStore
from dev3.schemas.decision import AIResponse, Consensus, Decision, DecisionStatus
from dev3.schemas.voters import Voter


@dataclass
class _Entry:
    """A decision header plus everything it owns."""

    decision: Decision
    seq: int
    responses: dict[Voter, AIResponse] = field(default_factory=dict)
    consensus: Consensus | None = None

    def snapshot(self) -> Decision:
        return self.decision.model_copy(
            update={
                "responses": [r.model_copy(deep=True) for r in self.responses.values()],
                "consensus": (
                    self.consensus.model_copy(deep=True) if self.consensus else None
                ),
            },
            deep=True,
        )


class MemoryDecisionStore(DecisionStore):
    """Decision Store backed by plain dictionaries."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._entries: dict[str, _Entry] = {}
        self._seq = itertools.count()

    async def _insert_decision(self, decision: Decision) -> None:
        header = decision.model_copy(update={"responses": [], "consensus": None}, deep=True)
        self._entries[decision.id] = _Entry(decision=header, seq=next(self._seq))

    async def _load_decision(self, decision_id: str) -> Decision | None:
        entry = self._entries.get(decision_id)
        return entry.snapshot() if entry else None

    async def _load_all(self) -> list[Decision]:
        entries = sorted(
            self._entries.values(),
            key=lambda e: (e.decision.created_at, e.seq),
            reverse=True,
        )
        return [e.snapshot() for e in entries]

    async def _update_fields(
        self, decision_id: str, fields: dict[str, Any], updated_at: datetime,
    ) -> None:
        entry = self._entries[decision_id]
        entry.decision = entry.decision.model_copy(
            update={**fields, "updated_at": updated_at},
        )

    async def _remove_decision(self, decision_id: str) -> bool:
        return self._entries.pop(decision_id, None) is not None

    async def _write_response(
        self,
        response: AIResponse,
        status: DecisionStatus | None,
        updated_at: datetime,
    ) -> None:
        entry = self._entries[response.decision_id]
        entry.responses[response.voter] = response.model_copy(deep=True)
        if status is not None:
            entry.decision = entry.decision.model_copy(
                update={"status": status, "updated_at": updated_at},
            )

    async def _write_consensus(
        self,
        consensus: Consensus,
        status: DecisionStatus,
        updated_at: datetime,
    ) -> None:
        entry = self._entries[consensus.decision_id]
        entry.consensus = consensus.model_copy(deep=True)
        entry.decision = entry.decision.model_copy(
            update={"status": status, "updated_at": updated_at},
        )
