"""Decision Store contract and lifecycle rules.

DecisionStore owns every rule that does not depend on the storage
technology: input validation, id and timestamp assignment, the
one-response-per-voter replacement rule, status transitions, and
per-decision serialization. Subclasses only implement the primitive
reads and writes.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from dev3.consensus.deliberation import build_consensus
from dev3.errors import DecisionNotFoundError, ValidationFailedError
from dev3.schemas.decision import (
    AIResponse,
    Consensus,
    ConsensusBody,
    Decision,
    DecisionCreate,
    DecisionStatus,
    DecisionUpdate,
    ResponseCreate,
)
from dev3.schemas.voters import REQUIRED_VOTERS, Voter

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


def _validate(model: type[_M], data: _M | BaseModel | Mapping[str, Any]) -> _M:
    """Coerce raw input into ``model``, raising ValidationFailedError on bad data."""
    if type(data) is model:
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailedError(
            f"Invalid {model.__name__}",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


class DecisionStore(ABC):
    """Authoritative holder of decisions, responses, and consensus records.

    All reads return detached snapshots: a Decision always carries its
    current responses and its current consensus (or None). Mutations on a
    single decision are serialized with a per-decision asyncio lock;
    different decisions never contend.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        voters: Sequence[Voter] = REQUIRED_VOTERS,
    ) -> None:
        self._clock = clock or _utcnow
        self._new_id = id_factory or _new_id
        self.voters: tuple[Voter, ...] = tuple(voters)
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, decision_id: str) -> asyncio.Lock:
        lock = self._locks.get(decision_id)
        if lock is None:
            lock = self._locks[decision_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _locked(self, decision_id: str) -> AsyncIterator[None]:
        """Hold the decision's lock; forget it if the decision turns out not to exist."""
        lock = self._lock(decision_id)
        try:
            async with lock:
                yield
        except DecisionNotFoundError:
            if self._locks.get(decision_id) is lock and not lock.locked():
                del self._locks[decision_id]
            raise

    async def close(self) -> None:
        """Release any resources held by the store."""

    # ── Decisions ────────────────────────────────────────────────

    async def create_decision(
        self, data: DecisionCreate | Mapping[str, Any],
    ) -> Decision:
        """Create a pending decision with no responses and no consensus."""
        payload = _validate(DecisionCreate, data)
        now = self._clock()
        decision = Decision(
            id=self._new_id(),
            **payload.model_dump(),
            status=DecisionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        await self._insert_decision(decision)
        logger.info("Created decision %s (%s)", decision.id, decision.title)
        return decision

    async def get_decision(self, decision_id: str) -> Decision:
        """Return the decision snapshot.

        Raises:
            DecisionNotFoundError: If no decision has this id.
        """
        decision = await self._load_decision(decision_id)
        if decision is None:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def list_decisions(self) -> list[Decision]:
        """Return every decision, newest first."""
        return await self._load_all()

    async def update_decision(
        self,
        decision_id: str,
        updates: DecisionUpdate | Mapping[str, Any],
    ) -> Decision:
        """Apply the explicitly supplied fields and refresh ``updated_at``.

        Responses and consensus are never touched. The only status an update
        may set is ``deadlock``; every other status is reached through
        responses and consensus.

        Raises:
            DecisionNotFoundError: If no decision has this id.
            ValidationFailedError: If a field is invalid or ``status`` is
                anything other than ``deadlock``.
        """
        payload = _validate(DecisionUpdate, updates)
        # None only makes sense for the optional context field
        fields = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "context"
        }
        status = fields.get("status")
        if status is not None and status != DecisionStatus.DEADLOCK:
            raise ValidationFailedError(
                f"Status '{status}' cannot be set by an update",
                details=[{
                    "loc": ("status",),
                    "msg": "Only 'deadlock' may be set explicitly",
                    "type": "value_error",
                    "input": str(status),
                }],
            )
        async with self._locked(decision_id):
            current = await self.get_decision(decision_id)
            await self._update_fields(decision_id, fields, self._clock())
            if "status" in fields and fields["status"] != current.status:
                logger.info(
                    "Decision %s status %s → %s (explicit update)",
                    decision_id, current.status, fields["status"],
                )
            return await self.get_decision(decision_id)

    async def delete_decision(self, decision_id: str) -> bool:
        """Delete a decision with its responses and consensus.

        Returns True if the decision existed.
        """
        async with self._locked(decision_id):
            deleted = await self._remove_decision(decision_id)
        self._locks.pop(decision_id, None)
        if deleted:
            logger.info("Deleted decision %s", decision_id)
        return deleted

    # ── Responses ────────────────────────────────────────────────

    async def submit_response(
        self, data: ResponseCreate | Mapping[str, Any],
    ) -> AIResponse:
        """Record a voter's response, replacing any earlier one from that voter.

        A replacement keeps the earlier response's position but gets a new
        id and timestamp. When the write completes the required voter set
        and the decision is still pending, it moves to ``deliberating``.
        That move happens once; later resubmissions never revert it.

        Raises:
            DecisionNotFoundError: If the referenced decision does not exist.
            ValidationFailedError: If the response is malformed.
        """
        payload = _validate(ResponseCreate, data)
        decision_id = payload.decision_id

        async with self._locked(decision_id):
            decision = await self.get_decision(decision_id)
            now = self._clock()
            response = AIResponse(
                **payload.model_dump(), id=self._new_id(), created_at=now,
            )

            present = {r.voter for r in decision.responses}
            if response.voter in present:
                logger.debug(
                    "Replacing %s response on decision %s", response.voter, decision_id,
                )
            present.add(response.voter)

            new_status = None
            if decision.status == DecisionStatus.PENDING and all(
                v in present for v in self.voters
            ):
                new_status = DecisionStatus.DELIBERATING

            await self._write_response(response, new_status, now)

        if new_status is not None:
            logger.info(
                "Decision %s is deliberating: all %d voters responded",
                decision_id, len(self.voters),
            )
        return response

    async def list_responses(self, decision_id: str) -> list[AIResponse]:
        """Return the current responses for a decision, in submission order.

        Raises:
            DecisionNotFoundError: If the decision does not exist.
        """
        decision = await self.get_decision(decision_id)
        return decision.responses

    # ── Consensus ────────────────────────────────────────────────

    async def set_consensus(
        self,
        decision_id: str,
        body: ConsensusBody | Mapping[str, Any],
    ) -> Consensus:
        """Store (or overwrite) a decision's consensus.

        Always moves the decision to ``consensus_reached``. Completeness of
        the response set is not checked here; use ``reach_consensus`` for
        the checked path.
        """
        payload = _validate(ConsensusBody, body)
        async with self._locked(decision_id):
            await self.get_decision(decision_id)
            return await self._store_consensus(decision_id, payload)

    async def get_consensus(self, decision_id: str) -> Consensus | None:
        """Return the current consensus, or None if there is none."""
        decision = await self._load_decision(decision_id)
        if decision is None:
            return None
        return decision.consensus

    async def reach_consensus(self, decision_id: str) -> Consensus:
        """Calculate and store the consensus for a decision.

        Reading the responses, checking completeness, calculating, and
        writing all happen under the decision's lock.

        Raises:
            DecisionNotFoundError: If the decision does not exist.
            IncompleteResponsesError: If a required voter has not responded.
                No consensus is written and the status is left unchanged.
        """
        async with self._locked(decision_id):
            decision = await self.get_decision(decision_id)
            body = build_consensus(decision_id, decision.responses, self.voters)
            return await self._store_consensus(decision_id, body)

    async def _store_consensus(self, decision_id: str, body: ConsensusBody) -> Consensus:
        now = self._clock()
        consensus = Consensus(
            **body.model_dump(),
            id=self._new_id(),
            decision_id=decision_id,
            created_at=now,
        )
        await self._write_consensus(consensus, DecisionStatus.CONSENSUS_REACHED, now)
        logger.info(
            "Consensus on %s: %s%s",
            decision_id, consensus.outcome,
            " (unanimous)" if consensus.unanimity else "",
        )
        return consensus

    # ── Storage primitives ───────────────────────────────────────

    @abstractmethod
    async def _insert_decision(self, decision: Decision) -> None:
        """Persist a freshly created decision."""

    @abstractmethod
    async def _load_decision(self, decision_id: str) -> Decision | None:
        """Return a full snapshot, or None if the id is unknown."""

    @abstractmethod
    async def _load_all(self) -> list[Decision]:
        """Return every snapshot, newest ``created_at`` first."""

    @abstractmethod
    async def _update_fields(
        self, decision_id: str, fields: dict[str, Any], updated_at: datetime,
    ) -> None:
        """Overwrite decision attributes and ``updated_at``."""

    @abstractmethod
    async def _remove_decision(self, decision_id: str) -> bool:
        """Remove a decision and everything it owns."""

    @abstractmethod
    async def _write_response(
        self,
        response: AIResponse,
        status: DecisionStatus | None,
        updated_at: datetime,
    ) -> None:
        """Insert or replace-in-place a response, optionally setting status."""

    @abstractmethod
    async def _write_consensus(
        self,
        consensus: Consensus,
        status: DecisionStatus,
        updated_at: datetime,
    ) -> None:
        """Insert or overwrite the consensus and set the decision status."""
