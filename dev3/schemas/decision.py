"""Decision, response, and consensus schemas.

Defines the closed value sets (category, priority, status, vote, outcome),
the input models accepted by the store (DecisionCreate, DecisionUpdate,
ResponseCreate), and the snapshot models it returns (Decision, AIResponse,
Consensus).
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from dev3.schemas.voters import Voter


class DecisionCategory(StrEnum):
    """Kind of proposal under deliberation."""

    FEATURE = "feature"
    ARCHITECTURE = "architecture"
    SECURITY = "security"
    PERFORMANCE = "performance"
    INFRASTRUCTURE = "infrastructure"
    PROCESS = "process"
    OTHER = "other"


class DecisionPriority(StrEnum):
    """Informational urgency. Has no effect on deliberation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DecisionStatus(StrEnum):
    """Lifecycle state of a decision.

    ``pending`` → ``deliberating`` once every required voter has responded,
    → ``consensus_reached`` once a consensus is stored. ``deadlock`` is only
    ever set by an explicit update.
    """

    PENDING = "pending"
    DELIBERATING = "deliberating"
    CONSENSUS_REACHED = "consensus_reached"
    DEADLOCK = "deadlock"


class VoteChoice(StrEnum):
    """A single voter's vote."""

    APPROVE = "approve"
    REJECT = "reject"
    ABSTAIN = "abstain"


class ConsensusOutcome(StrEnum):
    """Synthesized result of a completed vote."""

    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REVISION = "needs_revision"


# ── Decisions ────────────────────────────────────────────────────


class DecisionCreate(BaseModel):
    """Input for creating a new decision."""

    title: str = Field(min_length=1, description="Short title of the proposal")
    description: str = Field(min_length=1, description="What is being proposed")
    context: str | None = Field(
        default=None, description="Optional background for the voters",
    )
    category: DecisionCategory = Field(description="Kind of proposal")
    priority: DecisionPriority = Field(
        default=DecisionPriority.MEDIUM, description="Informational urgency",
    )


class DecisionUpdate(BaseModel):
    """Partial update for an existing decision.

    Only fields that were explicitly set are applied.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    context: str | None = None
    category: DecisionCategory | None = None
    priority: DecisionPriority | None = None
    status: DecisionStatus | None = None


# ── Responses ────────────────────────────────────────────────────


class ResponseSubmission(BaseModel):
    """One voter's input on a decision, without the decision reference.

    This is the request body shape; the decision id comes from the route.
    """

    voter: Voter = Field(description="Identity of the voter")
    vote: VoteChoice = Field(description="approve, reject, or abstain")
    reasoning: str = Field(description="Free-text justification for the vote")
    confidence: int = Field(ge=0, le=100, description="Confidence percentage (0-100)")
    risks: list[str] | None = Field(default=None, description="Risks the voter sees")
    recommendations: list[str] | None = Field(
        default=None, description="Recommended follow-up actions",
    )


class ResponseCreate(ResponseSubmission):
    """A response submission bound to a decision."""

    decision_id: str = Field(description="ID of the decision being voted on")


class AIResponse(ResponseCreate):
    """A stored response."""

    id: str = Field(description="Unique response identifier")
    created_at: datetime = Field(description="When this response was submitted")


# ── Consensus ────────────────────────────────────────────────────


class VoteSummary(BaseModel):
    """Vote counts for a completed response set."""

    approve: int = Field(default=0, ge=0)
    reject: int = Field(default=0, ge=0)
    abstain: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.approve + self.reject + self.abstain


class ConsensusBody(BaseModel):
    """Calculated consensus payload, before the store assigns identity."""

    outcome: ConsensusOutcome = Field(description="Synthesized outcome")
    unanimity: bool = Field(description="Whether every voter cast the same vote")
    vote_summary: VoteSummary = Field(description="Vote tally")
    synthesized_reasoning: str = Field(
        description="One paragraph per response, in submission order",
    )
    action_items: list[str] | None = Field(
        default=None,
        description="Deduplicated recommendations (None when there are none)",
    )


class Consensus(ConsensusBody):
    """A stored consensus."""

    id: str = Field(description="Unique consensus identifier")
    decision_id: str = Field(description="ID of the owning decision")
    created_at: datetime = Field(description="When this consensus was calculated")


# ── Snapshot ─────────────────────────────────────────────────────


class Decision(BaseModel):
    """Snapshot of a decision with its current responses and consensus."""

    id: str = Field(description="Unique decision identifier")
    title: str
    description: str
    context: str | None = None
    category: DecisionCategory
    priority: DecisionPriority = DecisionPriority.MEDIUM
    status: DecisionStatus = DecisionStatus.PENDING
    responses: list[AIResponse] = Field(
        default_factory=list,
        description="At most one response per voter, in submission order",
    )
    consensus: Consensus | None = Field(
        default=None, description="Current consensus, if one has been calculated",
    )
    created_at: datetime
    updated_at: datetime
