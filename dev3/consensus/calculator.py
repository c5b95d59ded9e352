"""Vote tallying, outcome determination, and narrative synthesis.

Pure functions that turn a complete response set into a ConsensusBody.
Nothing here touches the store; completeness is checked by the caller
(see ``dev3.consensus.deliberation``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dev3.schemas.decision import (
    AIResponse,
    ConsensusBody,
    ConsensusOutcome,
    VoteChoice,
    VoteSummary,
)
from dev3.schemas.voters import REQUIRED_VOTERS, VOTER_PROFILES, Voter

logger = logging.getLogger(__name__)


def majority_threshold(voter_count: int) -> int:
    """Smallest vote count that is strictly more than half of the voters."""
    return voter_count // 2 + 1


def find_missing_voters(
    responses: Sequence[AIResponse],
    voters: Sequence[Voter] = REQUIRED_VOTERS,
) -> list[Voter]:
    """Return the required voters with no response, in required order."""
    responded = {r.voter for r in responses}
    return [v for v in voters if v not in responded]


def tally_votes(responses: Sequence[AIResponse]) -> VoteSummary:
    """Count responses by vote value."""
    counts = {choice: 0 for choice in VoteChoice}
    for response in responses:
        counts[response.vote] += 1
    return VoteSummary(
        approve=counts[VoteChoice.APPROVE],
        reject=counts[VoteChoice.REJECT],
        abstain=counts[VoteChoice.ABSTAIN],
    )


def determine_outcome(summary: VoteSummary, voter_count: int) -> ConsensusOutcome:
    """Apply the majority rule.

    Approval is checked before rejection. Anything short of a strict
    majority either way, ties included, needs revision.
    """
    threshold = majority_threshold(voter_count)
    if summary.approve >= threshold:
        return ConsensusOutcome.APPROVED
    if summary.reject >= threshold:
        return ConsensusOutcome.REJECTED
    return ConsensusOutcome.NEEDS_REVISION


def is_unanimous(responses: Sequence[AIResponse]) -> bool:
    """True when every response carries the same vote value.

    An all-abstain set counts as unanimous even though its outcome is
    ``needs_revision``.
    """
    return len({r.vote for r in responses}) == 1


def synthesize_reasoning(responses: Sequence[AIResponse]) -> str:
    """Build one paragraph per response, joined by blank lines."""
    paragraphs = []
    for r in responses:
        profile = VOTER_PROFILES[r.voter]
        paragraphs.append(
            f"{profile.name} ({r.vote}, {r.confidence}% confidence): {r.reasoning}"
        )
    return "\n\n".join(paragraphs)


def collect_action_items(responses: Sequence[AIResponse]) -> list[str] | None:
    """Merge recommendations, dropping exact duplicates.

    First occurrence wins the position. Returns None instead of an empty
    list so the stored consensus leaves the field absent.
    """
    merged = dict.fromkeys(
        item for r in responses for item in (r.recommendations or [])
    )
    return list(merged) or None


def calculate_consensus(
    responses: Sequence[AIResponse],
    voters: Sequence[Voter] = REQUIRED_VOTERS,
) -> ConsensusBody:
    """Synthesize a complete response set into a consensus payload.

    Args:
        responses: One response per required voter, in submission order.
        voters: The required voter set; its size sets the majority threshold.

    Returns:
        ConsensusBody with outcome, unanimity, tally, narrative, and
        action items.
    """
    summary = tally_votes(responses)
    outcome = determine_outcome(summary, len(voters))
    unanimity = is_unanimous(responses)

    logger.debug(
        "Tallied %d approve / %d reject / %d abstain → %s%s",
        summary.approve, summary.reject, summary.abstain,
        outcome, " (unanimous)" if unanimity else "",
    )

    return ConsensusBody(
        outcome=outcome,
        unanimity=unanimity,
        vote_summary=summary,
        synthesized_reasoning=synthesize_reasoning(responses),
        action_items=collect_action_items(responses),
    )
