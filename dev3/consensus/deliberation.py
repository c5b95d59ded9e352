"""Completeness check in front of the consensus calculator.

A consensus may only be calculated once every required voter has a
response on file. ``build_consensus`` enforces that and reports exactly
who is still missing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dev3.consensus.calculator import calculate_consensus, find_missing_voters
from dev3.errors import IncompleteResponsesError
from dev3.schemas.decision import AIResponse, ConsensusBody
from dev3.schemas.voters import REQUIRED_VOTERS, Voter

logger = logging.getLogger(__name__)


def ensure_complete(
    decision_id: str,
    responses: Sequence[AIResponse],
    voters: Sequence[Voter] = REQUIRED_VOTERS,
) -> None:
    """Raise IncompleteResponsesError if any required voter has not responded."""
    missing = find_missing_voters(responses, voters)
    if missing:
        responded = [r.voter for r in responses]
        logger.info(
            "Consensus on %s blocked: missing %s",
            decision_id, ", ".join(missing),
        )
        raise IncompleteResponsesError(decision_id, responded=responded, missing=missing)


def build_consensus(
    decision_id: str,
    responses: Sequence[AIResponse],
    voters: Sequence[Voter] = REQUIRED_VOTERS,
) -> ConsensusBody:
    """Check completeness, then calculate the consensus payload.

    Raises:
        IncompleteResponsesError: If a required voter is missing. Nothing
            is calculated in that case.
    """
    ensure_complete(decision_id, responses, voters)
    return calculate_consensus(responses, voters)
