"""Aggregate statistics across stored decisions."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from dev3.schemas.decision import ConsensusOutcome, Decision, DecisionStatus
from dev3.schemas.stats import DecisionStats


def compute_stats(decisions: Iterable[Decision]) -> DecisionStats:
    """Count decisions by status, category, priority, and consensus outcome.

    Every status and outcome key is present even when its count is zero;
    category and priority only list values that occur.
    """
    by_status = {status.value: 0 for status in DecisionStatus}
    outcomes = {outcome.value: 0 for outcome in ConsensusOutcome}
    by_category: Counter[str] = Counter()
    by_priority: Counter[str] = Counter()
    total = 0
    unanimous = 0

    for decision in decisions:
        total += 1
        by_status[decision.status.value] += 1
        by_category[decision.category.value] += 1
        by_priority[decision.priority.value] += 1
        if decision.consensus:
            outcomes[decision.consensus.outcome.value] += 1
            if decision.consensus.unanimity:
                unanimous += 1

    return DecisionStats(
        total_decisions=total,
        by_status=by_status,
        by_category=dict(by_category),
        by_priority=dict(by_priority),
        consensus_outcomes=outcomes,
        unanimous_decisions=unanimous,
    )
