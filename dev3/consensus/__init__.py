"""Consensus calculation for Dev3.

Provides vote tallying, majority outcome, unanimity detection, narrative
synthesis, action-item merging, and the completeness precondition.
"""

from dev3.consensus.calculator import (
    calculate_consensus,
    collect_action_items,
    determine_outcome,
    find_missing_voters,
    is_unanimous,
    majority_threshold,
    synthesize_reasoning,
    tally_votes,
)
from dev3.consensus.deliberation import build_consensus, ensure_complete

__all__ = [
    "build_consensus",
    "calculate_consensus",
    "collect_action_items",
    "determine_outcome",
    "ensure_complete",
    "find_missing_voters",
    "is_unanimous",
    "majority_threshold",
    "synthesize_reasoning",
    "tally_votes",
]
