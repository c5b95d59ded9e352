"""Aggregate statistics schema."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DecisionStats(BaseModel):
    """Counts across every stored decision."""

    total_decisions: int = Field(default=0, ge=0)
    by_status: dict[str, int] = Field(
        default_factory=dict, description="Status → count (every status present)",
    )
    by_category: dict[str, int] = Field(
        default_factory=dict, description="Category → count (only categories in use)",
    )
    by_priority: dict[str, int] = Field(
        default_factory=dict, description="Priority → count (only priorities in use)",
    )
    consensus_outcomes: dict[str, int] = Field(
        default_factory=dict, description="Outcome → count (every outcome present)",
    )
    unanimous_decisions: int = Field(
        default=0, ge=0, description="Decisions whose consensus was unanimous",
    )
