"""Decision export formatters.

Provides JSON and Markdown export functions for decision snapshots.
"""

from __future__ import annotations

from dev3.schemas.decision import Decision
from dev3.schemas.voters import VOTER_PROFILES


def export_json(decision: Decision) -> str:
    """Export a decision as a formatted JSON string.

    Returns:
        Pretty-printed JSON string of the full decision snapshot.
    """
    return decision.model_dump_json(indent=2)


def export_markdown(decision: Decision) -> str:
    """Export a decision as a human-readable Markdown report.

    Sections cover decision metadata, each voter's response, and the
    consensus when one has been reached.

    Returns:
        Markdown-formatted string.
    """
    lines: list[str] = []

    lines.append(f"# Decision: {decision.title}")
    lines.append("")

    # Metadata
    lines.append("## Metadata")
    lines.append("")
    lines.append(f"- **ID:** `{decision.id}`")
    lines.append(f"- **Category:** {decision.category}")
    lines.append(f"- **Priority:** {decision.priority}")
    lines.append(f"- **Status:** {decision.status}")
    lines.append(f"- **Created:** {decision.created_at.isoformat()}")
    lines.append(f"- **Updated:** {decision.updated_at.isoformat()}")
    lines.append("")
    lines.append(decision.description)
    lines.append("")
    if decision.context:
        lines.append("### Context")
        lines.append("")
        lines.append(decision.context)
        lines.append("")

    # Responses
    if decision.responses:
        lines.append("## Responses")
        lines.append("")
        for r in decision.responses:
            profile = VOTER_PROFILES[r.voter]
            lines.append(f"### {profile.name} · {profile.role}")
            lines.append("")
            lines.append(f"- **Vote:** {r.vote.upper()}")
            lines.append(f"- **Confidence:** {r.confidence}%")
            lines.append(f"- **Submitted:** {r.created_at.isoformat()}")
            lines.append("")
            lines.append(r.reasoning)
            lines.append("")
            if r.risks:
                lines.append("**Risks:**")
                lines.append("")
                lines.extend(f"- {risk}" for risk in r.risks)
                lines.append("")
            if r.recommendations:
                lines.append("**Recommendations:**")
                lines.append("")
                lines.extend(f"- {rec}" for rec in r.recommendations)
                lines.append("")

    # Consensus
    consensus = decision.consensus
    if consensus:
        summary = consensus.vote_summary
        lines.append("## Consensus")
        lines.append("")
        lines.append(f"- **Outcome:** {consensus.outcome.upper()}")
        lines.append(f"- **Unanimous:** {'yes' if consensus.unanimity else 'no'}")
        lines.append(
            f"- **Votes:** {summary.approve} approve, "
            f"{summary.reject} reject, {summary.abstain} abstain"
        )
        lines.append(f"- **Reached:** {consensus.created_at.isoformat()}")
        lines.append("")
        lines.append(consensus.synthesized_reasoning)
        lines.append("")
        if consensus.action_items:
            lines.append("### Action Items")
            lines.append("")
            lines.extend(f"- [ ] {item}" for item in consensus.action_items)
            lines.append("")

    return "\n".join(lines)
