"""The fixed set of required voters and their display metadata.

Every decision needs one response from each member of ``REQUIRED_VOTERS``
before a consensus can be calculated. The profiles label voters in
synthesized narratives, the CLI, and the ``/api/voters`` endpoint.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class Voter(StrEnum):
    """Identity of a voting participant."""

    GROK = "grok"
    CHATGPT = "chatgpt"
    CLAUDE = "claude"


class VoterProfile(BaseModel):
    """Display metadata for a single voter."""

    voter: Voter = Field(description="Voter identity")
    name: str = Field(description="Display name used in narratives")
    role: str = Field(description="Short role name")
    mandate: str = Field(description="One-line description of what the voter weighs")


VOTER_PROFILES: dict[Voter, VoterProfile] = {
    Voter.GROK: VoterProfile(
        voter=Voter.GROK,
        name="Grok",
        role="Risk & Momentum",
        mandate="Pushes for bold moves and calls out the risks of standing still",
    ),
    Voter.CHATGPT: VoterProfile(
        voter=Voter.CHATGPT,
        name="ChatGPT",
        role="Structure & Execution",
        mandate="Checks that the proposal can actually be delivered as described",
    ),
    Voter.CLAUDE: VoterProfile(
        voter=Voter.CLAUDE,
        name="Claude",
        role="Ethics & Restraint",
        mandate="Weighs user impact and argues for caution where harm is possible",
    ),
}

# Order matters: missing-voter reports follow this order
REQUIRED_VOTERS: tuple[Voter, ...] = tuple(Voter)
