"""Dev3 schema definitions.

All Pydantic v2 models used by the store, the consensus calculator, the
request layer, and the CLI.
"""

from dev3.schemas.config import Dev3Config, ServerConfig, StoreBackend, StoreConfig
from dev3.schemas.decision import (
    AIResponse,
    Consensus,
    ConsensusBody,
    ConsensusOutcome,
    Decision,
    DecisionCategory,
    DecisionCreate,
    DecisionPriority,
    DecisionStatus,
    DecisionUpdate,
    ResponseCreate,
    ResponseSubmission,
    VoteChoice,
    VoteSummary,
)
from dev3.schemas.stats import DecisionStats
from dev3.schemas.voters import REQUIRED_VOTERS, VOTER_PROFILES, Voter, VoterProfile

__all__ = [
    "AIResponse",
    "Consensus",
    "ConsensusBody",
    "ConsensusOutcome",
    "Decision",
    "DecisionCategory",
    "DecisionCreate",
    "DecisionPriority",
    "DecisionStats",
    "DecisionStatus",
    "DecisionUpdate",
    "Dev3Config",
    "REQUIRED_VOTERS",
    "ResponseCreate",
    "ResponseSubmission",
    "ServerConfig",
    "StoreBackend",
    "StoreConfig",
    "VOTER_PROFILES",
    "VoteChoice",
    "VoteSummary",
    "Voter",
    "VoterProfile",
]
