"""Exception types raised by the Dev3 core."""

from __future__ import annotations

from typing import Any

from dev3.schemas.voters import Voter


class Dev3Error(Exception):
    """Base exception for all application-specific errors."""


class DecisionNotFoundError(Dev3Error, LookupError):
    """Raised when an operation references a decision that does not exist."""

    def __init__(self, decision_id: str) -> None:
        super().__init__(f"Decision not found: {decision_id}")
        self.decision_id = decision_id


class IncompleteResponsesError(Dev3Error):
    """Raised when consensus is requested before every required voter responded."""

    def __init__(
        self,
        decision_id: str,
        responded: list[Voter],
        missing: list[Voter],
    ) -> None:
        super().__init__(
            f"Cannot reach consensus on {decision_id}: "
            f"missing responses from {', '.join(missing)}"
        )
        self.decision_id = decision_id
        self.responded = responded
        self.missing = missing


class ValidationFailedError(Dev3Error, ValueError):
    """Raised when raw input handed to the store fails schema validation."""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.details = details or []
