"""
Custom exceptions for the Marketing Engine.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging

Data-quality situations (duplicate deals, a deal touched twice in one run)
are not errors: they are logged and processing continues. Only broken
invariants raise, and those are never caught inside the engine.
"""

from typing import Any


class MarketingEngineError(Exception):
    """Base exception for all marketing engine errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(MarketingEngineError):
    """Base class for pipeline-related errors."""

    pass


class InvariantError(PipelineError):
    """
    A data-model contract was broken.

    Raised for programming errors such as a malformed generated contact or an
    alias email group existing without its primary group.
    """

    pass
