"""
Custom exceptions for the Deal Generator.

Subclasses the base error hierarchy from marketing_engine.errors. Duplicate
deals and deals touched twice in one run are expected data-quality
situations: they are logged, never raised.
"""

from marketing_engine.errors import PipelineError


class DealGeneratorError(PipelineError):
    """Base exception for all deal generator errors."""

    pass


class EventClassificationError(DealGeneratorError):
    """A related record set could not be turned into deal events."""

    pass


class DealManagerError(DealGeneratorError):
    """Error applying actions to, or looking deals up in, a deal manager."""

    pass
