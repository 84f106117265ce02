"""Error types raised by the Thorn renderer."""

from __future__ import annotations

__all__ = ["ThornError", "InvalidParametersError", "AllocationError", "TrackingError"]


class ThornError(Exception):
    """Base class for renderer failures."""


class InvalidParametersError(ThornError, ValueError):
    """Render parameters failed validation before reaching the evaluator."""


class AllocationError(ThornError, MemoryError):
    """The iteration grid could not be allocated."""


class TrackingError(ThornError):
    """The experiment tracking backend rejected a run."""
