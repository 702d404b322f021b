"""
Custom exceptions for the speciation simulation.
"""

from __future__ import annotations


class CladogenesisError(Exception):
    """Base exception for speciation simulation errors."""

    pass


class SamplingConvergenceError(CladogenesisError):
    """Raised when a bounded rejection-sampling loop runs out of attempts.

    This is a degenerate-configuration condition (radius too small for the
    dimension, or noise too large for the radius), not a logic error.
    """

    def __init__(self, attempts: int, radius: float, dimension: int):
        self.attempts = attempts
        self.radius = radius
        self.dimension = dimension
        super().__init__(
            f"Sampling failed to converge after {attempts} attempts "
            f"(radius={radius}, dimension={dimension})"
        )


class SpeciesRetiredError(CladogenesisError, ValueError):
    """Raised when a species that already has an end date is retired again."""

    pass
