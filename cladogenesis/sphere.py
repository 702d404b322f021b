"""Numeric helpers for points inside an n-dimensional ball.

The trait space of every species is a ball centred on the origin. New
starting points are drawn uniformly inside it and mutations are applied as
Gaussian steps that are rejected until the candidate falls back inside.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np

from cladogenesis.exceptions import SamplingConvergenceError

logger = logging.getLogger(__name__)

DEFAULT_RADIUS = 0.5
DEFAULT_MAX_ATTEMPTS = 10_000

Vector = Union[Sequence[float], np.ndarray]


@dataclass
class GaussianNoise:
    """Zero-mean normal distribution used as the mutation kernel."""

    sigma: float
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    def sample(self, n: int) -> np.ndarray:
        return self.rng.normal(0.0, self.sigma, size=n)


def in_sphere(vector: Vector, radius: float = DEFAULT_RADIUS) -> bool:
    """Return True if ``vector`` lies strictly inside the ball of ``radius``."""
    v = np.asarray(vector, dtype=float)
    return bool(np.dot(v, v) < radius * radius)


def random_point(
    dimension: int,
    radius: float = DEFAULT_RADIUS,
    rng: Optional[np.random.Generator] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> np.ndarray:
    """
    Draw a point uniformly inside the n-ball by rejection sampling.

    Each coordinate is drawn from U(-radius, radius) and the whole vector is
    redrawn until it lies inside the ball. The acceptance rate drops quickly
    with the dimension, so the number of draws is capped.

    Args:
        dimension: Number of coordinates.
        radius: Radius of the ball.
        rng: Random generator; a fresh one is created when omitted.
        max_attempts: Maximum number of candidate vectors to draw.

    Returns:
        np.ndarray: The first accepted point.

    Raises:
        SamplingConvergenceError: If no candidate was accepted in time.
    """
    if rng is None:
        rng = np.random.default_rng()

    for _ in range(max_attempts):
        candidate = rng.uniform(-radius, radius, size=dimension)
        if in_sphere(candidate, radius):
            return candidate

    logger.warning(
        "random_point gave up after %d attempts (dimension=%d, radius=%s)",
        max_attempts,
        dimension,
        radius,
    )
    raise SamplingConvergenceError(max_attempts, radius, dimension)


def euclidean_distance(a: Vector, b: Vector) -> float:
    """L2 distance over the common prefix of ``a`` and ``b``."""
    n = min(len(a), len(b))
    diff = np.asarray(a[:n], dtype=float) - np.asarray(b[:n], dtype=float)
    return float(np.sqrt(np.dot(diff, diff)))


def apply_bounded_noise(
    vector: np.ndarray,
    noise: GaussianNoise,
    radius: float = DEFAULT_RADIUS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> np.ndarray:
    """
    Perturb ``vector`` in place with noise, keeping it inside the ball.

    A candidate copy receives one independent draw per coordinate; the first
    candidate inside the ball is written back. On failure the vector is left
    unchanged.

    Raises:
        SamplingConvergenceError: If every candidate left the ball.
    """
    n = len(vector)
    for _ in range(max_attempts):
        candidate = np.asarray(vector, dtype=float) + noise.sample(n)
        if in_sphere(candidate, radius):
            vector[:] = candidate
            return vector

    logger.warning(
        "apply_bounded_noise gave up after %d attempts (sigma=%s, radius=%s)",
        max_attempts,
        noise.sigma,
        radius,
    )
    raise SamplingConvergenceError(max_attempts, radius, n)
