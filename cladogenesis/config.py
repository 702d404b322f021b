from dataclasses import dataclass
from typing import Optional

import numpy as np

from cladogenesis.sphere import DEFAULT_MAX_ATTEMPTS, DEFAULT_RADIUS, GaussianNoise


@dataclass
class SimulationConfig:
    """Configuration for a speciation run."""

    start_date: int = 0
    trait_radius: float = DEFAULT_RADIUS
    mutation_sigma: float = 0.01
    max_sampling_attempts: int = DEFAULT_MAX_ATTEMPTS
    species_prefix: str = "s"
    seed: Optional[int] = None
    logger_name: str = "cladogenesis"

    def __post_init__(self) -> None:
        if self.trait_radius <= 0:
            raise ValueError(f"trait_radius must be positive, got {self.trait_radius}")
        if self.mutation_sigma < 0:
            raise ValueError(
                f"mutation_sigma must be non-negative, got {self.mutation_sigma}"
            )
        if self.max_sampling_attempts < 1:
            raise ValueError(
                "max_sampling_attempts must be at least 1, "
                f"got {self.max_sampling_attempts}"
            )

    def make_rng(self) -> np.random.Generator:
        return np.random.default_rng(self.seed)

    def make_noise(self, rng: Optional[np.random.Generator] = None) -> GaussianNoise:
        """Build the trait-mutation kernel, sharing ``rng`` when given."""
        return GaussianNoise(self.mutation_sigma, rng if rng is not None else self.make_rng())
