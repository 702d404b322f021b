"""Speciation and trait divergence on a dated phylogeny."""

from cladogenesis.branch import Branch
from cladogenesis.config import SimulationConfig
from cladogenesis.exceptions import (
    CladogenesisError,
    SamplingConvergenceError,
    SpeciesRetiredError,
)
from cladogenesis.spatial import AdjacencyGraph, Point, grid_network, remove_locations
from cladogenesis.species import Species
from cladogenesis.species_tree import SpeciesTree
from cladogenesis.sphere import (
    GaussianNoise,
    apply_bounded_noise,
    euclidean_distance,
    in_sphere,
    random_point,
)

__all__ = [
    "Branch",
    "Species",
    "SpeciesTree",
    "SimulationConfig",
    "GaussianNoise",
    "in_sphere",
    "random_point",
    "euclidean_distance",
    "apply_bounded_noise",
    "Point",
    "AdjacencyGraph",
    "grid_network",
    "remove_locations",
    "CladogenesisError",
    "SamplingConvergenceError",
    "SpeciesRetiredError",
]
