from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import abc
from functools import total_ordering
from types import MappingProxyType
from typing import Any, Dict, Hashable, Mapping, Optional, Set

import numpy as np

from cladogenesis.branch import Branch
from cladogenesis.spatial import AdjacencyGraph
from cladogenesis.sphere import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RADIUS,
    GaussianNoise,
    Vector,
    apply_bounded_noise,
    euclidean_distance,
)

logger = logging.getLogger(__name__)

UNGROUPED = -1


@total_ordering
class Species(Branch):
    """
    Lineage carrying a trait vector and a spatial footprint.

    The footprint maps every occupied location to the id of the connected
    group it belongs to. Group ids are only dense (``0..num_groups-1``)
    right after :meth:`recompute_groups`; occupying, vacating or extracting
    locations marks the cache stale until the next recomputation.

    Species compare, hash and sort by ``id`` alone.
    """

    __slots__ = ("id", "prefix", "traits", "_locations", "_groups", "_groups_stale")

    def __init__(
        self,
        id: int,
        traits: Optional[Vector] = None,
        ntraits: int = 0,
        start_date: int = 0,
        prefix: str = "s",
    ):
        super().__init__(start_date=start_date)
        self.id = id
        self.prefix = prefix
        if traits is None:
            self.traits = np.zeros(ntraits, dtype=float)
        else:
            self.traits = np.array(traits, dtype=float)
        self._locations: Dict[Hashable, int] = {}
        self._groups = 0
        self._groups_stale = False

    # ------------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------------
    @property
    def name(self) -> str:
        return f"{self.prefix}{self.id}"

    def label(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Species):
            return NotImplemented
        return self.id == other.id

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Species):
            return NotImplemented
        return self.id < other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Species({self.id})"

    def __str__(self) -> str:
        return f"<species>{self.name}</species>"

    # ------------------------------------------------------------------------
    # Traits
    # ------------------------------------------------------------------------
    @property
    def num_traits(self) -> int:
        return len(self.traits)

    def __getitem__(self, idx: int) -> float:
        return float(self.traits[idx])

    def __setitem__(self, idx: int, value: float) -> None:
        self.traits[idx] = value

    def mutate(
        self,
        noise: GaussianNoise,
        radius: float = DEFAULT_RADIUS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Random-walk the traits, staying inside the trait-space ball."""
        apply_bounded_noise(self.traits, noise, radius, max_attempts)

    def trait_difference_count(self, other: "Species") -> int:
        """Number of trait positions whose values differ."""
        n = min(self.num_traits, other.num_traits)
        return int(np.count_nonzero(self.traits[:n] != other.traits[:n]))

    def shares_traits_with(self, other: "Species") -> bool:
        return self.trait_difference_count(other) == 0

    def trait_distance(self, other: "Species") -> float:
        return euclidean_distance(self.traits, other.traits)

    # ------------------------------------------------------------------------
    # Footprint
    # ------------------------------------------------------------------------
    @property
    def locations(self) -> Mapping[Hashable, int]:
        """Read-only view of the location -> group id mapping."""
        return MappingProxyType(self._locations)

    @property
    def size(self) -> int:
        return len(self._locations)

    def is_extinct(self) -> bool:
        return not self._locations

    def is_in(self, location: Hashable) -> bool:
        return location in self._locations

    def group_of(self, location: Hashable) -> Optional[int]:
        group = self._locations.get(location)
        if group is None or group == UNGROUPED:
            return None
        return group

    def occupy(self, locations: Any) -> None:
        """
        Add one location, or a collection of locations, to the footprint.

        Any set-like object (including ``graph.nodes`` and ``dict.keys()``)
        and any other iterable except tuples and strings is a collection.
        Tuples such as ``Point`` are single locations.
        """
        if isinstance(locations, abc.Iterable) and not isinstance(
            locations, (tuple, str, bytes)
        ):
            for location in locations:
                self._occupy_one(location)
        else:
            self._occupy_one(locations)

    def _occupy_one(self, location: Hashable) -> None:
        if location not in self._locations:
            self._locations[location] = UNGROUPED
            self._groups_stale = True

    def vacate(self, location: Hashable) -> None:
        if self._locations.pop(location, None) is not None:
            self._groups_stale = True
            if not self._locations:
                logger.debug("%s vacated its last location", self.name)

    def co_occurring_locations(self, other: "Species") -> Set[Hashable]:
        """Locations occupied by both species."""
        return self._locations.keys() & other._locations.keys()

    def __and__(self, other: "Species") -> Set[Hashable]:
        return self.co_occurring_locations(other)

    # ------------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------------
    @property
    def num_groups(self) -> int:
        return self._groups

    @property
    def groups_stale(self) -> bool:
        return self._groups_stale

    def recompute_groups(self, graph: AdjacencyGraph) -> int:
        """
        Partition the footprint into connected groups.

        Flood fill over ``graph`` restricted to this species' own locations,
        using an explicit stack. Locations the graph does not know form
        singleton groups.

        Returns:
            int: The number of groups.
        """
        for location in self._locations:
            self._locations[location] = UNGROUPED

        group = 0
        for seed in self._locations:
            if self._locations[seed] != UNGROUPED:
                continue
            self._locations[seed] = group
            stack = [seed]
            while stack:
                current = stack.pop()
                if current not in graph:
                    continue
                for neighbour in graph.neighbors(current):
                    if self._locations.get(neighbour) == UNGROUPED:
                        self._locations[neighbour] = group
                        stack.append(neighbour)
            group += 1

        self._groups = group
        self._groups_stale = False
        logger.debug(
            "%s: %d locations in %d groups", self.name, len(self._locations), group
        )
        return group

    def extract_group(self, group: int) -> Set[Hashable]:
        """
        Remove every location tagged with ``group`` and return them.

        Unknown group ids give an empty set. Group ids must be recomputed
        before they are used again.
        """
        if group == UNGROUPED:
            return set()
        extracted = {loc for loc, gid in self._locations.items() if gid == group}
        for location in extracted:
            del self._locations[location]
        self._groups_stale = True
        return extracted

    # ------------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------------
    def info(self, date: int) -> str:
        """
        XML record describing this species at ``date``.

        The group count is the cached one; when the footprint changed since
        the last :meth:`recompute_groups` the ``groups`` element carries
        ``stale="true"``.
        """
        root = ET.Element("species", {"id": str(self.id), "date": str(date)})
        ET.SubElement(root, "name").text = self.name
        ET.SubElement(root, "traits").text = " ".join(
            repr(float(t)) for t in self.traits
        )
        ET.SubElement(root, "locations").text = str(len(self._locations))
        groups = ET.SubElement(root, "groups")
        groups.text = str(self._groups)
        if self._groups_stale:
            # Count predates the last footprint change.
            groups.set("stale", "true")
        return ET.tostring(root, encoding="unicode")

    def node_dict(self, now: int) -> Dict[str, Any]:
        data = super().node_dict(now)
        data["id"] = self.id
        data["traits"] = self.traits.tolist()
        data["locations"] = len(self._locations)
        return data
