from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

import numpy as np

from cladogenesis.config import SimulationConfig
from cladogenesis.exceptions import SpeciesRetiredError
from cladogenesis.species import Species
from cladogenesis.sphere import GaussianNoise, Vector, random_point


class SpeciesTree:
    """
    Dated phylogeny of the species in one simulation run.

    The tree owns its branches through the parent/child links starting at
    ``root``. Extant species are tracked by id only; a species stays in the
    tree after it has been retired so that its lineage is still rendered.

    Invariant: the extant ids are exactly the species in the tree whose
    ``end_date`` is None. Ids come from a single counter and are never
    reused.
    """

    def __init__(
        self,
        traits: Vector,
        start_date: Optional[int] = None,
        config: Optional[SimulationConfig] = None,
        logger: Optional[logging.Logger] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            traits: Trait vector of the root species.
            start_date: Date of the root; defaults to ``config.start_date``.
            config: Run settings.
            logger: Logger for lifecycle events; defaults to the one named by
                ``config.logger_name``.
            rng: Random generator for mutations; a seeded one is built from
                ``config`` when omitted.
        """
        self.config: SimulationConfig = config or SimulationConfig()
        self.logger = logger or logging.getLogger(self.config.logger_name)
        self.start_date = (
            start_date if start_date is not None else self.config.start_date
        )
        self._current_date = self.start_date
        self._id_count = 0
        self.rng = rng if rng is not None else self.config.make_rng()
        self.noise = self.config.make_noise(self.rng)

        root = self._new_species(traits, self.start_date)
        self.root: Species = root
        self._species: Dict[int, Species] = {root.id: root}
        self._extant: Set[int] = {root.id}

    @classmethod
    def with_random_traits(
        cls, ntraits: int, config: Optional[SimulationConfig] = None
    ) -> "SpeciesTree":
        """Start a tree whose root traits are drawn uniformly in the trait ball."""
        config = config or SimulationConfig()
        rng = config.make_rng()
        traits = random_point(
            ntraits,
            config.trait_radius,
            rng=rng,
            max_attempts=config.max_sampling_attempts,
        )
        return cls(traits, config=config, rng=rng)

    def __repr__(self) -> str:
        return (
            f"SpeciesTree(species={len(self._species)}, extant={len(self._extant)}, "
            f"date={self._current_date})"
        )

    # ------------------------------------------------------------------------
    # Extant species
    # ------------------------------------------------------------------------
    @property
    def num_species(self) -> int:
        """Number of extant species."""
        return len(self._extant)

    def __len__(self) -> int:
        return len(self._extant)

    def __iter__(self) -> Iterator[Species]:
        return iter(self.extant)

    def __contains__(self, species: object) -> bool:
        return isinstance(species, Species) and (
            self._species.get(species.id) is species and species.id in self._extant
        )

    @property
    def extant(self) -> Tuple[Species, ...]:
        """Extant species ordered by id."""
        return tuple(self._species[i] for i in sorted(self._extant))

    def get(self, species_id: int) -> Optional[Species]:
        """Any species ever created by this tree, extant or not."""
        return self._species.get(species_id)

    @property
    def current_date(self) -> int:
        return self._current_date

    @property
    def next_id(self) -> int:
        return self._id_count

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------
    def speciate(self, parent: Species, date: int) -> Species:
        """
        Attach a new species under ``parent`` starting at ``date``.

        The child starts with a copy of the parent's traits and no
        locations. Whether the parent keeps living (budding) or is retired at
        ``date`` (bifurcation) is up to the caller, see :meth:`retire`.
        """
        if self._species.get(parent.id) is not parent:
            raise ValueError(f"{parent!r} does not belong to this tree.")
        if date < parent.start_date:
            raise ValueError(
                f"Cannot speciate from {parent.name} at date {date}, "
                f"before its origin at {parent.start_date}"
            )

        child = self._new_species(parent.traits, date)
        parent.append_child(child)
        self._species[child.id] = child
        self._extant.add(child.id)
        self._advance(date)
        self.logger.debug(
            "%s speciated into %s at date %d", parent.name, child.name, date
        )
        return child

    def retire(self, species: Species, date: int) -> None:
        """Stamp the end date of an extant species and drop it from the tips."""
        self._check_retirable(species, date)
        self._close(species, date)

    def prune_extinct(self, date: int) -> Set[Species]:
        """
        Retire every extant species whose footprint is empty.

        The retired species stay in the tree; only the extant index forgets
        them.

        Returns:
            Set[Species]: The species retired by this call.
        """
        extinct = {s for s in self.extant if s.is_extinct()}
        for species in extinct:
            self._check_retirable(species, date)
        for species in extinct:
            self._close(species, date)
        if extinct:
            self.logger.debug(
                "Pruned %d extinct species at date %d: %s",
                len(extinct),
                date,
                ", ".join(s.name for s in sorted(extinct)),
            )
        self._advance(date)
        return extinct

    def finalize(self, date: int) -> None:
        """Close every surviving lineage at ``date`` (end of the run)."""
        survivors = self.extant
        for species in survivors:
            self._check_retirable(species, date)
        for species in survivors:
            self._close(species, date)
        self._advance(date)
        self.logger.info(
            "Finalized tree at date %d: %d survivors, %d species in total",
            date,
            len(survivors),
            len(self._species),
        )

    def mutate_extant(self, noise: Optional[GaussianNoise] = None) -> None:
        """Apply one bounded mutation step to every extant species."""
        noise = noise if noise is not None else self.noise
        for species in self.extant:
            species.mutate(
                noise,
                radius=self.config.trait_radius,
                max_attempts=self.config.max_sampling_attempts,
            )

    # ------------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------------
    def render(self, date: Optional[int] = None) -> str:
        """
        Newick text of the whole tree.

        Lineages without an end date are measured up to ``date``, or to the
        latest date the tree has seen.
        """
        now = date if date is not None else self._current_date
        return self.root.to_newick(now)

    def to_newick(self, date: Optional[int] = None) -> str:
        return self.render(date)

    def species_records(self, date: int) -> List[str]:
        """XML records of the extant species at ``date``."""
        return [species.info(date) for species in self.extant]

    def __str__(self) -> str:
        return self.render()

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------
    def _new_species(self, traits: Vector, date: int) -> Species:
        species = Species(
            self._id_count,
            traits=traits,
            start_date=date,
            prefix=self.config.species_prefix,
        )
        self._id_count += 1
        return species

    def _advance(self, date: int) -> None:
        if date > self._current_date:
            self._current_date = date

    def _check_retirable(self, species: Species, date: int) -> None:
        if self._species.get(species.id) is not species:
            raise ValueError(f"{species!r} does not belong to this tree.")
        if species.end_date is not None or species.id not in self._extant:
            raise SpeciesRetiredError(
                f"{species.name} was already retired at date {species.end_date}"
            )
        if date < species.start_date:
            raise ValueError(
                f"Cannot retire {species.name} at date {date}, "
                f"before its origin at {species.start_date}"
            )

    def _close(self, species: Species, date: int) -> None:
        species.end_date = date
        self._extant.discard(species.id)
        self._advance(date)
