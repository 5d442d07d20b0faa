"""Per-species space counters for the boarding facility."""

from __future__ import annotations

import logging

from .models import CapacityError, Species, whole_number

logger = logging.getLogger(__name__)

SPACE_PREFIX = {Species.DOG: "D", Species.CAT: "C"}


class Inventory:
    """Tracks free spaces per species and hands out space labels.

    The counters have no ceiling: ``release`` always adds one space back, even
    past the configured starting capacity.
    """

    def __init__(self, *, dog_spaces: int = 30, cat_spaces: int = 12) -> None:
        self._available = {
            Species.DOG: whole_number(dog_spaces, "Dog spaces"),
            Species.CAT: whole_number(cat_spaces, "Cat spaces"),
        }
        self._next_label = {Species.DOG: 1, Species.CAT: 1}

    @property
    def dog_spaces_available(self) -> int:
        return self._available[Species.DOG]

    @property
    def cat_spaces_available(self) -> int:
        return self._available[Species.CAT]

    def has_space_for(self, species: Species | str) -> bool:
        return self._available[Species.parse(species)] > 0

    def reserve(self, species: Species | str) -> str:
        """Take one space and return its label, e.g. ``D-1``.

        Raises ``CapacityError`` without touching any counter when the species
        is full.
        """

        species = Species.parse(species)
        if self._available[species] <= 0:
            raise CapacityError(f"No {species.value} spaces available")
        self._available[species] -= 1
        ordinal = self._next_label[species]
        self._next_label[species] = ordinal + 1
        space_id = f"{SPACE_PREFIX[species]}-{ordinal}"
        logger.debug(
            "Reserved %s, %d %s spaces left", space_id, self._available[species], species.value
        )
        return space_id

    def release(self, species: Species | str) -> None:
        species = Species.parse(species)
        self._available[species] += 1
        logger.debug("Released a %s space, %d available", species.value, self._available[species])

    def reset(self, *, dog_spaces: int, cat_spaces: int) -> None:
        self._available[Species.DOG] = whole_number(dog_spaces, "Dog spaces")
        self._available[Species.CAT] = whole_number(cat_spaces, "Cat spaces")

    def snapshot(self) -> dict:
        return {
            "dog_spaces_available": self.dog_spaces_available,
            "cat_spaces_available": self.cat_spaces_available,
        }
