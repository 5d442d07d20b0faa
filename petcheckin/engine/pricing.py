"""Pluggable per-day rates and grooming add-on prices."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import Grooming, Species

DEFAULT_RATE_PER_DAY = {Species.DOG: 45.0, Species.CAT: 35.0}
DEFAULT_GROOMING_MENU = {"bath": 25.0, "full": 55.0}
NO_GROOMING = {"", "none"}


@dataclass(frozen=True)
class RateTable:
    rate_per_day: dict[Species, float] = field(
        default_factory=lambda: dict(DEFAULT_RATE_PER_DAY)
    )
    grooming_menu: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_GROOMING_MENU)
    )
    # Option charged when grooming is requested as a plain yes/no flag.
    default_grooming: str = "bath"

    def grooming_for(self, option: Any) -> Grooming | None:
        """Snapshot the grooming choice and its price, or ``None`` for no grooming.

        ``True`` selects ``default_grooming``; unknown menu options price at 0.
        """

        if option is None or option is False:
            return None
        if option is True:
            option = self.default_grooming
        key = str(option).strip().lower()
        if key in NO_GROOMING:
            return None
        return Grooming(type=key, price=float(self.grooming_menu.get(key, 0)))

    def quote(self, species: Species, days_stay: int, grooming: Grooming | None) -> float:
        base = self.rate_per_day.get(species, 0) * days_stay
        return round(base + (grooming.price if grooming else 0), 2)
