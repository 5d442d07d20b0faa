"""Settings read from environment variables.

Every field has a default matching the reference deployment: 30 dog and 12
cat spaces, a local SQLite file for the booking history and INFO logging.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class Settings:
    """Application settings loaded from ``PETCHECKIN_*`` environment variables."""

    dog_spaces: int = field(default_factory=lambda: _env_int("PETCHECKIN_DOG_SPACES", 30))
    cat_spaces: int = field(default_factory=lambda: _env_int("PETCHECKIN_CAT_SPACES", 12))
    database_path: str = field(
        default_factory=lambda: os.getenv("PETCHECKIN_DATABASE", "petcheckin.db")
    )
    log_level: str = field(default_factory=lambda: os.getenv("PETCHECKIN_LOG_LEVEL", "INFO"))
    secret_key: str = field(
        default_factory=lambda: os.getenv("PETCHECKIN_SECRET_KEY", "petcheckin-secret")
    )

    def as_config(self) -> dict:
        return {
            "DOG_SPACES": self.dog_spaces,
            "CAT_SPACES": self.cat_spaces,
            "DATABASE": self.database_path,
            "LOG_LEVEL": self.log_level,
            "SECRET_KEY": self.secret_key,
        }
