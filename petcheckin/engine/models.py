"""Entities, outcome values and the error taxonomy of the check-in engine."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class CheckInError(RuntimeError):
    """Base class for engine errors."""


class ValidationError(CheckInError):
    """Raised when incoming data fails validation."""


class CapacityError(CheckInError):
    """Raised when no space is left for a species."""


class ConsistencyError(CheckInError):
    """Raised when the engine's internal indexes disagree with each other."""


class Species(str, Enum):
    DOG = "dog"
    CAT = "cat"

    @classmethod
    def parse(cls, value: Any) -> "Species":
        if isinstance(value, Species):
            return value
        tag = str(value or "").strip().lower()
        try:
            return cls(tag)
        except ValueError:
            raise ValidationError("Pet type must be 'dog' or 'cat'") from None


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELED = "CANCELED"


def clean_text(value: Any, field_name: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def whole_number(value: Any, field_name: str, *, minimum: int = 0) -> int:
    """Coerce ``value`` to an int, rejecting floats with a fraction, bools and junk."""

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field_name} must be a whole number")
        value = int(value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number") from None
    if number < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}")
    return number


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", clean_text(self.id, "Customer id"))
        object.__setattr__(self, "name", clean_text(self.name, "Customer name"))
        object.__setattr__(self, "phone", str(self.phone or "").strip() or None)
        object.__setattr__(self, "email", str(self.email or "").strip().lower() or None)

    @classmethod
    def create(
        cls,
        *,
        id: Any,
        name: Any,
        phone: str | None = None,
        email: str | None = None,
    ) -> "Customer":
        return cls(id=id, name=name, phone=phone, email=email)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Pet:
    id: str
    name: str
    species: Species
    age: int = 0
    owner_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", clean_text(self.id, "Pet id"))
        object.__setattr__(self, "name", clean_text(self.name, "Pet name"))
        object.__setattr__(self, "species", Species.parse(self.species))
        object.__setattr__(self, "age", whole_number(self.age, "Pet age"))
        if self.owner_id is not None:
            object.__setattr__(self, "owner_id", str(self.owner_id))

    @classmethod
    def create(
        cls,
        *,
        id: Any,
        name: Any,
        species: Any,
        age: Any = 0,
        owner_id: Any = None,
    ) -> "Pet":
        """Build a pet from loosely typed input, raising ``ValidationError`` on bad data."""

        return cls(id=id, name=name, species=species, age=age, owner_id=owner_id)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.species.value})"

    def as_dict(self) -> dict:
        data = asdict(self)
        data["species"] = self.species.value
        return data


@dataclass(frozen=True)
class Grooming:
    type: str
    price: float


@dataclass(frozen=True)
class Booking:
    id: str
    pet_id: str
    pet_name: str
    species: Species
    space_id: str
    days_stay: int
    grooming: Grooming | None
    amount_due: float
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: str = field(
        default_factory=lambda: dt.datetime.now().isoformat(timespec="seconds")
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "pet_id": self.pet_id,
            "pet_name": self.pet_name,
            "species": self.species.value,
            "space_id": self.space_id,
            "days_stay": self.days_stay,
            "grooming": asdict(self.grooming) if self.grooming else None,
            "amount_due": self.amount_due,
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Outcome:
    """Result of an operation whose failures are expected and recoverable."""

    ok: bool
    message: str
    code: str | None = None
    booking: Booking | None = None
    pet_id: str | None = None
    record: Any = None

    @classmethod
    def success(cls, message: str, **extra: Any) -> "Outcome":
        return cls(ok=True, message=message, **extra)

    @classmethod
    def failure(cls, code: str, message: str, **extra: Any) -> "Outcome":
        return cls(ok=False, message=message, code=code, **extra)

    def as_dict(self) -> dict:
        data: dict[str, Any] = {"ok": self.ok, "message": self.message}
        if self.code:
            data["code"] = self.code
        if self.pet_id is not None:
            data["pet_id"] = self.pet_id
        if self.booking is not None:
            data["booking"] = self.booking.as_dict()
        return data
