"""Reversible action records and the LIFO log that holds them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class AddPetEnqueue:
    pet_id: str
    # False when the pet was already registered and only re-entered the queue.
    registered: bool = True


@dataclass(frozen=True)
class CheckInConfirmed:
    pet_id: str
    space_id: str
    booking_id: str


UndoRecord = Union[AddPetEnqueue, CheckInConfirmed]


class UndoLog:
    def __init__(self) -> None:
        self._records: list[UndoRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def push(self, record: UndoRecord) -> None:
        self._records.append(record)

    def pop(self) -> UndoRecord | None:
        if not self._records:
            return None
        return self._records.pop()

    def peek(self) -> UndoRecord | None:
        return self._records[-1] if self._records else None
