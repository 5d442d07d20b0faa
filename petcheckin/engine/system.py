"""Core check-in engine: registry, intake queue, reservations, ledger and undo."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from .inventory import Inventory
from .models import (
    Booking,
    ConsistencyError,
    Customer,
    Outcome,
    Pet,
    ValidationError,
    whole_number,
)
from .name_index import NameIndex
from .pricing import RateTable
from .undo import AddPetEnqueue, CheckInConfirmed, UndoLog, UndoRecord

logger = logging.getLogger(__name__)

NO_SPOTS_MESSAGE = "Sorry, we have no more spots available."


class CheckInEngine:
    """In-memory façade over the boarding capacity engine.

    Every instance owns its own maps, so independent engines never share state.
    The engine does no locking of its own; hosts that call it from several
    threads must serialise access to the whole instance.
    """

    def __init__(
        self,
        *,
        dog_spaces: int = 30,
        cat_spaces: int = 12,
        rates: RateTable | None = None,
    ) -> None:
        self.inventory = Inventory(dog_spaces=dog_spaces, cat_spaces=cat_spaces)
        self.rates = rates or RateTable()
        self._customers: dict[str, Customer] = {}
        self._pets: dict[str, Pet] = {}
        self._name_index = NameIndex()
        self._queue: deque[str] = deque()
        self._undo = UndoLog()
        self._bookings: dict[str, Booking] = {}
        self._next_booking_id = 1

    # ------------------------------------------------------------------
    # Identity registry
    # ------------------------------------------------------------------
    def add_or_find_customer(self, customer: Customer) -> Customer:
        existing = self._customers.get(customer.id)
        if existing is not None:
            return existing
        self._customers[customer.id] = customer
        logger.debug("Registered customer %s", customer.id)
        return customer

    def add_pet(self, pet: Pet) -> Pet:
        """Register ``pet``, index it by name and queue it for intake.

        A pet whose id is already registered is not indexed a second time; the
        stored instance simply joins the queue again.
        """

        if not isinstance(pet, Pet):
            raise ValidationError("Pet requires id, name and type")
        existing = self._pets.get(pet.id)
        if existing is None:
            self._pets[pet.id] = pet
            self._name_index.insert(pet.name, pet.id)
        else:
            pet = existing
        self._queue.append(pet.id)
        self._undo.push(AddPetEnqueue(pet_id=pet.id, registered=existing is None))
        logger.info("Queued %s for check-in (queue length %d)", pet.label, len(self._queue))
        return pet

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._customers.get(customer_id)

    def get_pet(self, pet_id: str) -> Pet | None:
        return self._pets.get(pet_id)

    def find_pet_by_name(self, name: str) -> Pet | None:
        pet_id = self._name_index.find(name)
        if pet_id is None:
            return None
        pet = self._pets.get(pet_id)
        if pet is None:
            logger.error("Name index refers to unknown pet id %s", pet_id)
            raise ConsistencyError(f"Name index refers to unknown pet id {pet_id}")
        return pet

    # ------------------------------------------------------------------
    # Intake queue
    # ------------------------------------------------------------------
    def queued_pet_ids(self) -> list[str]:
        return list(self._queue)

    def _remove_from_queue_once(self, pet_id: str) -> bool:
        try:
            self._queue.remove(pet_id)
        except ValueError:
            return False
        return True

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------
    def _stay_terms(self, days_stay: Any, grooming: Any) -> tuple[int, Any]:
        return whole_number(days_stay, "Days of stay", minimum=1), self.rates.grooming_for(grooming)

    def confirm_check_in(
        self, pet_id: str, *, days_stay: int = 1, grooming: Any = None
    ) -> Outcome:
        days, grooming_choice = self._stay_terms(days_stay, grooming)
        pet = self._pets.get(pet_id)
        if pet is None:
            return Outcome.failure("not_found", "Pet not found.", pet_id=pet_id)
        if not self.inventory.has_space_for(pet.species):
            logger.info("No %s spaces left for %s", pet.species.value, pet.label)
            return Outcome.failure("no_capacity", NO_SPOTS_MESSAGE, pet_id=pet_id)

        space_id = self.inventory.reserve(pet.species)
        booking_id = str(self._next_booking_id)
        self._next_booking_id += 1
        booking = Booking(
            id=booking_id,
            pet_id=pet.id,
            pet_name=pet.name,
            species=pet.species,
            space_id=space_id,
            days_stay=days,
            grooming=grooming_choice,
            amount_due=self.rates.quote(pet.species, days, grooming_choice),
        )
        self._bookings[booking_id] = booking
        self._undo.push(
            CheckInConfirmed(pet_id=pet.id, space_id=space_id, booking_id=booking_id)
        )
        logger.info("Booking %s confirmed for %s in %s", booking_id, pet.label, space_id)
        return Outcome.success("Check-in confirmed.", booking=booking, pet_id=pet.id)

    def confirm_walk_in(
        self, pet_id: str, *, days_stay: int = 1, grooming: Any = None
    ) -> Outcome:
        """Check a pet in directly, dropping its pending queue entry on success."""

        outcome = self.confirm_check_in(pet_id, days_stay=days_stay, grooming=grooming)
        if outcome.ok:
            self._remove_from_queue_once(pet_id)
        return outcome

    def process_next(self, *, days_stay: int = 1, grooming: Any = None) -> Outcome:
        self._stay_terms(days_stay, grooming)
        if not self._queue:
            return Outcome.failure("queue_empty", "Queue empty.")
        pet_id = self._queue.popleft()
        return self.confirm_check_in(pet_id, days_stay=days_stay, grooming=grooming)

    def process_all(self, *, days_stay: int = 1, grooming: Any = None) -> list[Outcome]:
        self._stay_terms(days_stay, grooming)
        results: list[Outcome] = []
        while self._queue:
            results.append(self.process_next(days_stay=days_stay, grooming=grooming))
        return results

    # ------------------------------------------------------------------
    # Booking ledger
    # ------------------------------------------------------------------
    def get_booking(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def list_bookings(self) -> list[Booking]:
        return list(self._bookings.values())

    def release_booking(self, booking_id: str) -> Outcome:
        """Drop a booking from the ledger and give its space back.

        This is the only place that releases a reserved space, and it deletes
        the booking first, so a booking can be released at most once.
        """

        booking = self._bookings.pop(booking_id, None)
        if booking is None:
            return Outcome.failure("not_found", "Booking not found.")
        self.inventory.release(booking.species)
        logger.info("Released %s from booking %s", booking.space_id, booking_id)
        return Outcome.success("Space released.", booking=booking, pet_id=booking.pet_id)

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------
    def undo_recent(self) -> Outcome:
        record = self._undo.pop()
        if record is None:
            return Outcome.failure("nothing_to_undo", "Nothing to undo.")
        logger.info("Undoing %s", record)
        if isinstance(record, AddPetEnqueue):
            return self._undo_add_pet(record)
        if isinstance(record, CheckInConfirmed):
            return self._undo_check_in(record)
        raise ConsistencyError(f"No undo handler for {record!r}")

    def _undo_add_pet(self, record: AddPetEnqueue) -> Outcome:
        if not self._remove_from_queue_once(record.pet_id):
            return Outcome.success(
                "Nothing to remove from queue.", pet_id=record.pet_id, record=record
            )
        if record.registered:
            if not self._name_index.remove(record.pet_id):
                logger.error("Pet %s was registered without a name index entry", record.pet_id)
                raise ConsistencyError(f"Pet {record.pet_id} missing from name index")
            self._pets.pop(record.pet_id, None)
        return Outcome.success("Undid add + enqueue.", pet_id=record.pet_id, record=record)

    def _undo_check_in(self, record: CheckInConfirmed) -> Outcome:
        released = self.release_booking(record.booking_id)
        if not released.ok:
            return Outcome.failure(
                "not_found", "Booking not found to undo.", pet_id=record.pet_id, record=record
            )
        return Outcome.success(
            "Undid confirmed check-in.",
            booking=released.booking,
            pet_id=record.pet_id,
            record=record,
        )

    def last_action(self) -> UndoRecord | None:
        return self._undo.peek()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def get_state(self) -> dict:
        return {
            "customers": len(self._customers),
            "pets": len(self._pets),
            "name_index_size": len(self._name_index),
            "queue_length": len(self._queue),
            "undo_depth": len(self._undo),
            "inventory": self.inventory.snapshot(),
            "bookings_count": len(self._bookings),
        }
