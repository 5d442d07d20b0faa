"""Front desk workflows that connect the in-memory engine with the booking history."""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
import threading
from typing import Any, Mapping

from .database import get_connection, get_metadata, initialize_database
from .models import (
    Booking,
    BookingStatus,
    ConsistencyError,
    Customer,
    Outcome,
    Pet,
    Species,
    ValidationError,
    clean_text,
    whole_number,
)
from .pricing import RateTable
from .system import CheckInEngine
from .undo import CheckInConfirmed

logger = logging.getLogger(__name__)


class FrontDesk:
    """Translates intake requests into engine calls and records the results.

    All public methods run under one lock, so the engine and the connection
    are only ever touched by one caller at a time.
    """

    def __init__(self, engine: CheckInEngine, conn: sqlite3.Connection) -> None:
        self.engine = engine
        self.conn = conn
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        *,
        database_path: str = ":memory:",
        dog_spaces: int = 30,
        cat_spaces: int = 12,
        rates: RateTable | None = None,
    ) -> "FrontDesk":
        conn = get_connection(database_path)
        initialize_database(conn)
        engine = CheckInEngine(dog_spaces=dog_spaces, cat_spaces=cat_spaces, rates=rates)
        return cls(engine, conn)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _find_or_create_customer(self, customer_input: Mapping[str, Any]) -> dict:
        name = clean_text(customer_input.get("name"), "Customer name")
        phone = str(customer_input.get("phone") or "").strip() or None
        email = str(customer_input.get("email") or "").strip().lower() or None

        row = None
        if phone or email:
            conditions: list[str] = []
            params: list[Any] = []
            if phone:
                conditions.append("phone = ?")
                params.append(phone)
            if email:
                conditions.append("email = ?")
                params.append(email)
            row = self.conn.execute(
                "SELECT * FROM customers WHERE " + " OR ".join(conditions) + " ORDER BY id LIMIT 1",
                params,
            ).fetchone()
        if row:
            return row
        cur = self.conn.execute(
            "INSERT INTO customers(name, phone, email) VALUES (?, ?, ?)",
            (name, phone, email),
        )
        self.conn.commit()
        return self.conn.execute(
            "SELECT * FROM customers WHERE id = ?", (cur.lastrowid,)
        ).fetchone()

    def _find_or_create_pet(self, owner_id: int, pet_input: Mapping[str, Any]) -> dict:
        name = clean_text(pet_input.get("name"), "Pet name")
        row = self.conn.execute(
            "SELECT * FROM pets WHERE owner_id = ? AND name = ? ORDER BY id LIMIT 1",
            (owner_id, name),
        ).fetchone()
        if row:
            return row
        species = Species.parse(pet_input.get("type", pet_input.get("species")))
        age = whole_number(pet_input.get("age"), "Pet age")
        cur = self.conn.execute(
            "INSERT INTO pets(owner_id, name, species, age) VALUES (?, ?, ?, ?)",
            (owner_id, name, species.value, age),
        )
        self.conn.commit()
        return self.conn.execute("SELECT * FROM pets WHERE id = ?", (cur.lastrowid,)).fetchone()

    def _validate_intake(
        self, customer_input: Mapping[str, Any], pet_input: Mapping[str, Any]
    ) -> None:
        for label, section in (("Customer input", customer_input), ("Pet input", pet_input)):
            if not isinstance(section, Mapping):
                raise ValidationError(f"{label} must be a mapping")
        clean_text(customer_input.get("name"), "Customer name")
        clean_text(pet_input.get("name"), "Pet name")
        Species.parse(pet_input.get("type", pet_input.get("species")))
        whole_number(pet_input.get("age"), "Pet age")

    def _register(self, customer_row: dict, pet_row: dict, *, enqueue: bool) -> Pet:
        self.engine.add_or_find_customer(
            Customer.create(
                id=customer_row["id"],
                name=customer_row["name"],
                phone=customer_row["phone"],
                email=customer_row["email"],
            )
        )
        pet = self.engine.get_pet(str(pet_row["id"]))
        if pet is not None and not enqueue:
            return pet
        return self.engine.add_pet(
            Pet.create(
                id=pet_row["id"],
                name=pet_row["name"],
                species=pet_row["species"],
                age=pet_row["age"],
                owner_id=pet_row["owner_id"],
            )
        )

    def _owner_of(self, pet_id: str) -> dict:
        row = self.conn.execute(
            """
            SELECT customers.* FROM customers
            JOIN pets ON pets.owner_id = customers.id
            WHERE pets.id = ?
            """,
            (int(pet_id),),
        ).fetchone()
        if not row:
            logger.error("Pet %s has no stored owner", pet_id)
            raise ConsistencyError(f"Pet {pet_id} has no stored owner")
        return row

    def _record_booking(self, booking: Booking, customer_row: dict) -> dict:
        cur = self.conn.execute(
            """
            INSERT INTO bookings(
                engine_booking_id, customer_id, customer_name, pet_id, pet_name, species,
                space_id, days_stay, grooming_type, grooming_price, amount_due, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                booking.id,
                customer_row["id"],
                customer_row["name"],
                int(booking.pet_id),
                booking.pet_name,
                booking.species.value,
                booking.space_id,
                booking.days_stay,
                booking.grooming.type if booking.grooming else None,
                booking.grooming.price if booking.grooming else None,
                booking.amount_due,
                BookingStatus.OPEN.value,
                booking.created_at,
            ),
        )
        self.conn.commit()
        return self.get_booking(cur.lastrowid)

    def _confirmation(self, booking_row: dict, outcome: Outcome) -> dict:
        return {
            "ok": True,
            "message": outcome.message,
            "confirmation": {
                "booking_id": booking_row["id"],
                "customer": booking_row["customer_name"],
                "pet": f"{booking_row['pet_name']} ({booking_row['species']})",
                "days_stay": booking_row["days_stay"],
                "grooming": booking_row["grooming_type"] or "none",
                "amount_due": booking_row["amount_due"],
                "space_id": booking_row["space_id"],
            },
        }

    def _record_outcome(self, outcome: Outcome) -> dict:
        if not outcome.ok:
            return outcome.as_dict()
        booking_row = self._record_booking(outcome.booking, self._owner_of(outcome.pet_id))
        return self._confirmation(booking_row, outcome)

    # ------------------------------------------------------------------
    # Check-in & check-out
    # ------------------------------------------------------------------
    def check_in(
        self,
        *,
        customer_input: Mapping[str, Any],
        pet_input: Mapping[str, Any],
        days_stay: Any,
        grooming_option: Any = None,
    ) -> dict:
        """Find or create the customer and pet, then reserve a space right away."""

        with self._lock:
            self._validate_intake(customer_input, pet_input)
            days = whole_number(days_stay, "Days of stay", minimum=1)
            customer_row = self._find_or_create_customer(customer_input)
            pet_row = self._find_or_create_pet(customer_row["id"], pet_input)
            pet = self._register(customer_row, pet_row, enqueue=False)
            outcome = self.engine.confirm_walk_in(
                pet.id, days_stay=days, grooming=grooming_option
            )
            if not outcome.ok:
                logger.info("Check-in refused for %s: %s", pet.label, outcome.message)
                return outcome.as_dict()
            booking_row = self._record_booking(outcome.booking, customer_row)
            return self._confirmation(booking_row, outcome)

    def check_out(self, *, owner_name: str, pet_name: str) -> dict:
        with self._lock:
            customer = self.conn.execute(
                "SELECT * FROM customers WHERE name = ? ORDER BY id DESC LIMIT 1",
                (str(owner_name or "").strip(),),
            ).fetchone()
            if not customer:
                return Outcome.failure("not_found", "Owner not found").as_dict()
            pet = self.conn.execute(
                "SELECT * FROM pets WHERE owner_id = ? AND name = ? ORDER BY id LIMIT 1",
                (customer["id"], str(pet_name or "").strip()),
            ).fetchone()
            if not pet:
                return Outcome.failure("not_found", "Pet not found for this owner").as_dict()
            booking = self.conn.execute(
                """
                SELECT * FROM bookings
                WHERE customer_id = ? AND pet_id = ? AND status = 'OPEN'
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (customer["id"], pet["id"]),
            ).fetchone()
            if not booking:
                return Outcome.failure(
                    "not_found", "No open booking found for this pet"
                ).as_dict()

            released = self.engine.release_booking(booking["engine_booking_id"])
            if not released.ok:
                logger.warning(
                    "Booking %s is not held by this engine; no space released", booking["id"]
                )
            check_out_at = dt.datetime.now().isoformat(timespec="seconds")
            self.conn.execute(
                "UPDATE bookings SET status = ?, check_out_at = ? WHERE id = ?",
                (BookingStatus.CLOSED.value, check_out_at, booking["id"]),
            )
            self.conn.commit()
            return {
                "ok": True,
                "message": "Checked out.",
                "receipt": {
                    "booking_id": booking["id"],
                    "customer": customer["name"],
                    "pet": f"{pet['name']} ({pet['species']})",
                    "nights": booking["days_stay"],
                    "amount_paid": booking["amount_due"],
                    "check_out_at": check_out_at,
                },
            }

    # ------------------------------------------------------------------
    # Intake queue
    # ------------------------------------------------------------------
    def add_pet(
        self, *, customer_input: Mapping[str, Any], pet_input: Mapping[str, Any]
    ) -> dict:
        with self._lock:
            self._validate_intake(customer_input, pet_input)
            customer_row = self._find_or_create_customer(customer_input)
            pet_row = self._find_or_create_pet(customer_row["id"], pet_input)
            pet = self._register(customer_row, pet_row, enqueue=True)
            return {
                "ok": True,
                "pet": pet.as_dict(),
                "queue_length": len(self.engine.queued_pet_ids()),
            }

    def process_next(self, *, days_stay: Any = 1, grooming_option: Any = None) -> dict:
        with self._lock:
            outcome = self.engine.process_next(days_stay=days_stay, grooming=grooming_option)
            return self._record_outcome(outcome)

    def process_all(self, *, days_stay: Any = 1, grooming_option: Any = None) -> list[dict]:
        with self._lock:
            outcomes = self.engine.process_all(days_stay=days_stay, grooming=grooming_option)
            results = []
            for outcome in outcomes:
                result = self._record_outcome(outcome)
                result.setdefault("pet_id", outcome.pet_id)
                results.append(result)
            return results

    def undo(self) -> dict:
        with self._lock:
            outcome = self.engine.undo_recent()
            if outcome.ok and isinstance(outcome.record, CheckInConfirmed):
                self.conn.execute(
                    "UPDATE bookings SET status = ? WHERE engine_booking_id = ? AND status = ?",
                    (
                        BookingStatus.CANCELED.value,
                        outcome.record.booking_id,
                        BookingStatus.OPEN.value,
                    ),
                )
                self.conn.commit()
            return outcome.as_dict()

    # ------------------------------------------------------------------
    # Lookups & reports
    # ------------------------------------------------------------------
    def find_pet(self, name: str) -> dict | None:
        with self._lock:
            pet = self.engine.find_pet_by_name(name)
            return pet.as_dict() if pet else None

    def get_booking(self, booking_id: int) -> dict | None:
        with self._lock:
            return self.conn.execute(
                "SELECT * FROM bookings WHERE id = ?", (booking_id,)
            ).fetchone()

    def list_bookings(self, *, status: str | None = None) -> list[dict]:
        params: list[Any] = []
        where = ""
        if status is not None:
            try:
                params.append(BookingStatus(status).value)
            except ValueError:
                raise ValidationError(f"Unknown booking status: {status}") from None
            where = " WHERE status = ?"
        with self._lock:
            return self.conn.execute(
                "SELECT * FROM bookings" + where + " ORDER BY created_at, id", params
            ).fetchall()

    def revenue_by_day(self) -> list[dict]:
        with self._lock:
            return self.conn.execute(
                """
                SELECT substr(created_at, 1, 10) AS day, ROUND(SUM(amount_due), 2) AS total
                FROM bookings
                WHERE status != 'CANCELED'
                GROUP BY day
                ORDER BY day
                """
            ).fetchall()

    def reset_capacity(self, *, dog_spaces: Any, cat_spaces: Any) -> dict:
        with self._lock:
            self.engine.inventory.reset(dog_spaces=dog_spaces, cat_spaces=cat_spaces)
            logger.info("Capacity reset to %s dog / %s cat spaces", dog_spaces, cat_spaces)
            return self.engine.inventory.snapshot()

    def state(self) -> dict:
        with self._lock:
            snapshot = self.engine.get_state()
            snapshot["open_bookings"] = self.conn.execute(
                "SELECT COUNT(*) AS count FROM bookings WHERE status = 'OPEN'"
            ).fetchone()["count"]
            snapshot["schema_version"] = get_metadata(self.conn, "schema_version")
            return snapshot

    def close(self) -> None:
        with self._lock:
            self.conn.close()
