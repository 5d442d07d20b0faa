import unittest

from petcheckin.engine.models import (
    ConsistencyError,
    Customer,
    Pet,
    Species,
    ValidationError,
)
from petcheckin.engine.pricing import RateTable
from petcheckin.engine.system import CheckInEngine
from petcheckin.engine.undo import AddPetEnqueue, CheckInConfirmed


def make_pet(pet_id: str, name: str, species: str = "dog", owner_id: str = "c1") -> Pet:
    return Pet.create(id=pet_id, name=name, species=species, age=3, owner_id=owner_id)


class CheckInEngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = CheckInEngine(dog_spaces=2, cat_spaces=1)
        self.owner = self.engine.add_or_find_customer(
            Customer.create(id="c1", name="Jordan River", phone="0400000000")
        )

    def test_add_or_find_customer_returns_stored_instance(self) -> None:
        again = self.engine.add_or_find_customer(Customer.create(id="c1", name="Someone Else"))
        self.assertIs(again, self.owner)
        self.assertEqual(again.name, "Jordan River")
        self.assertEqual(self.engine.get_state()["customers"], 1)
        self.assertIs(self.engine.get_customer("c1"), self.owner)
        self.assertIsNone(self.engine.get_customer("c2"))

    def test_pet_validation(self) -> None:
        with self.assertRaises(ValidationError):
            Pet.create(id="p1", name="   ", species="dog")
        with self.assertRaises(ValidationError):
            Pet.create(id="p1", name="Rex", species="hamster")
        with self.assertRaises(ValidationError):
            Pet.create(id="", name="Rex", species="dog")
        with self.assertRaises(ValidationError):
            Pet.create(id="p1", name="Rex", species="dog", age=-1)
        with self.assertRaises(ValidationError):
            Pet.create(id="p1", name="Rex", species="dog", age=2.5)
        self.assertEqual(Pet.create(id="p1", name=" Rex ", species=" DOG ").species, Species.DOG)
        with self.assertRaises(ValidationError):
            self.engine.add_pet({"id": "p1", "name": "Rex"})
        self.assertEqual(self.engine.get_state()["queue_length"], 0)

    def test_directly_built_pets_are_validated(self) -> None:
        with self.assertRaises(ValidationError):
            Pet(id="", name="Rex", species=Species.DOG)
        with self.assertRaises(ValidationError):
            Pet(id="p1", name="   ", species=Species.DOG)
        with self.assertRaises(ValidationError):
            Pet(id="p1", name="Rex", species="hamster")
        pet = Pet(id=" p1 ", name="Rex", species="dog", owner_id=7)
        self.assertIs(pet.species, Species.DOG)
        self.assertEqual((pet.id, pet.owner_id), ("p1", "7"))

        self.engine.add_pet(pet)
        self.assertEqual(self.engine.find_pet_by_name("rex"), pet)
        self.assertEqual(self.engine.queued_pet_ids(), ["p1"])
        with self.assertRaises(ValidationError):
            Customer(id="c2", name="")

    def test_add_pet_registers_indexes_and_queues(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        state = self.engine.get_state()
        self.assertEqual(state["pets"], 1)
        self.assertEqual(state["name_index_size"], 1)
        self.assertEqual(state["queue_length"], 1)
        self.assertEqual(state["undo_depth"], 1)
        self.assertEqual(self.engine.last_action(), AddPetEnqueue(pet_id="p1"))

    def test_re_adding_a_registered_pet_only_requeues(self) -> None:
        pet = self.engine.add_pet(make_pet("p1", "Rex"))
        again = self.engine.add_pet(make_pet("p1", "Rex"))
        self.assertIs(again, pet)
        state = self.engine.get_state()
        self.assertEqual(state["name_index_size"], 1)
        self.assertEqual(state["queue_length"], 2)
        self.assertEqual(self.engine.last_action(), AddPetEnqueue(pet_id="p1", registered=False))

    def test_find_pet_by_name_ignores_case(self) -> None:
        rex = self.engine.add_pet(make_pet("p1", "rex"))
        self.engine.add_pet(make_pet("p2", "Max"))
        self.engine.add_pet(make_pet("p3", "Zoe", species="cat"))
        for query in ("Rex", "REX", "rex"):
            self.assertIs(self.engine.find_pet_by_name(query), rex)
        self.assertIsNone(self.engine.find_pet_by_name("Buddy"))

    def test_find_pet_with_dangling_index_entry_is_an_error(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.engine._pets.clear()
        with self.assertLogs("petcheckin.engine.system", level="ERROR"):
            with self.assertRaises(ConsistencyError):
                self.engine.find_pet_by_name("rex")

    def test_capacity_scenario(self) -> None:
        engine = CheckInEngine(dog_spaces=1, cat_spaces=0)
        engine.add_pet(make_pet("a", "A"))
        first = engine.confirm_check_in("a")
        self.assertTrue(first.ok)
        self.assertEqual(engine.inventory.dog_spaces_available, 0)

        engine.add_pet(make_pet("b", "B"))
        second = engine.confirm_check_in("b")
        self.assertFalse(second.ok)
        self.assertEqual(second.code, "no_capacity")
        self.assertIn("no more spots", second.message)
        self.assertEqual(engine.inventory.dog_spaces_available, 0)
        self.assertEqual(engine.get_state()["bookings_count"], 1)

    def test_confirm_check_in_builds_booking(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        outcome = self.engine.confirm_check_in("p1", days_stay=3, grooming="full")
        self.assertTrue(outcome.ok)
        booking = outcome.booking
        self.assertEqual(booking.id, "1")
        self.assertEqual(booking.space_id, "D-1")
        self.assertEqual(booking.status.value, "CONFIRMED")
        self.assertEqual(booking.grooming.type, "full")
        self.assertAlmostEqual(booking.amount_due, 45 * 3 + 55)
        self.assertIs(self.engine.get_booking("1"), booking)
        self.assertEqual(
            self.engine.last_action(),
            CheckInConfirmed(pet_id="p1", space_id="D-1", booking_id="1"),
        )

    def test_grooming_flag_uses_default_option(self) -> None:
        engine = CheckInEngine(
            dog_spaces=1,
            cat_spaces=1,
            rates=RateTable(
                rate_per_day={Species.DOG: 10.0, Species.CAT: 8.0},
                grooming_menu={"bath": 5.0},
            ),
        )
        engine.add_pet(make_pet("p1", "Tom", species="cat"))
        outcome = engine.confirm_check_in("p1", days_stay=2, grooming=True)
        self.assertEqual(outcome.booking.grooming.type, "bath")
        self.assertAlmostEqual(outcome.booking.amount_due, 21.0)
        engine.add_pet(make_pet("p2", "Rex"))
        outcome = engine.confirm_check_in("p2", grooming="none")
        self.assertIsNone(outcome.booking.grooming)

    def test_confirm_unknown_pet_is_not_found(self) -> None:
        outcome = self.engine.confirm_check_in("missing")
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.code, "not_found")
        self.assertEqual(self.engine.inventory.dog_spaces_available, 2)

    def test_invalid_days_do_not_mutate(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        before = self.engine.get_state()
        with self.assertRaises(ValidationError):
            self.engine.confirm_check_in("p1", days_stay=0)
        with self.assertRaises(ValidationError):
            self.engine.process_next(days_stay="two")
        self.assertEqual(self.engine.get_state(), before)

    def test_booking_ids_are_monotonic(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.engine.add_pet(make_pet("p2", "Max"))
        first = self.engine.confirm_check_in("p1")
        self.engine.undo_recent()
        second = self.engine.confirm_check_in("p2")
        self.assertEqual(first.booking.id, "1")
        self.assertEqual(second.booking.id, "2")

    def test_process_next_on_empty_queue(self) -> None:
        outcome = self.engine.process_next()
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.code, "queue_empty")
        self.assertEqual(self.engine.inventory.dog_spaces_available, 2)

    def test_process_all_is_fifo_and_collects_failures(self) -> None:
        for pet_id, name in (("p1", "Rex"), ("p2", "Max"), ("p3", "Otis")):
            self.engine.add_pet(make_pet(pet_id, name))
        results = self.engine.process_all(days_stay=2)
        self.assertEqual(len(results), 3)
        self.assertEqual([result.pet_id for result in results], ["p1", "p2", "p3"])
        self.assertEqual([result.ok for result in results], [True, True, False])
        self.assertEqual(results[2].code, "no_capacity")
        self.assertEqual(self.engine.get_state()["queue_length"], 0)
        self.assertEqual(self.engine.get_state()["bookings_count"], 2)
        self.assertEqual(
            [booking.pet_id for booking in self.engine.list_bookings()], ["p1", "p2"]
        )

    def test_process_all_skips_entries_removed_by_undo(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.engine.add_pet(make_pet("p2", "Tom", species="cat"))
        self.engine.undo_recent()
        self.engine.add_pet(make_pet("p3", "Max"))
        results = self.engine.process_all()
        self.assertEqual([result.pet_id for result in results], ["p1", "p3"])

    def test_confirm_walk_in_drops_queue_entry_only_on_success(self) -> None:
        engine = CheckInEngine(dog_spaces=1, cat_spaces=0)
        engine.add_pet(make_pet("a", "A"))
        engine.add_pet(make_pet("b", "B", species="cat"))
        self.assertTrue(engine.confirm_walk_in("a").ok)
        self.assertEqual(engine.queued_pet_ids(), ["b"])
        self.assertFalse(engine.confirm_walk_in("b").ok)
        self.assertEqual(engine.queued_pet_ids(), ["b"])

    def test_undo_add_pet_restores_queue_and_index(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        before = self.engine.get_state()
        self.engine.add_pet(make_pet("p2", "Max"))
        outcome = self.engine.undo_recent()
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Undid add + enqueue.")
        after = self.engine.get_state()
        self.assertEqual(after["queue_length"], before["queue_length"])
        self.assertEqual(after["name_index_size"], before["name_index_size"])
        self.assertIsNone(self.engine.find_pet_by_name("max"))

    def test_undo_add_pet_after_processing_is_a_reported_no_op(self) -> None:
        engine = CheckInEngine(dog_spaces=0, cat_spaces=0)
        engine.add_pet(make_pet("p1", "Rex"))
        self.assertFalse(engine.process_next().ok)
        outcome = engine.undo_recent()
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Nothing to remove from queue.")
        self.assertIsNotNone(engine.find_pet_by_name("rex"))

    def test_undo_check_in_restores_inventory_and_ledger(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.engine.process_next()
        self.assertEqual(self.engine.inventory.dog_spaces_available, 1)
        outcome = self.engine.undo_recent()
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Undid confirmed check-in.")
        self.assertEqual(self.engine.inventory.dog_spaces_available, 2)
        self.assertEqual(self.engine.get_state()["bookings_count"], 0)

    def test_undo_after_release_cannot_release_twice(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        booking = self.engine.process_next().booking
        self.assertTrue(self.engine.release_booking(booking.id).ok)
        self.assertEqual(self.engine.inventory.dog_spaces_available, 2)
        outcome = self.engine.undo_recent()
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.code, "not_found")
        self.assertEqual(self.engine.inventory.dog_spaces_available, 2)
        self.assertFalse(self.engine.release_booking(booking.id).ok)

    def test_undo_walks_back_then_reports_empty(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.engine.confirm_walk_in("p1")
        messages = [self.engine.undo_recent().message for _ in range(3)]
        self.assertEqual(
            messages,
            ["Undid confirmed check-in.", "Nothing to remove from queue.", "Nothing to undo."],
        )
        last = self.engine.undo_recent()
        self.assertFalse(last.ok)
        self.assertEqual(last.code, "nothing_to_undo")
        self.assertEqual(self.engine.get_state()["undo_depth"], 0)

    def test_instances_do_not_share_state(self) -> None:
        other = CheckInEngine()
        self.engine.add_pet(make_pet("p1", "Rex"))
        self.assertEqual(other.get_state()["pets"], 0)
        self.assertEqual(other.inventory.snapshot()["dog_spaces_available"], 30)
        self.assertEqual(other.inventory.snapshot()["cat_spaces_available"], 12)

    def test_outcome_as_dict(self) -> None:
        self.engine.add_pet(make_pet("p1", "Rex"))
        data = self.engine.process_next(days_stay=1).as_dict()
        self.assertTrue(data["ok"])
        self.assertEqual(data["pet_id"], "p1")
        self.assertEqual(data["booking"]["species"], "dog")
        self.assertNotIn("code", data)


if __name__ == "__main__":
    unittest.main()
