"""Tests for the in-memory appointment store."""

from __future__ import annotations

import threading

import pytest

from src.models import Appointment
from src.services.appointment_store import SEED_APPOINTMENTS, AppointmentStore


# ── Queries ──────────────────────────────────────────────────────────


class TestQuery:
    def test_matches_case_insensitively(self, store):
        result = store.query("jane DOE")
        assert [a.id for a in result] == [1, 3]

    def test_returns_insertion_order(self, store):
        result = store.query("Jane Doe")
        assert [a.date for a in result] == ["2024-08-15", "2024-08-22"]

    def test_no_match_returns_empty_list(self, store):
        assert store.query("Nobody Here") == []

    def test_partial_name_does_not_match(self, store):
        assert store.query("Jane") == []

    def test_query_is_idempotent(self, store):
        assert store.query("Jane Doe") == store.query("Jane Doe")

    def test_returned_records_are_copies(self, store):
        """Mutating a query result must not change the store."""
        result = store.query("Jane Doe")
        result[0].date = "1999-01-01"
        assert store.query("Jane Doe")[0].date == "2024-08-15"


class TestConstruction:
    def test_seed_data_has_five_appointments(self, store):
        assert len(store) == 5
        assert store.all() == list(SEED_APPOINTMENTS)

    def test_duplicate_ids_rejected(self):
        appt = Appointment(id=1, customer_name="A", service="s", stylist="x",
                           date="2024-01-01", time="9:00 AM")
        with pytest.raises(ValueError, match="Duplicate appointment id"):
            AppointmentStore([appt, appt])

    def test_empty_store(self):
        store = AppointmentStore()
        assert len(store) == 0
        assert store.all() == []

    def test_get_by_id(self, store):
        assert store.get(4).customer_name == "Emily White"
        assert store.get(99) is None


# ── Reschedule ───────────────────────────────────────────────────────


class TestReschedule:
    def test_scenario_reschedule_jane_doe(self, store):
        result = store.reschedule("jane doe", "2024-08-15", "2024-08-20", "11:00 AM")

        assert result.success is True
        assert "2024-08-20" in result.message
        assert "11:00 AM" in result.message
        first = store.query("Jane Doe")[0]
        assert (first.id, first.date, first.time) == (1, "2024-08-20", "11:00 AM")

    def test_only_matched_record_changes(self, store):
        before = {a.id: a.model_dump() for a in store.all()}
        store.reschedule("Jane Doe", "2024-08-22", "2024-09-01", "4:00 PM")
        after = {a.id: a.model_dump() for a in store.all()}

        changed = [i for i in before if before[i] != after[i]]
        assert changed == [3]
        assert after[3]["service"] == "Color & Highlights"
        assert after[3]["stylist"] == "Chris"

    def test_not_found_returns_failure_and_leaves_store_unchanged(self, store):
        before = store.all()
        result = store.reschedule("Jane Doe", "2030-01-01", "2030-01-02", "9:00 AM")

        assert result.success is False
        assert result.message == "Could not find an appointment for Jane Doe on 2030-01-01."
        assert store.all() == before

    def test_date_must_match_exactly(self, store):
        result = store.reschedule("Jane Doe", "2024-8-15", "2024-08-20", "11:00 AM")
        assert result.success is False

    def test_first_match_wins_on_tie(self):
        twins = AppointmentStore([
            Appointment(id=7, customer_name="Ana", service="Cut", stylist="Alex",
                        date="2024-08-15", time="9:00 AM"),
            Appointment(id=8, customer_name="Ana", service="Color", stylist="Chris",
                        date="2024-08-15", time="1:00 PM"),
        ])
        twins.reschedule("ana", "2024-08-15", "2024-08-30", "10:00 AM")
        assert twins.get(7).date == "2024-08-30"
        assert twins.get(8).date == "2024-08-15"


# ── Cancel ───────────────────────────────────────────────────────────


class TestCancel:
    def test_scenario_cancel_john_smith(self, store):
        result = store.cancel("John Smith", "2024-08-16")

        assert result.success is True
        assert result.message == "Successfully canceled appointment for John Smith on 2024-08-16."
        assert store.query("John Smith") == []
        assert store.get(2) is None

    def test_cancel_shrinks_store_by_one(self, store):
        store.cancel("Jane Doe", "2024-08-22")
        assert len(store) == 4
        assert 3 not in [a.id for a in store.query("Jane Doe")]

    def test_cancel_only_removes_matching_customer(self, store):
        """Emily White shares John Smith's date but must survive."""
        store.cancel("John Smith", "2024-08-16")
        assert store.get(4) is not None

    def test_not_found_returns_failure_and_leaves_store_unchanged(self, store):
        before = store.all()
        result = store.cancel("John Smith", "2024-08-17")

        assert result.success is False
        assert "Could not find an appointment" in result.message
        assert store.all() == before

    def test_second_cancel_of_same_booking_fails(self, store):
        assert store.cancel("John Smith", "2024-08-16").success is True
        assert store.cancel("John Smith", "2024-08-16").success is False
        assert len(store) == 4


class TestConcurrentMutations:
    def test_parallel_cancels_remove_each_record_once(self):
        appointments = [
            Appointment(id=i, customer_name="Guest", service="Cut", stylist="Alex",
                        date=f"2024-09-{i:02d}", time="9:00 AM")
            for i in range(1, 21)
        ]
        store = AppointmentStore(appointments)
        results = []

        def _cancel(day: int) -> None:
            results.append(store.cancel("Guest", f"2024-09-{day:02d}").success)

        threads = [threading.Thread(target=_cancel, args=(d,)) for d in range(1, 21) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 0
        assert results.count(True) == 20
