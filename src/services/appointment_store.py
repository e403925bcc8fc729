"""Thread-safe in-memory appointment book.

Design decisions
────────────────
• **List in insertion order** so lookups are stable: when several records
  match, the first one in store order wins.
• **Copies out, never references** — ``query`` and ``all`` return model
  copies, so the store stays the only owner of its records.
• **threading.Lock** around every read-modify-write.  The book is shared by
  every chat session (and the owner dashboard), so a reschedule or cancel is
  applied atomically.
• "Not found" is a normal outcome reported through ``ToolResult`` with
  ``success=False``; nothing here raises for a missing appointment.
• Purely ephemeral — data is lost on process restart.

Usage
─────
>>> store = AppointmentStore.with_seed_data()
>>> store.query("jane doe")
[Appointment(id=1, ...), Appointment(id=3, ...)]
>>> store.cancel("John Smith", "2024-08-16").success
True
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from src.models import Appointment, ToolResult

logger = logging.getLogger(__name__)

SEED_APPOINTMENTS: tuple[Appointment, ...] = (
    Appointment(id=1, customer_name="Jane Doe", service="Deluxe Haircut",
                stylist="Alex", date="2024-08-15", time="10:00 AM"),
    Appointment(id=2, customer_name="John Smith", service="Manicure",
                stylist="Maria", date="2024-08-16", time="2:00 PM"),
    Appointment(id=3, customer_name="Jane Doe", service="Color & Highlights",
                stylist="Chris", date="2024-08-22", time="1:30 PM"),
    Appointment(id=4, customer_name="Emily White", service="Spa Pedicure",
                stylist="Maria", date="2024-08-16", time="3:00 PM"),
    Appointment(id=5, customer_name="Michael Brown", service="Men's Classic Cut",
                stylist="Alex", date="2024-08-17", time="11:00 AM"),
)


def _same_customer(appointment: Appointment, customer_name: str) -> bool:
    return appointment.customer_name.lower() == customer_name.lower()


class AppointmentStore:
    """In-memory collection of appointments with query/mutate operations."""

    def __init__(self, appointments: Iterable[Appointment] = ()) -> None:
        self._appointments: list[Appointment] = []
        seen: set[int] = set()
        for appointment in appointments:
            if appointment.id in seen:
                raise ValueError(f"Duplicate appointment id: {appointment.id}")
            seen.add(appointment.id)
            self._appointments.append(appointment.model_copy())
        self._lock = threading.Lock()

    @classmethod
    def with_seed_data(cls) -> AppointmentStore:
        """Build a store holding the demo salon book."""
        return cls(SEED_APPOINTMENTS)

    # ── Reads ────────────────────────────────────────────────────────

    def query(self, customer_name: str) -> list[Appointment]:
        """Return every appointment booked under *customer_name* (any case)."""
        with self._lock:
            return [
                appt.model_copy()
                for appt in self._appointments
                if _same_customer(appt, customer_name)
            ]

    def all(self) -> list[Appointment]:
        """Snapshot of the whole book, for the owner dashboard."""
        with self._lock:
            return [appt.model_copy() for appt in self._appointments]

    def get(self, appointment_id: int) -> Appointment | None:
        with self._lock:
            for appt in self._appointments:
                if appt.id == appointment_id:
                    return appt.model_copy()
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._appointments)

    # ── Mutations ────────────────────────────────────────────────────

    def _find_index(self, customer_name: str, date: str) -> int | None:
        # Caller must hold the lock.
        for index, appt in enumerate(self._appointments):
            if _same_customer(appt, customer_name) and appt.date == date:
                return index
        return None

    def reschedule(
        self,
        customer_name: str,
        original_date: str,
        new_date: str,
        new_time: str,
    ) -> ToolResult:
        """Move the first matching appointment to *new_date* at *new_time*."""
        with self._lock:
            index = self._find_index(customer_name, original_date)
            if index is not None:
                target = self._appointments[index]
                target.date = new_date
                target.time = new_time
                logger.info(
                    "Rescheduled appointment %d to %s %s", target.id, new_date, new_time,
                )

        if index is None:
            return ToolResult(
                success=False,
                message=f"Could not find an appointment for {customer_name} on {original_date}.",
            )
        return ToolResult(
            success=True,
            message=(
                f"Successfully rescheduled appointment for {customer_name} "
                f"to {new_date} at {new_time}."
            ),
        )

    def cancel(self, customer_name: str, appointment_date: str) -> ToolResult:
        """Remove the first appointment matching customer and date."""
        with self._lock:
            index = self._find_index(customer_name, appointment_date)
            if index is not None:
                removed = self._appointments.pop(index)
                logger.info("Canceled appointment %d", removed.id)

        if index is None:
            return ToolResult(
                success=False,
                message=f"Could not find an appointment for {customer_name} on {appointment_date}.",
            )
        return ToolResult(
            success=True,
            message=f"Successfully canceled appointment for {customer_name} on {appointment_date}.",
        )
