"""The three appointment tools exposed to the model.

Each tool validates its arguments with a small pydantic schema and then
delegates straight to the matching ``AppointmentStore`` operation.  Results
are structured ``ToolResult`` objects; a missing appointment is a normal
``success=False`` result that the model relays to the customer.
"""

from __future__ import annotations

from pydantic import Field

from src.models import ToolResult
from src.services.appointment_store import AppointmentStore
from src.tools.registry import ToolArgs, ToolRegistry, ToolSpec

GET_APPOINTMENTS = "get_appointments"
RESCHEDULE_APPOINTMENT = "reschedule_appointment"
CANCEL_APPOINTMENT = "cancel_appointment"


class GetAppointmentsArgs(ToolArgs):
    customer_name: str = Field(min_length=1, description="The customer's full name.")


class RescheduleAppointmentArgs(ToolArgs):
    customer_name: str = Field(min_length=1, description="The customer's full name.")
    original_date: str = Field(
        min_length=1, description="Date of the existing appointment, YYYY-MM-DD.",
    )
    new_date: str = Field(min_length=1, description="New date, YYYY-MM-DD.")
    new_time: str = Field(min_length=1, description='New time, e.g. "11:00 AM".')


class CancelAppointmentArgs(ToolArgs):
    customer_name: str = Field(min_length=1, description="The customer's full name.")
    appointment_date: str = Field(
        min_length=1, description="Date of the appointment to cancel, YYYY-MM-DD.",
    )


def register_appointment_tools(registry: ToolRegistry, store: AppointmentStore) -> None:
    """Register ``get_appointments``, ``reschedule_appointment`` and
    ``cancel_appointment`` against *store*."""

    def _get_appointments(args: GetAppointmentsArgs) -> ToolResult:
        found = store.query(args.customer_name)
        if not found:
            message = f"No upcoming appointments found for {args.customer_name}."
        else:
            message = f"Found {len(found)} appointment(s) for {args.customer_name}."
        return ToolResult(success=True, message=message, appointments=found)

    def _reschedule(args: RescheduleAppointmentArgs) -> ToolResult:
        return store.reschedule(
            args.customer_name, args.original_date, args.new_date, args.new_time,
        )

    def _cancel(args: CancelAppointmentArgs) -> ToolResult:
        return store.cancel(args.customer_name, args.appointment_date)

    registry.register(
        ToolSpec(
            name=GET_APPOINTMENTS,
            description="Retrieve the list of upcoming appointments for a customer.",
            args_schema=GetAppointmentsArgs,
            handler=_get_appointments,
        )
    )
    registry.register(
        ToolSpec(
            name=RESCHEDULE_APPOINTMENT,
            description=(
                "Reschedule an existing appointment. Requires the customer name and "
                "the original appointment date to find the correct booking."
            ),
            args_schema=RescheduleAppointmentArgs,
            handler=_reschedule,
        )
    )
    registry.register(
        ToolSpec(
            name=CANCEL_APPOINTMENT,
            description=(
                "Cancel an upcoming appointment. Requires the customer name and the "
                "date of the appointment to cancel."
            ),
            args_schema=CancelAppointmentArgs,
            handler=_cancel,
        )
    )


def build_salon_registry(store: AppointmentStore) -> ToolRegistry:
    registry = ToolRegistry()
    register_appointment_tools(registry, store)
    return registry
