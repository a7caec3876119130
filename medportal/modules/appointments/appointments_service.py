# medportal/modules/appointments/appointments_service.py
"""Appointments service for business logic."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from medportal.auth.permissions import deny, parse_role, require_permission
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import InvalidTransition, NotFound, ValidationError
from medportal.common.utils.global_functions import blank, collection_to_list, load_document, now_iso
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import APPOINTMENTS, AppointmentStatus, UserRole

from .schemas import Appointment, AppointmentCreateRequest, AppointmentFeedback

logger = logging.getLogger(__name__)


# Only scheduled appointments can move; everything else is terminal.
TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

DOCTOR_ONLY_STATUSES = {AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW}
IMMUTABLE_FIELDS = {"id", "patientId", "doctorId", "createdAt"}
SCHEDULE_FIELDS = {"date", "time", "notes"}
# Every stored appointment carries these as non-empty strings
REQUIRED_FIELDS = ("patientId", "doctorId", "date", "time")


def _appointment_path(appointment_id: str) -> str:
    if not appointment_id or "/" in appointment_id:
        raise ValidationError("Invalid appointment id.")
    return f"{APPOINTMENTS}/{appointment_id}"


def _parse_status(value: Any) -> AppointmentStatus:
    try:
        return AppointmentStatus(value.value if isinstance(value, AppointmentStatus) else value)
    except ValueError:
        raise ValidationError(f"Unknown appointment status '{value}'.", field="status")


def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise InvalidTransition unless `current -> target` is allowed."""
    if target == current:
        return
    if target not in TRANSITIONS.get(current, set()):
        raise InvalidTransition(current.value, target.value)


# ============================================================================
# READS
# ============================================================================

async def get_appointment(store: DocumentStore, appointment_id: str) -> Appointment:
    data = await store.read_path(_appointment_path(appointment_id))
    if not isinstance(data, dict):
        raise NotFound(GlobalMessages.APPOINTMENT_NOT_FOUND)
    return load_document(Appointment, appointment_id, data)


async def get_appointment_for(store: DocumentStore, ctx, appointment_id: str) -> Appointment:
    appointment = await get_appointment(store, appointment_id)
    if ctx.is_admin or ctx.user_id in (appointment.patient_id, appointment.doctor_id):
        return appointment
    raise deny(ctx, "read appointment", appointment_id)


async def list_appointments(
    store: DocumentStore,
    user_id: Optional[str] = None,
    role: Optional[UserRole] = None,
) -> List[Appointment]:
    """
    Fetch every appointment, then keep the patient's (role=patient) or the
    doctor's (role=doctor). Without a role the whole collection is returned.
    """
    role = parse_role(role) if role is not None else None
    owner_field = {UserRole.PATIENT: "patientId", UserRole.DOCTOR: "doctorId"}.get(role)
    where = (lambda data: data.get(owner_field) == user_id) if owner_field else None
    return collection_to_list(await store.read_path(APPOINTMENTS), Appointment, where=where)


async def list_appointments_for(store: DocumentStore, ctx) -> List[Appointment]:
    """The caller's own appointments; the whole collection for an admin."""
    if ctx.is_admin:
        return await list_appointments(store)
    return await list_appointments(store, ctx.user_id, ctx.role)


async def listen_to_user_appointments(
    store: DocumentStore,
    user_id: Optional[str],
    role: Optional[UserRole],
    callback: Callable[[List[Appointment]], Awaitable[None]],
) -> Callable[[], None]:
    """
    Deliver the user's appointments to `callback` now and again after every
    change to the appointments collection, filtered the same way as
    list_appointments. Returns an unsubscribe function.
    """
    async def on_change(path: str) -> None:
        await callback(await list_appointments(store, user_id, role))

    unsubscribe = store.on_change(APPOINTMENTS, on_change)
    try:
        await on_change(APPOINTMENTS)
    except Exception:
        unsubscribe()
        raise
    return unsubscribe


# ============================================================================
# WRITES
# ============================================================================

async def create_appointment(
    store: DocumentStore,
    ctx,
    request: AppointmentCreateRequest,
) -> Appointment:
    """
    Book an appointment. It always starts out scheduled. Slots are not
    checked against the doctor's other bookings, so double-booking is possible.
    """
    if ctx.role == UserRole.PATIENT:
        require_permission(ctx, "book_appointments")
        patient_id = ctx.user_id
    else:
        require_permission(ctx, "manage_appointments")
        patient_id = request.patient_id

    record = {
        "patientId": patient_id,
        "doctorId": request.doctor_id,
        "date": request.date,
        "time": request.time,
    }
    for field, value in record.items():
        if blank(value):
            raise ValidationError(field=field)
    record = {key: value.strip() for key, value in record.items()}
    if not blank(request.notes):
        record["notes"] = request.notes
    record["status"] = AppointmentStatus.SCHEDULED.value
    record["createdAt"] = now_iso()

    appointment_id = await store.append_child(APPOINTMENTS, record)
    logger.info("Appointment %s booked for patient %s with doctor %s", appointment_id, patient_id, request.doctor_id)
    return Appointment.model_validate({**record, "id": appointment_id})


async def update_appointment(
    store: DocumentStore,
    ctx,
    appointment_id: str,
    fields: Dict[str, Any],
) -> Appointment:
    """
    Merge-patch an appointment.

    - only `scheduled` may move, to completed, cancelled or no-show
    - completed / no-show and feedback: the appointment's doctor only
    - cancelled: its patient or its doctor
    - date, time and notes: either party, while still scheduled
    Admins bypass the party checks but not the status rules. There is no
    version check: concurrent updates race and the last write wins.
    """
    appointment = await get_appointment(store, appointment_id)
    current = appointment.status
    fields = dict(fields)

    is_patient = ctx.user_id == appointment.patient_id
    is_doctor = ctx.user_id == appointment.doctor_id
    if not (ctx.is_admin or is_patient or is_doctor):
        raise deny(ctx, "update appointment", appointment_id)
    if not ctx.is_admin and IMMUTABLE_FIELDS & set(fields):
        raise deny(ctx, "reassign appointment", appointment_id)

    target = current
    if "status" in fields:
        target = _parse_status(fields["status"])
        fields["status"] = target.value
        check_transition(current, target)

    if not ctx.is_admin:
        if target != current and target in DOCTOR_ONLY_STATUSES and not is_doctor:
            raise deny(ctx, f"mark appointment {target.value}", appointment_id)
        if "feedback" in fields and not is_doctor:
            raise deny(ctx, "attach feedback", appointment_id)
    if SCHEDULE_FIELDS & set(fields) and current != AppointmentStatus.SCHEDULED:
        raise InvalidTransition()

    for field in REQUIRED_FIELDS:
        if field in fields and (blank(fields[field]) or not isinstance(fields[field], str)):
            raise ValidationError(field=field)
    if fields.get("notes") is not None and not isinstance(fields["notes"], str):
        raise ValidationError("notes must be text.", field="notes")

    feedback = fields.get("feedback")
    if feedback is not None:
        if not hasattr(feedback, "to_document"):
            try:
                feedback = AppointmentFeedback.model_validate(feedback)
            except PydanticValidationError:
                raise ValidationError("Invalid feedback.", field="feedback")
        feedback = fields["feedback"] = feedback.to_document()
        if target == AppointmentStatus.COMPLETED:
            feedback.setdefault("completedAt", now_iso())

    fields.pop("id", None)
    if fields:
        await store.merge_path(_appointment_path(appointment_id), fields)
        if target != current:
            logger.info("Appointment %s %s -> %s by %s", appointment_id, current.value, target.value, ctx.user_id)
    return await get_appointment(store, appointment_id)


async def cancel_appointment(store: DocumentStore, ctx, appointment_id: str) -> Appointment:
    return await update_appointment(
        store, ctx, appointment_id, {"status": AppointmentStatus.CANCELLED.value}
    )


async def reschedule_appointment(
    store: DocumentStore,
    ctx,
    appointment_id: str,
    date: str,
    time: str,
) -> Appointment:
    if blank(date):
        raise ValidationError(field="date")
    if blank(time):
        raise ValidationError(field="time")
    return await update_appointment(store, ctx, appointment_id, {"date": date, "time": time})
