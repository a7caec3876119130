# medportal/modules/appointments/schemas.py
"""Appointments module Pydantic schemas."""

from typing import Optional, List

from medportal.common.schemas import PortalDocument
from medportal.models.models import AppointmentStatus


class AppointmentFeedback(PortalDocument):
    """What the doctor records when completing a visit."""
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    prescription: Optional[str] = None
    notes: Optional[str] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[str] = None
    completed_at: Optional[str] = None


class Appointment(PortalDocument):
    id: str
    patient_id: str
    doctor_id: str
    date: str
    time: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    feedback: Optional[AppointmentFeedback] = None
    created_at: Optional[str] = None


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class AppointmentCreateRequest(PortalDocument):
    """Request to book a new appointment. Patients book for themselves."""
    patient_id: Optional[str] = None
    doctor_id: str
    date: str
    time: str
    notes: Optional[str] = None


class AppointmentUpdateRequest(PortalDocument):
    """Merge-patch: status transitions, feedback, or visit details."""
    status: Optional[AppointmentStatus] = None
    date: Optional[str] = None
    time: Optional[str] = None
    notes: Optional[str] = None
    feedback: Optional[AppointmentFeedback] = None


class AppointmentRescheduleRequest(PortalDocument):
    date: str
    time: str


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class AppointmentListResponse(PortalDocument):
    appointments: List[Appointment]
    total: int


class AppointmentActionResponse(PortalDocument):
    """Generic response for appointment actions."""
    success: bool
    message: str
    appointment: Optional[Appointment] = None
