# medportal/modules/appointments/appointments_controller.py
"""Appointments controller with API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from medportal.auth.dependencies import get_current_session, get_store
from medportal.auth.schemas import SessionContext
from medportal.common.database.document_store import DocumentStore

from . import appointments_service as service
from .schemas import (
    Appointment, AppointmentListResponse, AppointmentActionResponse,
    AppointmentCreateRequest, AppointmentUpdateRequest, AppointmentRescheduleRequest,
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("", response_model=AppointmentListResponse)
async def get_appointments(
    status: Optional[str] = Query(None, description="Filter by status: all, scheduled, completed, cancelled, no-show"),
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Get the caller's appointments (all appointments for an admin)."""
    appointments = await service.list_appointments_for(store, ctx)
    if status and status != "all":
        appointments = [a for a in appointments if a.status.value == status]
    return AppointmentListResponse(appointments=appointments, total=len(appointments))


@router.post("", response_model=AppointmentActionResponse, status_code=201)
async def create_appointment(
    request: AppointmentCreateRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Book a new appointment."""
    appointment = await service.create_appointment(store, ctx, request)
    return AppointmentActionResponse(success=True, message="Appointment booked successfully", appointment=appointment)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Get a single appointment by ID."""
    return await service.get_appointment_for(store, ctx, appointment_id)


@router.patch("/{appointment_id}", response_model=AppointmentActionResponse)
async def update_appointment(
    appointment_id: str,
    request: AppointmentUpdateRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Change status, attach feedback, or edit visit details."""
    fields = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, mode="json")
    appointment = await service.update_appointment(store, ctx, appointment_id, fields)
    return AppointmentActionResponse(success=True, message="Appointment updated successfully", appointment=appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentActionResponse)
async def cancel_appointment(
    appointment_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    appointment = await service.cancel_appointment(store, ctx, appointment_id)
    return AppointmentActionResponse(success=True, message="Appointment cancelled successfully", appointment=appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentActionResponse)
async def reschedule_appointment(
    appointment_id: str,
    request: AppointmentRescheduleRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    appointment = await service.reschedule_appointment(store, ctx, appointment_id, request.date, request.time)
    return AppointmentActionResponse(success=True, message="Appointment rescheduled successfully", appointment=appointment)
