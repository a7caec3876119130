# medportal/modules/prescriptions/prescriptions_controller.py
"""Prescriptions controller with API routes."""

from fastapi import APIRouter, Depends

from medportal.auth.dependencies import get_current_session, get_store, require_permission
from medportal.auth.schemas import SessionContext
from medportal.common.database.document_store import DocumentStore

from . import prescriptions_service as service
from .schemas import (
    Prescription, PrescriptionActionResponse, PrescriptionCreateRequest,
    PrescriptionListResponse, PrescriptionUpdateRequest,
)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


@router.post("", response_model=PrescriptionActionResponse, status_code=201)
async def create_prescription(
    request: PrescriptionCreateRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(require_permission("create_prescriptions")),
):
    """Issue a prescription as the logged-in doctor."""
    prescription = await service.create_prescription(store, ctx, request)
    return PrescriptionActionResponse(success=True, message="Prescription created successfully", prescription=prescription)


@router.get("/patient/{patient_id}", response_model=PrescriptionListResponse)
async def get_patient_prescriptions(
    patient_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """A patient's prescriptions, newest first."""
    prescriptions = await service.list_prescriptions_by_patient_for(store, ctx, patient_id)
    return PrescriptionListResponse(prescriptions=prescriptions, total=len(prescriptions))


@router.get("/doctor/{doctor_id}", response_model=PrescriptionListResponse)
async def get_doctor_prescriptions(
    doctor_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Prescriptions a doctor has issued, newest first."""
    prescriptions = await service.list_prescriptions_by_doctor_for(store, ctx, doctor_id)
    return PrescriptionListResponse(prescriptions=prescriptions, total=len(prescriptions))


@router.get("/{prescription_id}", response_model=Prescription)
async def get_prescription(
    prescription_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    return await service.get_prescription_for(store, ctx, prescription_id)


@router.patch("/{prescription_id}", response_model=PrescriptionActionResponse)
async def update_prescription(
    prescription_id: str,
    request: PrescriptionUpdateRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    fields = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, mode="json")
    prescription = await service.update_prescription(store, ctx, prescription_id, fields)
    return PrescriptionActionResponse(success=True, message="Prescription updated successfully", prescription=prescription)


@router.delete("/{prescription_id}", response_model=PrescriptionActionResponse)
async def delete_prescription(
    prescription_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    await service.delete_prescription(store, ctx, prescription_id)
    return PrescriptionActionResponse(success=True, message="Prescription deleted successfully")
