# medportal/modules/history/history_controller.py
"""History controller with API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from medportal.auth.dependencies import get_current_session, get_store
from medportal.auth.schemas import SessionContext
from medportal.common.database.document_store import DocumentStore

from . import history_service as service
from .schemas import (
    LifestylePlansRequest, MedicalHistory, MedicalHistoryItemRequest,
    MedicalHistoryItemResponse, MedicalHistoryListResponse,
)

router = APIRouter(prefix="/history", tags=["History"])


@router.get("", response_model=MedicalHistoryListResponse)
async def list_histories(
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Every patient's medical history. Doctors and admins only."""
    histories = await service.list_all_medical_histories(store, ctx)
    return MedicalHistoryListResponse(histories=histories, total=len(histories))


@router.get("/search", response_model=MedicalHistoryListResponse)
async def search_histories(
    condition: Optional[str] = Query(None, description="Case-insensitive match on condition name"),
    medication: Optional[str] = Query(None, description="Case-insensitive match on medication name"),
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Find patients by condition or by medication."""
    if condition:
        histories = await service.find_patients_by_condition(store, ctx, condition)
    elif medication:
        histories = await service.find_patients_by_medication(store, ctx, medication)
    else:
        histories = await service.list_all_medical_histories(store, ctx)
    return MedicalHistoryListResponse(histories=histories, total=len(histories))


@router.get("/{patient_id}", response_model=MedicalHistory)
async def get_history(
    patient_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """A patient's medical history; empty lists when nothing is recorded yet."""
    return await service.get_patient_medical_history(store, ctx, patient_id)


@router.put("/{patient_id}", response_model=MedicalHistory)
async def save_history(
    patient_id: str,
    request: MedicalHistory,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    return await service.save_patient_medical_history(store, ctx, patient_id, request)


@router.put("/{patient_id}/lifestyle", response_model=MedicalHistory)
async def update_lifestyle(
    patient_id: str,
    request: LifestylePlansRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    return await service.update_lifestyle_plans(store, ctx, patient_id, request.lifestyle_plans)


@router.post("/{patient_id}/{section}", response_model=MedicalHistoryItemResponse, status_code=201)
async def add_item(
    patient_id: str,
    section: str,
    request: MedicalHistoryItemRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Add an entry to conditions, medications, allergies, surgeries, immunizations or labResults."""
    item = await service.add_history_item(store, ctx, patient_id, section, request.to_document())
    return MedicalHistoryItemResponse(success=True, message="Item added successfully", item=item)


@router.delete("/{patient_id}/{section}/{item_id}", response_model=MedicalHistoryItemResponse)
async def remove_item(
    patient_id: str,
    section: str,
    item_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    await service.remove_history_item(store, ctx, patient_id, section, item_id)
    return MedicalHistoryItemResponse(success=True, message="Item removed successfully")
