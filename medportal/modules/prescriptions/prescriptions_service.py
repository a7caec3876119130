# medportal/modules/prescriptions/prescriptions_service.py
"""Service layer for prescriptions: issued by doctors, read by their patients."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from medportal.auth.permissions import deny, ensure_can_read_patient, require_permission
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import NotFound, ValidationError
from medportal.common.utils.global_functions import (
    blank, collection_to_list, load_document, now_iso, parse_timestamp, today_iso,
)
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import PRESCRIPTIONS, PrescriptionStatus, UserRole
from medportal.modules.user import user_service

from .schemas import Prescription, PrescriptionCreateRequest

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("medicationName", "dosage", "frequency")
IMMUTABLE_FIELDS = {"id", "patientId", "doctorId", "createdAt"}

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _prescription_path(prescription_id: str) -> str:
    if not prescription_id or "/" in prescription_id:
        raise ValidationError("Invalid prescription id.")
    return f"{PRESCRIPTIONS}/{prescription_id}"


def prescription_sort_key(prescription: Prescription) -> datetime:
    """prescribedDate, falling back to createdAt."""
    return (
        parse_timestamp(prescription.prescribed_date)
        or parse_timestamp(prescription.created_at)
        or _OLDEST
    )


def newest_first(prescriptions: List[Prescription]) -> List[Prescription]:
    return sorted(prescriptions, key=prescription_sort_key, reverse=True)


def _check_status(value: Any) -> str:
    try:
        return PrescriptionStatus(value.value if isinstance(value, PrescriptionStatus) else value).value
    except ValueError:
        raise ValidationError(f"Unknown prescription status '{value}'.", field="status")


async def _doctor_name(store: DocumentStore, ctx) -> str:
    try:
        doctor = await user_service.get_user(store, ctx.user_id)
    except NotFound:
        return f"Dr. {ctx.email}"
    return f"Dr. {doctor.full_name or ctx.email}"


# ============================================================================
# READS
# ============================================================================

async def get_prescription(store: DocumentStore, prescription_id: str) -> Prescription:
    data = await store.read_path(_prescription_path(prescription_id))
    if not isinstance(data, dict):
        raise NotFound(GlobalMessages.PRESCRIPTION_NOT_FOUND)
    return load_document(Prescription, prescription_id, data)


async def get_prescription_for(store: DocumentStore, ctx, prescription_id: str) -> Prescription:
    prescription = await get_prescription(store, prescription_id)
    if ctx.user_id != prescription.doctor_id:
        ensure_can_read_patient(ctx, prescription.patient_id)
    return prescription


async def list_prescriptions_by_patient(store: DocumentStore, patient_id: str) -> List[Prescription]:
    prescriptions = collection_to_list(
        await store.read_path(PRESCRIPTIONS), Prescription, where=lambda data: data.get("patientId") == patient_id
    )
    return newest_first(prescriptions)


async def list_prescriptions_by_doctor(store: DocumentStore, doctor_id: str) -> List[Prescription]:
    prescriptions = collection_to_list(
        await store.read_path(PRESCRIPTIONS), Prescription, where=lambda data: data.get("doctorId") == doctor_id
    )
    return newest_first(prescriptions)


async def list_prescriptions_by_patient_for(store: DocumentStore, ctx, patient_id: str) -> List[Prescription]:
    ensure_can_read_patient(ctx, patient_id)
    return await list_prescriptions_by_patient(store, patient_id)


async def list_prescriptions_by_doctor_for(store: DocumentStore, ctx, doctor_id: str) -> List[Prescription]:
    if not ctx.is_admin and ctx.user_id != doctor_id:
        raise deny(ctx, "list prescriptions", doctor_id)
    return await list_prescriptions_by_doctor(store, doctor_id)


# ============================================================================
# WRITES
# ============================================================================

async def create_prescription(
    store: DocumentStore,
    ctx,
    request: PrescriptionCreateRequest,
) -> Prescription:
    """Issue a prescription as the calling doctor. Nothing is written if invalid."""
    require_permission(ctx, "create_prescriptions")

    record = request.to_document()
    for field in ("patientId",) + REQUIRED_FIELDS:
        if blank(record.get(field)):
            raise ValidationError(field=field)

    record.update({
        "doctorId": ctx.user_id,
        "doctorName": await _doctor_name(store, ctx),
        "status": _check_status(record.get("status") or PrescriptionStatus.ACTIVE),
        "refills": record.get("refills") if record.get("refills") not in (None, "") else 0,
        "prescribedDate": record.get("prescribedDate") or today_iso(),
        "createdAt": now_iso(),
    })

    prescription_id = await store.append_child(PRESCRIPTIONS, record)
    logger.info("Prescription %s issued by %s for %s", prescription_id, ctx.user_id, record["patientId"])
    return Prescription.model_validate({**record, "id": prescription_id})


async def _issued_by_caller(store: DocumentStore, ctx, prescription_id: str) -> Prescription:
    prescription = await get_prescription(store, prescription_id)
    if ctx.role != UserRole.DOCTOR or ctx.user_id != prescription.doctor_id:
        raise deny(ctx, "modify prescription", prescription_id)
    return prescription


async def update_prescription(
    store: DocumentStore,
    ctx,
    prescription_id: str,
    fields: Dict[str, Any],
) -> Prescription:
    """Merge-patch a prescription. Only the issuing doctor may."""
    await _issued_by_caller(store, ctx, prescription_id)
    fields = dict(fields)

    if IMMUTABLE_FIELDS & set(fields):
        raise deny(ctx, "reassign prescription", prescription_id)
    for field in REQUIRED_FIELDS:
        if field in fields and (blank(fields[field]) or not isinstance(fields[field], str)):
            raise ValidationError(field=field)
    if "status" in fields:
        fields["status"] = _check_status(fields["status"])

    if fields:
        await store.merge_path(_prescription_path(prescription_id), fields)
    return await get_prescription(store, prescription_id)


async def delete_prescription(store: DocumentStore, ctx, prescription_id: str) -> None:
    await _issued_by_caller(store, ctx, prescription_id)
    await store.delete_path(_prescription_path(prescription_id))
    logger.info("Prescription %s deleted by %s", prescription_id, ctx.user_id)
