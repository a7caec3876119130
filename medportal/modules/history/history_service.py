# medportal/modules/history/history_service.py
"""
Service layer for patient medical history.

A history is kept in two places while the old shape is being retired:

    patientMedicalHistory/{patientId}      current location
    users/{patientId}/medicalHistory       legacy copy, embedded in the user

MedicalHistoryRepository hides this from the rest of the code. Reads prefer
the current location and fall back to the legacy copy. Saves write the
current location first and the legacy copy second; the two writes are not
atomic and a copy left behind by a failed write is never reconciled.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from medportal.auth.permissions import deny, ensure_can_read_patient, ensure_can_write_patient
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import NotFound, PartialWriteFailure, StoreError, ValidationError
from medportal.common.utils.global_functions import now_iso
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import PATIENT_MEDICAL_HISTORY, USERS, UserRole

from .schemas import SECTIONS, MedicalHistory, PatientMedicalHistory

logger = logging.getLogger(__name__)


def _from_stored(data: Any) -> Dict[str, Any]:
    # Stored lists may be null or missing; both read as empty.
    if not isinstance(data, dict):
        return {}
    return {key: value for key, value in data.items() if value is not None}


def _patient_key(patient_id: str) -> str:
    if not patient_id or "/" in patient_id:
        raise ValidationError("Invalid patient id.")
    return patient_id


class MedicalHistoryRepository:
    """One logical medical history over its two physical copies."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def current_path(patient_id: str) -> str:
        return f"{PATIENT_MEDICAL_HISTORY}/{_patient_key(patient_id)}"

    @staticmethod
    def legacy_path(patient_id: str) -> str:
        return f"{USERS}/{_patient_key(patient_id)}/medicalHistory"

    async def get(self, patient_id: str) -> MedicalHistory:
        """The current copy, else the legacy one, else an empty history."""
        data = await self.store.read_path(self.current_path(patient_id))
        if not isinstance(data, dict):
            data = await self.store.read_path(self.legacy_path(patient_id))
            if isinstance(data, dict):
                logger.debug("Medical history for %s read from legacy location", patient_id)
        try:
            return MedicalHistory.model_validate(_from_stored(data))
        except PydanticValidationError as e:
            logger.warning("Stored medical history for %s is malformed: %s", patient_id, e)
            raise StoreError(GlobalMessages.MALFORMED_RECORD) from e

    async def save(self, patient_id: str, history: MedicalHistory) -> MedicalHistory:
        """
        Write both copies, current first. Raises StoreError when neither
        write lands and PartialWriteFailure when exactly one does.
        """
        record = history.to_document()
        record.pop("patientId", None)
        record["lastUpdated"] = now_iso()

        written, failed = [], []
        for path in (self.current_path(patient_id), self.legacy_path(patient_id)):
            try:
                await self.store.write_path(path, record)
            except StoreError:
                logger.error("Medical history write to %s failed", path)
                failed.append(path)
            else:
                written.append(path)

        if not written:
            raise StoreError()
        if failed:
            logger.warning("Medical history for %s diverged: wrote %s, failed %s", patient_id, written, failed)
            raise PartialWriteFailure(tuple(written), tuple(failed))
        return MedicalHistory.model_validate(record)

    async def list_all(self) -> List[PatientMedicalHistory]:
        """Every history in the current collection. Legacy-only copies are not included."""
        collection = await self.store.read_path(PATIENT_MEDICAL_HISTORY) or {}
        histories = []
        for patient_id, data in collection.items():
            if not isinstance(data, dict):
                continue
            try:
                histories.append(
                    PatientMedicalHistory.model_validate({**_from_stored(data), "patientId": patient_id})
                )
            except PydanticValidationError as e:
                logger.warning("Skipping malformed medical history for %s: %s", patient_id, e)
        return histories


def _check_section(section: str) -> str:
    if section not in SECTIONS:
        raise ValidationError(f"Unknown medical history section '{section}'.")
    return section


def _ensure_clinical_staff(ctx, action: str) -> None:
    if ctx.role not in (UserRole.DOCTOR, UserRole.ADMIN):
        raise deny(ctx, action)


# ============================================================================
# PER-PATIENT OPERATIONS
# ============================================================================

async def get_patient_medical_history(store: DocumentStore, ctx, patient_id: str) -> MedicalHistory:
    ensure_can_read_patient(ctx, patient_id)
    return await MedicalHistoryRepository(store).get(patient_id)


async def save_patient_medical_history(
    store: DocumentStore,
    ctx,
    patient_id: str,
    data: Union[MedicalHistory, Dict[str, Any]],
) -> MedicalHistory:
    """Replace a patient's whole history (both copies)."""
    ensure_can_write_patient(ctx, patient_id)
    history = data if isinstance(data, MedicalHistory) else MedicalHistory.model_validate(_from_stored(data))
    saved = await MedicalHistoryRepository(store).save(patient_id, history)
    logger.info("Medical history for %s saved by %s", patient_id, ctx.user_id)
    return saved


async def add_history_item(
    store: DocumentStore,
    ctx,
    patient_id: str,
    section: str,
    item: Dict[str, Any],
) -> Dict[str, Any]:
    """Append an item to one section, giving it a fresh id."""
    _check_section(section)
    ensure_can_write_patient(ctx, patient_id)
    repository = MedicalHistoryRepository(store)

    document = (await repository.get(patient_id)).to_document()
    new_item = {**item, "id": uuid.uuid4().hex}
    document[section].append(new_item)

    await repository.save(patient_id, MedicalHistory.model_validate(document))
    return new_item


async def remove_history_item(
    store: DocumentStore,
    ctx,
    patient_id: str,
    section: str,
    item_id: str,
) -> None:
    _check_section(section)
    ensure_can_write_patient(ctx, patient_id)
    repository = MedicalHistoryRepository(store)

    document = (await repository.get(patient_id)).to_document()
    # Older clients stored numeric ids
    remaining = [entry for entry in document[section] if str(entry.get("id")) != str(item_id)]
    if len(remaining) == len(document[section]):
        raise NotFound(GlobalMessages.HISTORY_ITEM_NOT_FOUND)
    document[section] = remaining

    await repository.save(patient_id, MedicalHistory.model_validate(document))


async def update_lifestyle_plans(
    store: DocumentStore,
    ctx,
    patient_id: str,
    plans: Optional[Dict[str, Any]],
) -> MedicalHistory:
    ensure_can_write_patient(ctx, patient_id)
    repository = MedicalHistoryRepository(store)

    history = await repository.get(patient_id)
    history.lifestyle_plans = plans
    return await repository.save(patient_id, history)


# ============================================================================
# ACROSS PATIENTS (fetch-all, filter in memory)
# ============================================================================

async def list_all_medical_histories(store: DocumentStore, ctx) -> List[PatientMedicalHistory]:
    _ensure_clinical_staff(ctx, "list medical histories")
    return await MedicalHistoryRepository(store).list_all()


def _has_named(items: List[Dict[str, Any]], needle: str) -> bool:
    needle = needle.lower()
    return any(
        isinstance(item.get("name"), str) and needle in item["name"].lower()
        for item in items
        if isinstance(item, dict)
    )


async def find_patients_by_condition(store: DocumentStore, ctx, condition_name: str) -> List[PatientMedicalHistory]:
    histories = await list_all_medical_histories(store, ctx)
    return [h for h in histories if _has_named(h.conditions, condition_name)]


async def find_patients_by_medication(store: DocumentStore, ctx, medication_name: str) -> List[PatientMedicalHistory]:
    histories = await list_all_medical_histories(store, ctx)
    return [h for h in histories if _has_named(h.medications, medication_name)]
