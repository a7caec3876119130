# medportal/modules/history/schemas.py
"""Medical history module Pydantic schemas."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from medportal.common.schemas import PortalDocument


# Sub-collections held as plain lists of free-form items.
SECTIONS = (
    "conditions",
    "medications",
    "allergies",
    "surgeries",
    "immunizations",
    "labResults",
)


class MedicalHistory(PortalDocument):
    """
    One patient's medical history, in either stored shape.

    List fields are always present so callers never need null checks.
    Items are free-form dicts; each carries an `id` once added through
    the access layer.
    """
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    medications: List[Dict[str, Any]] = Field(default_factory=list)
    allergies: List[Dict[str, Any]] = Field(default_factory=list)
    surgeries: List[Dict[str, Any]] = Field(default_factory=list)
    immunizations: List[Dict[str, Any]] = Field(default_factory=list)
    lab_results: List[Dict[str, Any]] = Field(default_factory=list)
    lifestyle_plans: Optional[Dict[str, Any]] = None
    last_updated: Optional[str] = None


class PatientMedicalHistory(MedicalHistory):
    """A history tagged with the patient it belongs to, for collection reads."""
    patient_id: str


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class MedicalHistoryItemRequest(PortalDocument):
    """A new entry for one section. Any extra fields are stored as given."""
    name: Optional[str] = None


class LifestylePlansRequest(PortalDocument):
    lifestyle_plans: Dict[str, Any]


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class MedicalHistoryItemResponse(PortalDocument):
    success: bool
    message: str
    item: Optional[Dict[str, Any]] = None


class MedicalHistoryListResponse(PortalDocument):
    histories: List[PatientMedicalHistory]
    total: int
