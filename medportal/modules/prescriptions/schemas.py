# medportal/modules/prescriptions/schemas.py
"""Pydantic schemas for the prescriptions module."""

from typing import Any, List, Optional, Union

from pydantic import Field

from medportal.common.schemas import PortalDocument
from medportal.models.models import PrescriptionStatus


class Prescription(PortalDocument):
    """A stored prescription. Optional details are read back as whatever was written."""
    id: str
    patient_id: str
    doctor_id: str
    doctor_name: Any = None
    medication_name: str
    dosage: str
    frequency: str
    duration: Any = None
    instructions: Any = None
    quantity: Any = None
    refills: Any = 0
    prescribed_date: Any = None
    notes: Any = None
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE
    created_at: Any = None


class PrescriptionCreateRequest(PortalDocument):
    """The issuing doctor is always taken from the session, never from the body."""
    patient_id: str
    medication_name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: Optional[str] = None
    instructions: Optional[str] = None
    quantity: Optional[Union[str, int]] = None
    refills: Union[int, str] = Field(default=0)
    prescribed_date: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")
    notes: Optional[str] = None
    status: Optional[PrescriptionStatus] = None


class PrescriptionUpdateRequest(PortalDocument):
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None
    quantity: Optional[Union[str, int]] = None
    refills: Optional[Union[int, str]] = None
    prescribed_date: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PrescriptionStatus] = None


class PrescriptionListResponse(PortalDocument):
    prescriptions: List[Prescription]
    total: int


class PrescriptionActionResponse(PortalDocument):
    success: bool
    message: str
    prescription: Optional[Prescription] = None
