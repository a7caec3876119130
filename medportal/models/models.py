# medportal/models/models.py

import uuid
import enum

from sqlalchemy import (
    JSON, Column, String, DateTime,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class UserRole(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class PrescriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Collections in the shared document tree
USERS = "users"
APPOINTMENTS = "appointments"
PRESCRIPTIONS = "prescriptions"
PATIENT_MEDICAL_HISTORY = "patientMedicalHistory"


# ============================================================================
# IDENTITY MODELS
# ============================================================================

class Credential(Base):
    __tablename__ = "credentials"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Credential(id={self.id}, email={self.email})>"


# ============================================================================
# DOCUMENT TREE
# ============================================================================

class DocumentNode(Base):
    """One document of the shared tree: `{collection}/{key}` -> JSON body."""
    __tablename__ = "document_nodes"

    collection = Column(String(64), primary_key=True)
    key = Column(String(128), primary_key=True)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<DocumentNode(path={self.collection}/{self.key})>"
