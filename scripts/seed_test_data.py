# scripts/seed_test_data.py
"""
Seed script for MedPortal testing.
Creates one admin, one doctor and one patient with a little shared history.

Characters:
- ADMIN: System Administrator
- DOCTOR: Dr. Amara Okafor - General practitioner
- PATIENT: Tunde Bello - A 41-year-old engineer managing type 2 diabetes

Run: python -m scripts.seed_test_data
"""

import asyncio
from datetime import date, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.schemas import SessionContext
from medportal.common.database.database import async_session, connect_to_db, close_db_connection
from medportal.common.database.document_store import DocumentStore
from medportal.models.models import Credential, DocumentNode, UserRole
from medportal.modules.appointments import appointments_service
from medportal.modules.appointments.schemas import AppointmentCreateRequest
from medportal.modules.history import history_service
from medportal.modules.prescriptions import prescriptions_service
from medportal.modules.prescriptions.schemas import PrescriptionCreateRequest
from medportal.modules.user import user_service


# =============================================================================
# CONSTANTS - Test Credentials
# =============================================================================

TEST_PASSWORD = "Test1234!"  # Same password for all test users

# The first admin has nobody to create it
BOOTSTRAP_CONTEXT = SessionContext(user_id="seed-script", role=UserRole.ADMIN)


async def clear_existing_data(db: AsyncSession):
    """Clear all test data (if needed for re-seeding)."""
    print("🧹 Clearing existing data...")
    await db.execute(delete(DocumentNode))
    await db.execute(delete(Credential))
    await db.commit()
    print("✅ Data cleared")


async def seed_all_data(db: AsyncSession):
    """Main seeding function."""
    store = DocumentStore(db)
    identity_provider = IdentityProvider(db)

    print("\n🌱 Starting MedPortal Test Data Seed")
    print("=" * 50)

    await clear_existing_data(db)

    print("🛡️ Creating admin...")
    admin = await user_service.create_admin(
        store, identity_provider, BOOTSTRAP_CONTEXT, "admin@test.com", TEST_PASSWORD,
        {"firstName": "System", "lastName": "Administrator"},
    )
    admin_ctx = SessionContext(user_id=admin.id, role=UserRole.ADMIN, email=admin.email)

    print("👩‍⚕️ Creating doctor: Dr. Amara Okafor...")
    doctor = await user_service.create_doctor(
        store, identity_provider, admin_ctx, "amara@test.com", TEST_PASSWORD,
        {
            "firstName": "Amara",
            "lastName": "Okafor",
            "specialization": "General Practice",
            "licenseNumber": "MDCN-48213",
        },
    )
    doctor_ctx = SessionContext(user_id=doctor.id, role=UserRole.DOCTOR, email=doctor.email)

    print("👤 Creating patient: Tunde Bello...")
    patient = await user_service.create_user(
        store, identity_provider, UserRole.PATIENT, "tunde@test.com", TEST_PASSWORD,
        {
            "firstName": "Tunde",
            "lastName": "Bello",
            "dateOfBirth": "1985-04-12",
            "address": "14 Allen Avenue, Ikeja",
            "emergencyContact": "Kemi Bello +234 803 555 0199",
        },
    )
    patient_ctx = SessionContext(user_id=patient.id, role=UserRole.PATIENT, email=patient.email)

    print("📅 Creating appointments...")
    today = date.today()
    past = await appointments_service.create_appointment(store, patient_ctx, AppointmentCreateRequest(
        doctor_id=doctor.id,
        date=(today - timedelta(days=14)).isoformat(),
        time="10:00",
        notes="Routine blood sugar review",
    ))
    await appointments_service.update_appointment(store, doctor_ctx, past.id, {
        "status": "completed",
        "feedback": {
            "diagnosis": "Type 2 diabetes, well controlled",
            "treatment": "Continue metformin",
            "followUpRequired": True,
            "followUpDate": (today + timedelta(days=30)).isoformat(),
        },
    })
    await appointments_service.create_appointment(store, patient_ctx, AppointmentCreateRequest(
        doctor_id=doctor.id,
        date=(today + timedelta(days=7)).isoformat(),
        time="14:30",
    ))

    print("💊 Creating prescriptions...")
    await prescriptions_service.create_prescription(store, doctor_ctx, PrescriptionCreateRequest(
        patient_id=patient.id,
        medication_name="Metformin",
        dosage="500mg",
        frequency="Twice daily",
        duration="90 days",
        instructions="Take with meals",
        refills=2,
        prescribed_date=(today - timedelta(days=14)).isoformat(),
    ))

    print("📋 Creating medical history...")
    await history_service.add_history_item(
        store, patient_ctx, patient.id, "conditions",
        {"name": "Type 2 diabetes", "diagnosedDate": "2021-06-01", "status": "active"},
    )
    await history_service.add_history_item(
        store, doctor_ctx, patient.id, "medications",
        {"name": "Metformin", "dosage": "500mg", "frequency": "Twice daily"},
    )
    await history_service.add_history_item(
        store, patient_ctx, patient.id, "allergies",
        {"name": "Penicillin", "severity": "moderate", "reaction": "Rash"},
    )

    print("\n" + "=" * 50)
    print("✅ Seed complete! Test credentials:")
    print(f"   Admin:   admin@test.com / {TEST_PASSWORD}")
    print(f"   Doctor:  amara@test.com / {TEST_PASSWORD}")
    print(f"   Patient: tunde@test.com / {TEST_PASSWORD}")
    print("=" * 50 + "\n")


# =============================================================================
# MAIN
# =============================================================================

async def main():
    """Run the seed script."""
    await connect_to_db()
    try:
        async with async_session() as db:
            try:
                await seed_all_data(db)
            except Exception as e:
                await db.rollback()
                print(f"\n❌ Error during seeding: {e}")
                raise
    finally:
        await close_db_connection()


if __name__ == "__main__":
    asyncio.run(main())
