# medportal/router/routers.py

from fastapi import FastAPI
from medportal.auth.auth_controller import router as auth_router
from medportal.modules.user.user_controller import router as user_router
from medportal.modules.appointments.appointments_controller import router as appointments_router
from medportal.modules.prescriptions.prescriptions_controller import router as prescriptions_router
from medportal.modules.history.history_controller import router as history_router
from medportal.modules.assistant.assistant_controller import router as assistant_router

def include_routers(app: FastAPI) -> None:
    """Include all API routers in the FastAPI application."""
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(appointments_router)
    app.include_router(prescriptions_router)
    app.include_router(history_router)
    app.include_router(assistant_router)
