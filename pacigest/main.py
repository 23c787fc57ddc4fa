"""
Main FastAPI application entry point.
Configures the application, middleware, the reminder scheduler and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from . import __version__
from .config import settings
from .core.clock import utcnow
from .core.middleware import setup_middlewares
from .database import Base, SessionLocal, engine, get_db
from .exceptions import register_exception_handlers
from .jobs.reminders import ReminderScheduler
from .notifications.sender import get_notification_sender

# Import all models here for creating tables
from .auth import models as auth_models  # noqa: F401
from .core import audit_models  # noqa: F401
from .patients import models as patient_models  # noqa: F401
from .appointments import models as appointment_models  # noqa: F401
from .medical_records import models as medical_record_models  # noqa: F401
from .prescriptions import models as prescription_models  # noqa: F401
from .medical_files import models as medical_file_models  # noqa: F401
from .payments import models as payment_models  # noqa: F401

from .auth.router import router as auth_router
from .users.router import router as users_router
from .patients.router import router as patients_router
from .appointments.router import router as appointments_router
from .medical_records.router import router as medical_records_router
from .prescriptions.router import router as prescriptions_router
from .medical_files.router import router as medical_files_router
from .payments.router import router as payments_router
from .stats.router import router as stats_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create database tables if they don't exist
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reminder scheduler with the application and stop it on shutdown."""
    logger.info("Starting PaciGest Plus API...")
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = ReminderScheduler(SessionLocal, get_notification_sender())
        scheduler.start()
    app.state.scheduler = scheduler
    yield
    if scheduler is not None:
        await scheduler.stop()


# Create FastAPI application
app = FastAPI(
    title="PaciGest Plus API",
    description="API for PaciGest Plus, medical practice management for independent doctors",
    version=__version__,
    lifespan=lifespan,
)

# Register exception handlers
register_exception_handlers(app)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware
setup_middlewares(app)

# Include routers
app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users_router, prefix="/api/users", tags=["Staff"])
app.include_router(patients_router, prefix="/api/patients", tags=["Patients"])
app.include_router(appointments_router, prefix="/api/appointments", tags=["Appointments"])
app.include_router(medical_records_router, prefix="/api/medical-records", tags=["Medical Records"])
app.include_router(prescriptions_router, prefix="/api/prescriptions", tags=["Prescriptions"])
app.include_router(medical_files_router, prefix="/api/medical-files", tags=["Medical Files"])
app.include_router(payments_router, prefix="/api/payments", tags=["Payments"])
app.include_router(stats_router, prefix="/api/stats", tags=["Statistics"])

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API version
    """
    return {"success": True, "message": "Welcome to PaciGest Plus API", "version": __version__}

# Health check endpoint
@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Health status, database reachability and server time
    """
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {str(e)}")
        database = "unavailable"
    return {
        "success": True,
        "message": "PaciGest Plus API is running",
        "status": "healthy",
        "database": database,
        "timestamp": utcnow().isoformat(),
    }
