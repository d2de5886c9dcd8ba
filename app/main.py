import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.routes import otp_router, sms_router, system_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.dependencies import setup_services

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("📦 Connecting to DB...")
    await init_db()

    logger.info("🔄 Initializing OTP ledger and SMS dispatcher...")
    setup_services(app, settings)

    yield  # Application runs here

    logger.info("🧹 Closing DB connection...")
    await close_db()

# Initialize FastAPI app with lifespan
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Phone verification service for the clinic backend",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router.router, prefix=f"{settings.API_V1_STR}/system", tags=["System Check"])
app.include_router(otp_router.router, prefix=f"{settings.API_V1_STR}/otp", tags=["OTP"])
app.include_router(sms_router.router, prefix=f"{settings.API_V1_STR}/sms", tags=["SMS"])

# Root endpoint
@app.get("/")
async def root():
    return {"message": "Welcome to the Clinic OTP API"}
