"""
Main FastAPI Application for the Rwanda Water Permit Portal
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time
import logging

from permit_portal.core.config import get_settings
from permit_portal.core.database import create_tables, test_database_connection
from permit_portal.core.exceptions import CertificateRenderError, RecordStoreError, VerificationError
from permit_portal.api.v1.api import api_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Verification failures that are not plain bad input
VERIFICATION_STATUS_CODES = {
    "invalid_state": status.HTTP_409_CONFLICT,
    "cooldown_active": status.HTTP_429_TOO_MANY_REQUESTS,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    Handles startup and shutdown tasks
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")

    if settings.AUTO_CREATE_TABLES:
        create_tables()
    else:
        logger.info("Table auto-creation disabled (AUTO_CREATE_TABLES=false)")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Water use permit applications, reviews, inspections and certificates",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


def _error_response(status_code: int, detail, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "type": error_type,
            "status_code": status_code
        }
    )


@app.exception_handler(RecordStoreError)
async def handle_record_store_error(request: Request, exc: RecordStoreError):
    """Not found, validation, transport and permission failures"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_type}: {exc.message}")
    return _error_response(exc.status_code, exc.message, exc.error_type)


@app.exception_handler(VerificationError)
async def handle_verification_error(request: Request, exc: VerificationError):
    status_code = VERIFICATION_STATUS_CODES.get(exc.reason, status.HTTP_400_BAD_REQUEST)
    return _error_response(status_code, exc.message, exc.reason)


@app.exception_handler(CertificateRenderError)
async def handle_certificate_error(request: Request, exc: CertificateRenderError):
    logger.error(f"Certificate rendering failed for {request.url.path}: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Certificate could not be generated", "certificate_error")


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "internal_error")


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with record store connection test
    """
    db_connected, db_message = test_database_connection()

    health_status = {
        "status": "healthy" if db_connected else "unhealthy",
        "version": settings.VERSION,
        "system": settings.PROJECT_NAME,
        "timestamp": time.time(),
        "database": {
            "connected": db_connected,
            "message": db_message
        }
    }

    # Return 503 if database is not connected
    if not db_connected:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=health_status)

    return health_status


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with basic system information"""
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "docs_url": f"{settings.API_V1_STR}/docs",
        "redoc_url": f"{settings.API_V1_STR}/redoc",
        "api_base": settings.API_V1_STR
    }


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)
