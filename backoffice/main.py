"""
Back Office Fee & Compliance Engine - FastAPI Application

Main entry point for the fee calculation and compliance evaluation API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.auth import signing_key
from backoffice.config import settings
from backoffice.errors import BackOfficeError
from backoffice.logging import setup_logging
from backoffice.api import compliance, fees

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start without a token signing key."""
    signing_key()
    yield


# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description="Fee calculation and compliance rule engine for a wealth back office",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackOfficeError)
def handle_backoffice_error(request: Request, exc: BackOfficeError):
    """Render engine errors as {success: false, error, details}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.error, "details": exc.details}
    )


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    """Malformed requests are input errors (400), not 422."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request", "details": details}
    )


# Include API routers
app.include_router(fees.router, prefix=settings.api_v1_prefix)
app.include_router(compliance.router, prefix=settings.api_v1_prefix)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "operational",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
