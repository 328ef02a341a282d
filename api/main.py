"""
Energy Metering Tracker - FastAPI Application

This is the main entry point for the FastAPI backend.
It combines all route modules and provides system-wide endpoints.

Features:
- Classification management (buildings, equipment, production lines)
- Synthetic metering data generation
- EnPI calculation against optional baselines
- Pareto, summary, heatmap, weekday, daily trend, comparison and
  energy flow reports
- CSV export
- Interactive API documentation (Swagger/OpenAPI)

Access Points:
- API Root: http://localhost:8000
- Swagger Docs: http://localhost:8000/docs
- ReDoc: http://localhost:8000/redoc
- OpenAPI JSON: http://localhost:8000/openapi.json
"""

import os
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.database import check_database_health, init_database
from api.models import SystemHealth
from api.routes import (
    classifications_router,
    metering_router,
    enpi_router,
    reports_router,
)
from core.errors import (
    ClassificationNotFoundError,
    InvalidArgumentError,
    InvalidFormulaError,
    MeteringError,
    NoDataError,
)
from core.indicators import BaselineStatus, Formula
from core.reports import GroupBy, MetricType

# =========================================
# Logging Configuration
# =========================================

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    ClassificationNotFoundError: status.HTTP_404_NOT_FOUND,
    NoDataError: status.HTTP_400_BAD_REQUEST,
    InvalidFormulaError: status.HTTP_400_BAD_REQUEST,
}


def _debug_enabled() -> bool:
    return os.getenv("DEBUG", "false").lower() == "true"


def _cors_origins():
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# =========================================
# Application Lifespan
# =========================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Creates tables and seeds the default classifications on startup.
    """
    logger.info("Starting Energy Metering Tracker API...")

    try:
        init_database()

        db_health = check_database_health()
        if db_health["status"] == "healthy":
            logger.info(f"Database connection verified ({db_health['dialect']})")
        else:
            logger.warning(f"Database health check failed: {db_health}")

    except Exception as e:
        logger.error(f"Startup error: {e}")

    logger.info("Energy Metering Tracker API started")
    logger.info("API Documentation: http://localhost:8000/docs")

    yield

    logger.info("Shutting down Energy Metering Tracker API...")


# =========================================
# FastAPI Application
# =========================================

app = FastAPI(
    title="Energy Metering Tracker API",
    description="""
## Energy Metering and EnPI Tracking

This API records energy readings per classification, synthesizes realistic
sample series, and evaluates Energy Performance Indicators (EnPIs).

### Key Features

- **Classifications**: Group readings by building, equipment, or production line
- **Synthetic Data**: Daily and weekly load shapes with bounded noise
- **EnPIs**: TotalEnergy, EnergyPerHour, MaxPower, AvgPower with baseline comparison
- **Reports**: Pareto ranking, heatmap, weekday profile, daily trend,
  classification comparison and energy flow

### Core Concepts

#### Readings
Each reading is an interval's energy (kWh) and average power (kW),
timestamped in UTC.

#### Baseline Comparison
Improvement is `(baseline - current) / baseline * 100`. Positive values
mean consumption went down.

### Quick Start

1. **List classifications**: `GET /api/v1/classifications`
2. **Generate demo data**: `POST /api/v1/metering-data/generate`
3. **Calculate an EnPI**: `POST /api/v1/enpi/calculate`
4. **Rank consumers**: `GET /api/v1/reports/pareto`
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# =========================================
# CORS Middleware
# =========================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================
# Exception Handlers
# =========================================

def _error_response(
    status_code: int,
    kind: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    **extra: Any
) -> JSONResponse:
    """Render the shared error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "kind": kind,
            "message": message,
            "context": context or {},
            "status_code": status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        }
    )


@app.exception_handler(MeteringError)
async def metering_exception_handler(request: Request, exc: MeteringError):
    """Render core errors with their kind and context."""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{exc.kind} on {request.url.path}: {exc.message}")
    body = exc.to_dict()
    return _error_response(status_code, body["kind"], body["message"], body["context"])


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Route-level errors such as an unknown EnPI id."""
    return _error_response(exc.status_code, "http_error", exc.detail)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
        detail=str(exc) if _debug_enabled() else None,
    )


# =========================================
# Include Routers
# =========================================

# API v1 routes
app.include_router(classifications_router, prefix="/api/v1")
app.include_router(metering_router, prefix="/api/v1")
app.include_router(enpi_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")


# =========================================
# Root Endpoints
# =========================================

@app.get(
    "/",
    tags=["System"],
    summary="API Root",
    description="Service name, version and entry points"
)
async def root():
    """API root endpoint."""
    return {
        "name": "Energy Metering Tracker API",
        "version": __version__,
        "description": "Energy metering, EnPI tracking and consumption reports",
        "documentation": "/docs",
        "health_check": "/health",
        "info": "/info",
        "api_base": "/api/v1"
    }


@app.get(
    "/health",
    response_model=SystemHealth,
    tags=["System"],
    summary="System Health Check",
    description="""
    Report database connectivity and whether the classification, metering
    data and EnPI tables exist.

    - `ok`: connected and schema ready
    - `degraded`: connected, schema missing (startup has not run)
    - `error`: database unreachable
    """
)
async def health_check():
    """System health check endpoint."""
    db_health = check_database_health()

    if not db_health["connected"]:
        overall_status = "error"
    elif db_health["tables_ready"]:
        overall_status = "ok"
    else:
        overall_status = "degraded"

    return SystemHealth(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=db_health["status"],
        components={
            "database": db_health.get("dialect", "unavailable"),
            "schema": "ready" if db_health.get("tables_ready") else "missing",
            "synthetic_seed": "fixed" if os.getenv("SYNTHETIC_DATA_SEED") else "random",
        }
    )


@app.get(
    "/info",
    tags=["System"],
    summary="Supported Calculations",
    description="EnPI formulas and report groupings accepted by the API"
)
async def system_info():
    """List the formula and report selectors the API accepts."""
    return {
        "enpi_formulas": [formula.value for formula in Formula],
        "baseline_statuses": [s.value for s in BaselineStatus],
        "pareto": {
            "group_by": [g.value for g in GroupBy],
            "metrics": [m.value for m in MetricType],
        },
        "reports": [
            "/api/v1/reports/pareto",
            "/api/v1/reports/summary",
            "/api/v1/reports/heatmap",
            "/api/v1/reports/weekday",
            "/api/v1/reports/daily-trend",
            "/api/v1/reports/comparison",
            "/api/v1/reports/energy-flow",
        ],
    }


@app.get(
    "/ready",
    tags=["System"],
    summary="Readiness Check",
    description="Ready once the database is reachable and its tables exist"
)
async def readiness_check():
    """Ready when the schema exists."""
    db_health = check_database_health()

    if not db_health.get("tables_ready"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database schema not ready"
        )

    return {"ready": True}


@app.get(
    "/live",
    tags=["System"],
    summary="Liveness Check",
    description="Check if the API process is alive"
)
async def liveness_check():
    """Process is up."""
    return {"alive": True}


# =========================================
# Run with Uvicorn (for development)
# =========================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=os.getenv("API_RELOAD", "true").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )
