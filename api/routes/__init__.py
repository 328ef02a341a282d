"""
API Routes Module

This module contains all API endpoint implementations organized by function:
- classifications.py: Classification management endpoints
- metering.py: Metering data listing, ingestion, generation and export
- enpi.py: EnPI calculation endpoints
- reports.py: Pareto, summary, heatmap and weekday reports

All routers are combined in main.py to create the complete API.
"""

from .classifications import router as classifications_router
from .metering import router as metering_router
from .enpi import router as enpi_router
from .reports import router as reports_router

__all__ = [
    "classifications_router",
    "metering_router",
    "enpi_router",
    "reports_router",
]
