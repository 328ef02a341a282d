"""
API Module - FastAPI Backend

This module provides the REST API for the Energy Metering Tracker.
It stores classifications and metering readings, generates synthetic
series, calculates EnPIs and serves consumption reports.

Key Components:
- main.py: FastAPI application and root endpoints
- models.py: Pydantic schemas for request/response validation
- database.py: SQLAlchemy engine, ORM models and DatabaseManager
- routes/: API endpoint implementations

Endpoints:
- /api/v1/classifications: Classification CRUD
- /api/v1/metering-data: Readings, synthetic generation, CSV export
- /api/v1/enpi: EnPI calculation and history
- /api/v1/reports: Pareto, summary, heatmap, weekday profile
"""

__version__ = "0.1.0"
