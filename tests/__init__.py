"""
Test Suite for the Energy Metering Tracker

This module contains tests for:
- Synthetic data generation (test_generator.py)
- EnPI calculation (test_indicators.py)
- Pareto and summary reports (test_reports.py)
- Heatmap, weekday profile and CSV export (test_analysis.py)
- API endpoints (test_api.py)

Run tests with:
    pytest tests/ -v
    pytest tests/ --cov=core --cov=engine --cov=api
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
