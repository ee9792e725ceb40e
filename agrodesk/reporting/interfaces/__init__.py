"""
Reporting Interfaces Layer
==========================

FastAPI route handlers for the dashboard and reports.
"""

from agrodesk.reporting.interfaces.controllers import dashboard_router, reports_router

__all__ = ["dashboard_router", "reports_router"]
