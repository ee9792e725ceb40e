"""
Reporting Application Layer
===========================

Contains:
- ReportingService: scoped aggregation queries
- DTOs: response models for dashboard and report endpoints
"""

from agrodesk.reporting.application.dto import (
    BreakdownResponse,
    EntityPerformanceResponse,
    MTTRResponse,
    PerformanceResponse,
    PriorityComplianceResponse,
    ResolutionTimeResponse,
    SLABreachReportResponse,
    SLABreachResponse,
    SLADashboardResponse,
    TicketStatsResponse,
)
from agrodesk.reporting.application.services import ReportingService

__all__ = [
    "BreakdownResponse",
    "EntityPerformanceResponse",
    "MTTRResponse",
    "PerformanceResponse",
    "PriorityComplianceResponse",
    "ResolutionTimeResponse",
    "SLABreachReportResponse",
    "SLABreachResponse",
    "SLADashboardResponse",
    "TicketStatsResponse",
    "ReportingService",
]
