"""
Reporting Domain Layer
======================

Pure aggregation functions and their result types.
"""

from agrodesk.reporting.domain.aggregations import (
    Breakdown,
    BreachedTicket,
    EntityPerformance,
    PriorityCompliance,
    ResolutionTime,
    TicketStats,
    breaches,
    breakdown,
    compliance_by_priority,
    mean_time_to_resolution,
    performance,
    resolution_hours,
    summarize,
)

__all__ = [
    "Breakdown",
    "BreachedTicket",
    "EntityPerformance",
    "PriorityCompliance",
    "ResolutionTime",
    "TicketStats",
    "breaches",
    "breakdown",
    "compliance_by_priority",
    "mean_time_to_resolution",
    "performance",
    "resolution_hours",
    "summarize",
]
