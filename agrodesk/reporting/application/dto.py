"""
Reporting DTOs
==============

Response models for dashboard and report endpoints.
"""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrodesk.reporting.domain import BreachedTicket


GroupStr = Literal["equipment", "zone", "branch"]


class TicketStatsResponse(BaseModel):
    """Headline counts. ``breach_count`` is evaluated at request time."""
    model_config = ConfigDict(from_attributes=True)

    total_count: int
    open_count: int
    resolved_count: int
    closed_count: int
    critical_count: int
    breach_count: int


class PriorityComplianceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    priority: str
    total: int
    compliant: int
    breached: int
    pending: int
    compliance_rate: float = Field(..., description="Percent of tickets resolved within SLA")


class SLABreachResponse(BaseModel):
    ticket_id: int
    ticket_number: str
    title: str
    priority: str
    status: str
    farmer_id: int
    zone_id: int
    branch_id: int
    line_id: int
    assigned_to: Optional[int] = None
    sla_deadline: datetime
    hours_overdue: float

    @classmethod
    def from_domain(cls, breach: BreachedTicket) -> "SLABreachResponse":
        ticket = breach.ticket
        return cls(
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            priority=ticket.priority.value,
            status=ticket.status.name,
            farmer_id=ticket.farmer_id,
            zone_id=ticket.zone_id,
            branch_id=ticket.branch_id,
            line_id=ticket.line_id,
            assigned_to=ticket.assigned_to,
            sla_deadline=ticket.sla_deadline,
            hours_overdue=breach.hours_overdue,
        )


class SLADashboardResponse(BaseModel):
    by_priority: List[PriorityComplianceResponse]
    breaches: List[SLABreachResponse] = Field(..., description="Most overdue first")


class SLABreachReportResponse(BaseModel):
    breaches: List[SLABreachResponse]
    summary: List[PriorityComplianceResponse]
    generated_at: datetime


class ResolutionTimeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_id: int
    resolved_count: int
    mean_hours: float


class MTTRResponse(BaseModel):
    group_by: GroupStr
    results: List[ResolutionTimeResponse]
    generated_at: datetime


class EntityPerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_id: int
    total: int
    open: int
    closed: int
    breached: int
    mean_resolution_hours: Optional[float] = None


class PerformanceResponse(BaseModel):
    group_by: Literal["zone", "branch"]
    results: List[EntityPerformanceResponse]
    generated_at: datetime


class BreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_category: Dict[str, int]
    by_day: Dict[date, int] = Field(..., description="Tickets created per day, last 30 days")
