"""
Reporting Controllers (API Routes)
==================================

FastAPI routes for the dashboard and reports.

All figures are computed at request time within the actor's scope, so
an executive's dashboard only ever reflects their own zone.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agrodesk.infrastructure.database import get_session
from agrodesk.reporting.application import (
    BreakdownResponse,
    EntityPerformanceResponse,
    MTTRResponse,
    PerformanceResponse,
    PriorityComplianceResponse,
    ReportingService,
    ResolutionTimeResponse,
    SLABreachReportResponse,
    SLABreachResponse,
    SLADashboardResponse,
    TicketStatsResponse,
)
from agrodesk.reporting.application.dto import GroupStr
from agrodesk.tickets.application import TicketFilterDTO
from agrodesk.tickets.domain import Actor, utc_now
from agrodesk.tickets.infrastructure import SQLAlchemyStatusCatalog, SQLAlchemyTicketRepository
from agrodesk.tickets.interfaces.controllers import ticket_filters
from agrodesk.tickets.interfaces.dependencies import get_current_actor

dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
reports_router = APIRouter(prefix="/reports", tags=["Reports"])


# ========== Dependencies ==========

async def get_reporting_service(
    session: AsyncSession = Depends(get_session)
) -> ReportingService:
    """Get reporting service instance."""
    return ReportingService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyStatusCatalog(session),
    )


# ========== Dashboard ==========

@dashboard_router.get(
    "/stats",
    response_model=TicketStatsResponse,
    summary="Headline ticket counts",
    description="""
    Counts over the actor's tickets:

    - `open_count`: any status other than `closed`
    - `resolved_count`: tickets with a resolution time
    - `breach_count`: open tickets past their SLA deadline, right now
    """
)
async def get_stats(
    filters: TicketFilterDTO = Depends(ticket_filters),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    stats = await service.stats(actor, filters)
    return TicketStatsResponse.model_validate(stats)


@dashboard_router.get(
    "/sla",
    response_model=SLADashboardResponse,
    summary="SLA compliance by priority and current breaches"
)
async def get_sla_dashboard(
    filters: TicketFilterDTO = Depends(ticket_filters),
    limit: int = Query(20, ge=1, le=200, description="Breaches to return"),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    by_priority, breaches = await service.sla_overview(actor, filters, limit)
    return SLADashboardResponse(
        by_priority=[PriorityComplianceResponse.model_validate(r) for r in by_priority],
        breaches=[SLABreachResponse.from_domain(b) for b in breaches],
    )


@dashboard_router.get(
    "/breakdown",
    response_model=BreakdownResponse,
    summary="Ticket counts by status, priority, category and day"
)
async def get_breakdown(
    filters: TicketFilterDTO = Depends(ticket_filters),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    result = await service.breakdown(actor, filters)
    return BreakdownResponse.model_validate(result)


# ========== Reports ==========

@reports_router.get(
    "/mttr",
    response_model=MTTRResponse,
    summary="Mean time to resolution",
    description="""
    Mean hours from creation to resolution, per equipment, zone or branch.

    Only resolved tickets count. Entities without any are left out.
    """
)
async def get_mttr(
    group_by: GroupStr = Query("equipment"),
    filters: TicketFilterDTO = Depends(ticket_filters),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    results = await service.mean_time_to_resolution(actor, group_by, filters)
    return MTTRResponse(
        group_by=group_by,
        results=[ResolutionTimeResponse.model_validate(r) for r in results],
        generated_at=utc_now(),
    )


@reports_router.get(
    "/sla-breaches",
    response_model=SLABreachReportResponse,
    summary="SLA breach report"
)
async def get_sla_breaches(
    filters: TicketFilterDTO = Depends(ticket_filters),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    summary, breaches = await service.sla_overview(actor, filters, limit=None)
    return SLABreachReportResponse(
        breaches=[SLABreachResponse.from_domain(b) for b in breaches],
        summary=[PriorityComplianceResponse.model_validate(r) for r in summary],
        generated_at=utc_now(),
    )


@reports_router.get(
    "/performance",
    response_model=PerformanceResponse,
    summary="Zone or branch performance"
)
async def get_performance(
    group_by: Literal["zone", "branch"] = Query("zone"),
    filters: TicketFilterDTO = Depends(ticket_filters),
    actor: Actor = Depends(get_current_actor),
    service: ReportingService = Depends(get_reporting_service)
):
    results = await service.performance(actor, group_by, filters)
    return PerformanceResponse(
        group_by=group_by,
        results=[EntityPerformanceResponse.model_validate(r) for r in results],
        generated_at=utc_now(),
    )
