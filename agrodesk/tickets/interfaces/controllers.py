"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the complaint lifecycle and the call trail.

Controllers are thin - they delegate to application services. Every route
requires the gateway's actor headers; errors are rendered by the shared
exception handlers.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from agrodesk.config import settings
from agrodesk.shared.infrastructure.logging import get_logger
from agrodesk.tickets.application import (
    AssignDTO,
    CallLogCreateDTO,
    CallLogListResponse,
    CallLogResponse,
    CallLogService,
    PaginationResponse,
    StatusChangeDTO,
    TicketCreateDTO,
    TicketDetailResponse,
    TicketFilterDTO,
    TicketListResponse,
    TicketResponse,
    TicketService,
    TicketUpdateDTO,
)
from agrodesk.tickets.application.dto import CategoryStr, PriorityStr
from agrodesk.tickets.domain import Actor, utc_now
from agrodesk.tickets.interfaces.dependencies import (
    get_call_log_service,
    get_current_actor,
    get_ticket_service,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])
call_log_router = APIRouter(prefix="/call-logs", tags=["Call Logs"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "Milking machine pump failure",
    "description": "Vacuum pump stopped during the morning milking.",
    "category": "equipment",
    "priority": "critical",
    "farmer_id": 42,
    "equipment_id": 7
}


def ticket_filters(
    ticket_status: Optional[str] = Query(None, alias="status", description="Ticket status name"),
    priority: Optional[PriorityStr] = Query(None, description="critical, urgent or normal"),
    category: Optional[CategoryStr] = Query(None),
    zone_id: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    line_id: Optional[int] = Query(None),
    farmer_id: Optional[int] = Query(None),
    equipment_id: Optional[int] = Query(None),
    assigned_to: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Created at or after"),
    end_date: Optional[datetime] = Query(None, description="Created at or before"),
) -> TicketFilterDTO:
    """Explicit list filters. They narrow, never widen, the actor's scope."""
    return TicketFilterDTO(
        status=ticket_status,
        priority=priority,
        category=category,
        zone_id=zone_id,
        branch_id=branch_id,
        line_id=line_id,
        farmer_id=farmer_id,
        equipment_id=equipment_id,
        assigned_to=assigned_to,
        start_date=start_date,
        end_date=end_date,
    )


# ========== Tickets ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Open a complaint for a farmer.

    Zone, branch and line are copied from the farmer. The SLA deadline is
    fixed from the priority at creation time:
    `critical` 30 min, `urgent` 2 h, `normal` 8 h (configurable).
    """,
    responses={
        201: {"description": "Ticket created"},
        404: {"description": "Farmer or equipment not found"},
        409: {"description": "Ticket number collision"}
    }
)
async def create_ticket(
    request: TicketCreateDTO = Body(..., examples=[TICKET_CREATE_EXAMPLE]),
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.create_ticket(request, actor)
    return TicketResponse.from_domain(ticket, utc_now())


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="Tickets visible to the actor, newest first. Executives only see their zone."
)
async def list_tickets(
    filters: TicketFilterDTO = Depends(ticket_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    result = await service.list_tickets(actor, filters, page=page, limit=limit)
    now = utc_now()
    return TicketListResponse(
        tickets=[TicketResponse.from_domain(t, now) for t in result.tickets],
        pagination=PaginationResponse(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketDetailResponse,
    summary="Get a ticket with its call logs",
    responses={
        403: {"description": "Ticket outside the actor's scope"},
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket(
    ticket_id: int,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket, call_logs = await service.get_ticket_detail(ticket_id, actor)
    return TicketDetailResponse(
        ticket=TicketResponse.from_domain(ticket, utc_now()),
        call_logs=[CallLogResponse.from_domain(c) for c in call_logs],
    )


@router.put(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Edit a ticket",
    description="Priority changes never move the SLA deadline."
)
async def update_ticket(
    ticket_id: int,
    request: TicketUpdateDTO,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.update_ticket(ticket_id, request, actor)
    return TicketResponse.from_domain(ticket, utc_now())


@router.put(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
    description="""
    Move a ticket to `open`, `progress`, `closed` or `reopen`.

    Closing stamps `closed_at` and `resolved_at`. When `remarks` are given
    a `connected` call log is recorded with the new status.
    """
)
async def change_status(
    ticket_id: int,
    request: StatusChangeDTO,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.change_status(ticket_id, request.status, actor, request.remarks)
    return TicketResponse.from_domain(ticket, utc_now())


@router.put(
    "/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign a ticket",
    description="Admins only. The assignee must be an active executive of the ticket's zone."
)
async def assign_ticket(
    ticket_id: int,
    request: AssignDTO,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.assign_ticket(ticket_id, request.assigned_to, actor)
    return TicketResponse.from_domain(ticket, utc_now())


# ========== Call Logs ==========

@call_log_router.post(
    "",
    response_model=CallLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a call",
    description="Recording a call never changes the ticket status."
)
async def create_call_log(
    request: CallLogCreateDTO,
    actor: Actor = Depends(get_current_actor),
    service: CallLogService = Depends(get_call_log_service)
):
    call_log = await service.record_call(request, actor)
    return CallLogResponse.from_domain(call_log)


@call_log_router.get(
    "/recent",
    response_model=CallLogListResponse,
    summary="Latest calls in the actor's scope"
)
async def recent_call_logs(
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: CallLogService = Depends(get_call_log_service)
):
    call_logs = await service.recent(actor, limit)
    return CallLogListResponse(call_logs=[CallLogResponse.from_domain(c) for c in call_logs])


@call_log_router.get(
    "/ticket/{ticket_id}",
    response_model=CallLogListResponse,
    summary="Call logs of a ticket, newest first"
)
async def list_ticket_call_logs(
    ticket_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CallLogService = Depends(get_call_log_service)
):
    call_logs = await service.list_for_ticket(ticket_id, actor)
    return CallLogListResponse(call_logs=[CallLogResponse.from_domain(c) for c in call_logs])


# Export routers
tickets_router = router
call_logs_router = call_log_router
