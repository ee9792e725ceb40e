"""
Ticket Application Layer
========================

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from agrodesk.tickets.application.dto import (
    AssignDTO,
    CallLogCreateDTO,
    CallLogListResponse,
    CallLogResponse,
    PaginationResponse,
    StatusChangeDTO,
    TicketCreateDTO,
    TicketDetailResponse,
    TicketFilterDTO,
    TicketListResponse,
    TicketResponse,
    TicketUpdateDTO,
    coerce,
)
from agrodesk.tickets.application.services import (
    CallLogService,
    IAuditLogRepository,
    ICallLogRepository,
    IOrgDirectory,
    ISLAConfigProvider,
    IStatusCatalog,
    ITicketRepository,
    TicketPage,
    TicketService,
    load_ticket,
    resolve_filters,
)

__all__ = [
    # DTOs
    "AssignDTO",
    "CallLogCreateDTO",
    "CallLogListResponse",
    "CallLogResponse",
    "PaginationResponse",
    "StatusChangeDTO",
    "TicketCreateDTO",
    "TicketDetailResponse",
    "TicketFilterDTO",
    "TicketListResponse",
    "TicketResponse",
    "TicketUpdateDTO",
    "coerce",
    # Services
    "CallLogService",
    "TicketService",
    "TicketPage",
    "load_ticket",
    "resolve_filters",
    # Repository Interfaces
    "IAuditLogRepository",
    "ICallLogRepository",
    "IOrgDirectory",
    "ISLAConfigProvider",
    "IStatusCatalog",
    "ITicketRepository",
]
