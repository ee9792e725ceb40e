"""
Ticket Application DTOs
=======================

Data Transfer Objects for the ticket API layer.

These Pydantic models handle serialization/deserialization and validation
for requests and responses.
"""

from datetime import datetime
from typing import Any, List, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agrodesk.core import ValidationException
from agrodesk.tickets.domain import CallLog, SLACalculator, Ticket


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["critical", "urgent", "normal"]
CategoryStr = Literal["equipment", "feed", "medicine", "service", "billing", "other"]

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce(model: Type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """
    Accept either a parsed DTO or raw fields.

    Raises:
        ValidationException: when raw fields fail validation
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationException(
            f"Invalid {model.__name__}: {', '.join(fields)}",
            {"fields": fields}
        ) from e


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for creating a ticket. Org placement comes from the farmer."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: CategoryStr = Field(..., description="Complaint category")
    priority: PriorityStr = Field(..., description="Ticket priority")
    farmer_id: int = Field(..., ge=1)
    equipment_id: Optional[int] = Field(None, ge=1)
    assigned_to: Optional[int] = Field(None, ge=1)


class TicketUpdateDTO(BaseModel):
    """
    DTO for editing a ticket.

    Zone/branch/line and the SLA deadline are deliberately absent.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[CategoryStr] = None
    priority: Optional[PriorityStr] = None
    status: Optional[str] = Field(None, min_length=1, description="Ticket status name")


class StatusChangeDTO(BaseModel):
    """DTO for a status transition."""
    status: str = Field(..., min_length=1, description="Ticket status name")
    remarks: Optional[str] = Field(None, description="Recorded as a connected call log")


class AssignDTO(BaseModel):
    assigned_to: int = Field(..., ge=1, description="Executive user id")


class CallLogCreateDTO(BaseModel):
    """DTO for recording a call against a ticket."""
    model_config = ConfigDict(extra="forbid")

    ticket_id: int = Field(..., ge=1)
    outcome: str = Field(..., min_length=1, description="Call status name")
    duration_seconds: Optional[int] = Field(None, ge=0)
    remarks: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None
    resulting_status: Optional[str] = Field(None, min_length=1)
    resulting_status_date: Optional[datetime] = None


class TicketFilterDTO(BaseModel):
    """Explicit filters for ticket lists and reports."""
    status: Optional[str] = None
    priority: Optional[PriorityStr] = None
    category: Optional[CategoryStr] = None
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    line_id: Optional[int] = None
    farmer_id: Optional[int] = None
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


# ========== Response DTOs ==========

class StatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: int
    ticket_number: str
    title: str
    description: str
    category: CategoryStr
    priority: PriorityStr
    status: StatusResponse
    farmer_id: int
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None
    zone_id: int
    branch_id: int
    line_id: int
    created_by: int
    created_at: datetime
    updated_at: datetime
    sla_deadline: datetime
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    # Computed at read time
    sla_breached: bool = Field(..., description="Open and past its SLA deadline")
    sla_state: Literal["compliant", "breached", "pending"]

    @classmethod
    def from_domain(cls, ticket: Ticket, now: datetime) -> "TicketResponse":
        return cls(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category.value,
            priority=ticket.priority.value,
            status=StatusResponse.model_validate(ticket.status),
            farmer_id=ticket.farmer_id,
            equipment_id=ticket.equipment_id,
            assigned_to=ticket.assigned_to,
            zone_id=ticket.zone_id,
            branch_id=ticket.branch_id,
            line_id=ticket.line_id,
            created_by=ticket.created_by,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            sla_deadline=ticket.sla_deadline,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            sla_breached=SLACalculator.is_breached(ticket, now),
            sla_state=SLACalculator.compliance_bucket(ticket, now).value,
        )


class CallLogResponse(BaseModel):
    """Response model for a call log."""
    id: int
    ticket_id: int
    called_by: int
    outcome: StatusResponse
    duration_seconds: Optional[int] = None
    remarks: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None
    resulting_status: Optional[str] = None
    resulting_status_date: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, call_log: CallLog) -> "CallLogResponse":
        return cls(
            id=call_log.id,
            ticket_id=call_log.ticket_id,
            called_by=call_log.called_by,
            outcome=StatusResponse.model_validate(call_log.outcome),
            duration_seconds=call_log.duration_seconds,
            remarks=call_log.remarks,
            next_follow_up_date=call_log.next_follow_up_date,
            resulting_status=call_log.resulting_status,
            resulting_status_date=call_log.resulting_status_date,
            created_at=call_log.created_at,
        )


class TicketDetailResponse(BaseModel):
    ticket: TicketResponse
    call_logs: List[CallLogResponse] = Field(default_factory=list, description="Newest first")


class PaginationResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    pagination: PaginationResponse


class CallLogListResponse(BaseModel):
    call_logs: List[CallLogResponse]
