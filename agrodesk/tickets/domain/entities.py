"""
Ticket Domain Entities
======================

Pure Python domain entities for the complaint lifecycle.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from agrodesk.config import Role, Priority, Category, TicketStatusName, AuditAction
from agrodesk.core import InvalidStatusException


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; aware ones pass through."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Actor:
    """
    The authenticated staff member performing a request.

    Supplied by the authentication collaborator, immutable per request.
    """

    id: int
    role: Role
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    is_superuser: bool = False

    @property
    def is_unrestricted(self) -> bool:
        return self.is_superuser or self.role == Role.MASTER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_executive(self) -> bool:
        return self.role == Role.EXECUTIVE


@dataclass(frozen=True)
class StatusRef:
    """A catalog entry referenced by id, read in code by name."""

    id: int
    name: str


@dataclass(frozen=True)
class FarmerRef:
    """Org placement of a farmer, as exposed by the org directory."""

    id: int
    zone_id: int
    branch_id: int
    line_id: int
    is_active: bool = True


@dataclass(frozen=True)
class EquipmentRef:
    id: int
    farmer_id: int
    is_active: bool = True


@dataclass(frozen=True)
class StaffMember:
    """A user account that tickets can be assigned to."""

    id: int
    role: Role
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    is_active: bool = True


@dataclass
class Ticket:
    """
    Ticket entity representing a farmer complaint.

    ``zone_id``/``branch_id``/``line_id`` are a snapshot of the farmer's
    placement at creation time and are never edited afterwards.
    ``sla_deadline`` is fixed at creation as well.
    """

    # Core attributes
    id: Optional[int]
    ticket_number: str
    title: str
    description: str
    category: Category
    priority: Priority
    status: StatusRef

    # References
    farmer_id: int
    zone_id: int
    branch_id: int
    line_id: int
    created_by: int
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None

    # Timestamps
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None
    sla_deadline: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    is_active: bool = True

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.updated_at is None:
            self.updated_at = self.created_at
        if self.sla_deadline is not None and self.sla_deadline < self.created_at:
            raise ValueError("sla_deadline cannot be before created_at")

    @property
    def is_closed(self) -> bool:
        """Closed is the only terminal status."""
        return self.status.name == TicketStatusName.CLOSED

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    def apply_status(self, new_status: StatusRef, now: datetime) -> bool:
        """
        Move the ticket to ``new_status``.

        Closing stamps both ``closed_at`` and ``resolved_at``. Any other
        status leaves existing timestamps untouched, so a reopened ticket
        keeps its previous resolution until it is closed again.

        Returns:
            False when the ticket already had this (non-closed) status.

        Raises:
            InvalidStatusException: closing a ticket that is already closed.
        """
        if new_status.name == TicketStatusName.CLOSED and self.is_closed:
            raise InvalidStatusException(
                f"Ticket {self.ticket_number} is already closed",
                {"ticket_number": self.ticket_number, "status": new_status.name}
            )
        if new_status.name == self.status.name:
            return False

        self.status = new_status
        if new_status.name == TicketStatusName.CLOSED:
            self.closed_at = now
            self.resolved_at = now
        self.updated_at = now
        return True


@dataclass
class CallLog:
    """
    An interaction attempt with the farmer about a ticket.

    Append-only: once persisted it is never updated or deleted.
    ``next_follow_up_date`` and ``resulting_status`` are data for the
    caller and never drive the ticket lifecycle by themselves.
    """

    id: Optional[int]
    ticket_id: int
    called_by: int
    outcome: StatusRef
    created_at: datetime = field(default_factory=utc_now)
    duration_seconds: Optional[int] = None
    remarks: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None
    resulting_status: Optional[str] = None
    resulting_status_date: Optional[datetime] = None


@dataclass
class AuditEntry:
    """Write-once record of a mutating operation."""

    user_id: int
    action: AuditAction
    entity: str
    entity_id: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=utc_now)
