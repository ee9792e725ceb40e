"""
Ticket Application Services
===========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations

Every operation runs the AccessPolicy first. Services never commit: the
caller's unit of work (one session per request) commits on success and
rolls back on any raised exception, so a status change and the call log it
produces are applied together or not at all.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from agrodesk.config import (
    settings, AuditAction, CallOutcome, Category, Priority, Role, TicketStatusName
)
from agrodesk.core import (
    ConflictException,
    ForbiddenException,
    InvalidAssignmentException,
    InvalidOutcomeException,
    InvalidStatusException,
    ResourceNotFoundException,
    ValidationException,
)
from agrodesk.shared.infrastructure.logging import get_logger
from agrodesk.tickets.application.dto import (
    CallLogCreateDTO,
    TicketCreateDTO,
    TicketFilterDTO,
    TicketUpdateDTO,
    coerce,
)
from agrodesk.tickets.domain import (
    AccessPolicy,
    Actor,
    AuditEntry,
    CallLog,
    EquipmentRef,
    FarmerRef,
    SLACalculator,
    SLAConfig,
    StaffMember,
    StatusRef,
    Ticket,
    TicketNumberGenerator,
    TicketQuery,
    TicketScope,
    ensure_utc,
    utc_now,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        """Get ticket by id (inactive tickets included)."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Insert a ticket. Raises ConflictException on a duplicate ticket number."""

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """Persist changes to an existing ticket."""

    @abstractmethod
    async def list(
        self,
        scope: TicketScope,
        query: TicketQuery,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """Active tickets in scope matching query, newest first, with total count."""

    @abstractmethod
    async def find_all(self, scope: TicketScope, query: TicketQuery) -> List[Ticket]:
        """All active tickets in scope matching query."""


class ICallLogRepository(ABC):
    """Interface for append-only call log access."""

    @abstractmethod
    async def create(self, call_log: CallLog) -> CallLog:
        """Append a call log."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> List[CallLog]:
        """Call logs of a ticket, newest first."""

    @abstractmethod
    async def list_recent(self, scope: TicketScope, limit: int = 10) -> List[CallLog]:
        """Latest call logs on active tickets within scope, newest first."""


class IAuditLogRepository(ABC):
    """Interface for the write-once audit trail."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        """Append an audit entry."""


class IStatusCatalog(ABC):
    """Name -> id resolver for the ticket and call status catalogs."""

    @abstractmethod
    async def ticket_status(self, name: str) -> Optional[StatusRef]:
        """Active ticket status by name."""

    @abstractmethod
    async def call_status(self, name: str) -> Optional[StatusRef]:
        """Active call status by name."""


class IOrgDirectory(ABC):
    """Read-only lookups into the org hierarchy and staff accounts."""

    @abstractmethod
    async def get_farmer(self, farmer_id: int) -> Optional[FarmerRef]:
        """Farmer placement by id."""

    @abstractmethod
    async def get_equipment(self, equipment_id: int) -> Optional[EquipmentRef]:
        """Equipment by id."""

    @abstractmethod
    async def get_staff(self, user_id: int) -> Optional[StaffMember]:
        """Staff account by id."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


# ========== Helpers ==========

@dataclass
class TicketPage:
    tickets: List[Ticket]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


async def resolve_filters(
    catalog: IStatusCatalog,
    filters: Optional[Union[TicketFilterDTO, Mapping[str, Any]]]
) -> TicketQuery:
    """
    Turn caller filters into a TicketQuery.

    Raises:
        InvalidStatusException: status filter names no catalog entry
    """
    if filters is None:
        return TicketQuery()
    dto = coerce(TicketFilterDTO, filters)

    status_id = None
    if dto.status:
        status = await catalog.ticket_status(dto.status)
        if status is None:
            raise InvalidStatusException(f"Invalid status: {dto.status}", {"status": dto.status})
        status_id = status.id

    return TicketQuery(
        status_id=status_id,
        priority=dto.priority,
        category=dto.category,
        zone_id=dto.zone_id,
        branch_id=dto.branch_id,
        line_id=dto.line_id,
        farmer_id=dto.farmer_id,
        equipment_id=dto.equipment_id,
        assigned_to=dto.assigned_to,
        created_from=ensure_utc(dto.start_date),
        created_to=ensure_utc(dto.end_date),
    )


async def load_ticket(repo: ITicketRepository, ticket_id: int) -> Ticket:
    ticket = await repo.get_by_id(ticket_id)
    if ticket is None or not ticket.is_active:
        raise ResourceNotFoundException("Ticket", ticket_id)
    return ticket


async def resolve_ticket_status(catalog: IStatusCatalog, name: str) -> StatusRef:
    status = await catalog.ticket_status(name)
    if status is None:
        raise InvalidStatusException(f"Invalid status: {name}", {"status": name})
    return status


# ========== Application Services ==========

class TicketService:
    """
    Ticket lifecycle: creation, status transitions, assignment and edits.

    Coordinates between domain logic and data access.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        call_log_repository: ICallLogRepository,
        audit_repository: IAuditLogRepository,
        status_catalog: IStatusCatalog,
        org_directory: IOrgDirectory,
        config_provider: ISLAConfigProvider,
        number_generator: Optional[Callable[[], str]] = None,
        clock: Optional[Clock] = None,
        max_attempts: Optional[int] = None
    ):
        self._ticket_repo = ticket_repository
        self._call_log_repo = call_log_repository
        self._audit_repo = audit_repository
        self._catalog = status_catalog
        self._org = org_directory
        self._config_provider = config_provider
        self._new_number = number_generator or TicketNumberGenerator(settings.ticket_number_prefix)
        self._clock = clock or utc_now
        self._max_attempts = max_attempts or settings.ticket_number_attempts

    # ---------- create ----------

    async def create_ticket(
        self,
        data: Union[TicketCreateDTO, Mapping[str, Any]],
        actor: Actor
    ) -> Ticket:
        """
        Open a new ticket for a farmer.

        Raises:
            ValidationException: missing/invalid fields or equipment of another farmer
            ResourceNotFoundException: farmer or equipment absent
            ForbiddenException: executive creating outside their zone
            InvalidAssignmentException: initial assignee not eligible
            ConflictException: ticket number collided on every attempt
        """
        dto = coerce(TicketCreateDTO, data)

        farmer = await self._org.get_farmer(dto.farmer_id)
        if farmer is None or not farmer.is_active:
            raise ResourceNotFoundException("Farmer", dto.farmer_id)
        if not AccessPolicy.can_create_for(actor, farmer):
            raise ForbiddenException(
                "Farmer not found or access denied",
                {"farmer_id": dto.farmer_id}
            )

        if dto.equipment_id is not None:
            equipment = await self._org.get_equipment(dto.equipment_id)
            if equipment is None or not equipment.is_active:
                raise ResourceNotFoundException("Equipment", dto.equipment_id)
            if equipment.farmer_id != farmer.id:
                raise ValidationException(
                    "Equipment does not belong to the farmer",
                    {"equipment_id": dto.equipment_id, "farmer_id": farmer.id}
                )

        if dto.assigned_to is not None:
            await self._ensure_assignable(dto.assigned_to, farmer.zone_id)

        open_status = await resolve_ticket_status(self._catalog, TicketStatusName.OPEN.value)
        now = self._clock()
        deadline = SLACalculator.compute_deadline(
            dto.priority, now, self._config_provider.get_config()
        )

        for attempt in range(1, self._max_attempts + 1):
            ticket = Ticket(
                id=None,
                ticket_number=self._new_number(),
                title=dto.title,
                description=dto.description,
                category=Category(dto.category),
                priority=Priority(dto.priority),
                status=open_status,
                farmer_id=farmer.id,
                zone_id=farmer.zone_id,
                branch_id=farmer.branch_id,
                line_id=farmer.line_id,
                created_by=actor.id,
                equipment_id=dto.equipment_id,
                assigned_to=dto.assigned_to,
                created_at=now,
                sla_deadline=deadline,
            )
            try:
                created = await self._ticket_repo.create(ticket)
            except ConflictException:
                if attempt >= self._max_attempts:
                    raise
                logger.warning(
                    "Ticket number collision, regenerating",
                    extra={"ticket_number": ticket.ticket_number, "attempt": attempt}
                )
                continue

            logger.info(
                "Ticket created",
                extra={
                    "ticket_id": created.id,
                    "ticket_number": created.ticket_number,
                    "priority": created.priority.value,
                    "zone_id": created.zone_id,
                    "sla_deadline": created.sla_deadline.isoformat(),
                }
            )
            return created

        raise ConflictException("Could not allocate a unique ticket number")

    # ---------- read ----------

    async def get_ticket(self, ticket_id: int, actor: Actor) -> Ticket:
        ticket = await load_ticket(self._ticket_repo, ticket_id)
        AccessPolicy.ensure_can_view(actor, ticket)
        return ticket

    async def get_ticket_detail(
        self,
        ticket_id: int,
        actor: Actor
    ) -> Tuple[Ticket, List[CallLog]]:
        """Ticket plus its call logs, newest first."""
        ticket = await self.get_ticket(ticket_id, actor)
        call_logs = await self._call_log_repo.list_for_ticket(ticket.id)
        return ticket, call_logs

    async def list_tickets(
        self,
        actor: Actor,
        filters: Optional[Union[TicketFilterDTO, Mapping[str, Any]]] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> TicketPage:
        """
        Page through the tickets the actor may see.

        The actor's implicit scope is applied before, and independently of,
        any explicit filter.
        """
        if limit is None:
            limit = settings.default_page_size
        if page < 1 or limit < 1 or limit > settings.max_page_size:
            raise ValidationException(
                "Invalid pagination",
                {"page": page, "limit": limit, "max_limit": settings.max_page_size}
            )

        query = await resolve_filters(self._catalog, filters)
        scope = AccessPolicy.list_scope(actor)
        if scope.is_empty:
            return TicketPage(tickets=[], total=0, page=page, limit=limit)

        tickets, total = await self._ticket_repo.list(
            scope, query, limit=limit, offset=(page - 1) * limit
        )
        return TicketPage(tickets=tickets, total=total, page=page, limit=limit)

    # ---------- mutate ----------

    async def change_status(
        self,
        ticket_id: int,
        status: str,
        actor: Actor,
        remarks: Optional[str] = None
    ) -> Ticket:
        """
        Transition a ticket to another status.

        When remarks are given a ``connected`` call log carrying them is
        appended in the same unit of work. Re-applying the current status
        saves and audits nothing; only the call log is kept.

        Raises:
            ResourceNotFoundException, ForbiddenException,
            InvalidStatusException, InvalidOutcomeException
        """
        ticket = await load_ticket(self._ticket_repo, ticket_id)
        AccessPolicy.ensure_can_mutate(actor, ticket)

        new_status = await resolve_ticket_status(self._catalog, status)
        connected = None
        if remarks:
            connected = await self._catalog.call_status(CallOutcome.CONNECTED.value)
            if connected is None:
                raise InvalidOutcomeException(
                    "Call status 'connected' missing from catalog",
                    {"outcome": CallOutcome.CONNECTED.value}
                )

        now = self._clock()
        old_status = ticket.status.name
        changed = ticket.apply_status(new_status, now)
        if changed:
            ticket = await self._ticket_repo.save(ticket)

        if connected is not None:
            await self._call_log_repo.create(CallLog(
                id=None,
                ticket_id=ticket.id,
                called_by=actor.id,
                outcome=connected,
                remarks=remarks,
                resulting_status=new_status.name,
                resulting_status_date=now,
                created_at=now,
            ))

        if not changed:
            logger.debug(
                "Ticket status unchanged",
                extra={"ticket_id": ticket.id, "status": old_status, "actor_id": actor.id}
            )
            return ticket

        await self._audit_repo.record(AuditEntry(
            user_id=actor.id,
            action=AuditAction.UPDATE,
            entity="ticket",
            entity_id=ticket.id,
            old_values={"status": old_status},
            new_values={"status": new_status.name},
            created_at=now,
        ))

        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "from_status": old_status,
                "to_status": new_status.name,
                "actor_id": actor.id,
            }
        )
        return ticket

    async def assign_ticket(
        self,
        ticket_id: int,
        assignee_id: int,
        actor: Actor
    ) -> Ticket:
        """
        Hand a ticket to an executive of the ticket's zone. Status is untouched.

        Raises:
            ForbiddenException: actor is not an admin
            InvalidAssignmentException: assignee inactive, not an executive, or other zone
        """
        if not AccessPolicy.can_assign(actor):
            raise ForbiddenException("Only admins can assign tickets", {"ticket_id": ticket_id})

        ticket = await load_ticket(self._ticket_repo, ticket_id)
        await self._ensure_assignable(assignee_id, ticket.zone_id)

        now = self._clock()
        previous = ticket.assigned_to
        ticket.assigned_to = assignee_id
        ticket.updated_at = now
        ticket = await self._ticket_repo.save(ticket)

        await self._audit_repo.record(AuditEntry(
            user_id=actor.id,
            action=AuditAction.UPDATE,
            entity="ticket",
            entity_id=ticket.id,
            old_values={"assigned_to": previous},
            new_values={"assigned_to": assignee_id},
            created_at=now,
        ))

        logger.info(
            "Ticket assigned",
            extra={"ticket_id": ticket.id, "assigned_to": assignee_id, "actor_id": actor.id}
        )
        return ticket

    async def update_ticket(
        self,
        ticket_id: int,
        data: Union[TicketUpdateDTO, Mapping[str, Any]],
        actor: Actor
    ) -> Ticket:
        """
        Edit title, description, category, priority or status.

        A priority change never moves the SLA deadline: it is fixed when
        the ticket is created.
        """
        dto = coerce(TicketUpdateDTO, data)
        changes = dto.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationException("No fields to update", {"ticket_id": ticket_id})

        ticket = await load_ticket(self._ticket_repo, ticket_id)
        AccessPolicy.ensure_can_mutate(actor, ticket)

        new_status = None
        if "status" in changes:
            new_status = await resolve_ticket_status(self._catalog, changes["status"])

        now = self._clock()
        old_values = {}
        new_values = {}

        # Transition first: it is the only step that can still be rejected.
        if new_status is not None:
            old_status = ticket.status.name
            if ticket.apply_status(new_status, now):
                old_values["status"] = old_status
                new_values["status"] = new_status.name

        for name in ("title", "description"):
            if name in changes and changes[name] != getattr(ticket, name):
                old_values[name] = getattr(ticket, name)
                new_values[name] = changes[name]
                setattr(ticket, name, changes[name])
        if "category" in changes and changes["category"] != ticket.category.value:
            old_values["category"] = ticket.category.value
            new_values["category"] = changes["category"]
            ticket.category = Category(changes["category"])
        if "priority" in changes and changes["priority"] != ticket.priority.value:
            old_values["priority"] = ticket.priority.value
            new_values["priority"] = changes["priority"]
            ticket.priority = Priority(changes["priority"])

        ticket.updated_at = now
        ticket = await self._ticket_repo.save(ticket)

        if new_values:
            await self._audit_repo.record(AuditEntry(
                user_id=actor.id,
                action=AuditAction.UPDATE,
                entity="ticket",
                entity_id=ticket.id,
                old_values=old_values,
                new_values=new_values,
                created_at=now,
            ))

        logger.info(
            "Ticket updated",
            extra={"ticket_id": ticket.id, "fields": sorted(new_values), "actor_id": actor.id}
        )
        return ticket

    async def _ensure_assignable(self, user_id: int, zone_id: int) -> StaffMember:
        staff = await self._org.get_staff(user_id)
        if staff is None or not staff.is_active or staff.role != Role.EXECUTIVE:
            raise InvalidAssignmentException(
                "Assignee must be an active executive",
                {"assigned_to": user_id}
            )
        if staff.zone_id != zone_id:
            raise InvalidAssignmentException(
                "Executive must be in the same zone as the ticket",
                {"assigned_to": user_id, "zone_id": zone_id}
            )
        return staff


class CallLogService:
    """Appends and reads the call trail of tickets."""

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        call_log_repository: ICallLogRepository,
        audit_repository: IAuditLogRepository,
        status_catalog: IStatusCatalog,
        clock: Optional[Clock] = None
    ):
        self._ticket_repo = ticket_repository
        self._call_log_repo = call_log_repository
        self._audit_repo = audit_repository
        self._catalog = status_catalog
        self._clock = clock or utc_now

    async def record_call(
        self,
        data: Union[CallLogCreateDTO, Mapping[str, Any]],
        actor: Actor
    ) -> CallLog:
        """
        Record a call against a ticket.

        Recording a call never changes the ticket's status; a
        ``resulting_status`` is stored as data only.

        Raises:
            ResourceNotFoundException, ForbiddenException,
            InvalidOutcomeException, InvalidStatusException
        """
        dto = coerce(CallLogCreateDTO, data)
        ticket = await load_ticket(self._ticket_repo, dto.ticket_id)
        AccessPolicy.ensure_can_mutate(actor, ticket)

        outcome = await self._catalog.call_status(dto.outcome)
        if outcome is None:
            raise InvalidOutcomeException(
                f"Invalid call outcome: {dto.outcome}",
                {"outcome": dto.outcome}
            )
        if dto.resulting_status is not None:
            await resolve_ticket_status(self._catalog, dto.resulting_status)

        now = self._clock()
        call_log = await self._call_log_repo.create(CallLog(
            id=None,
            ticket_id=ticket.id,
            called_by=actor.id,
            outcome=outcome,
            duration_seconds=dto.duration_seconds,
            remarks=dto.remarks,
            next_follow_up_date=dto.next_follow_up_date,
            resulting_status=dto.resulting_status,
            resulting_status_date=dto.resulting_status_date,
            created_at=now,
        ))

        await self._audit_repo.record(AuditEntry(
            user_id=actor.id,
            action=AuditAction.CREATE,
            entity="call_log",
            entity_id=call_log.id,
            new_values={"ticket_id": ticket.id, "outcome": outcome.name},
            created_at=now,
        ))

        logger.info(
            "Call logged",
            extra={
                "ticket_id": ticket.id,
                "call_log_id": call_log.id,
                "outcome": outcome.name,
                "actor_id": actor.id,
            }
        )
        return call_log

    async def list_for_ticket(self, ticket_id: int, actor: Actor) -> List[CallLog]:
        ticket = await load_ticket(self._ticket_repo, ticket_id)
        AccessPolicy.ensure_can_view(actor, ticket)
        return await self._call_log_repo.list_for_ticket(ticket.id)

    async def recent(self, actor: Actor, limit: int = 10) -> List[CallLog]:
        """Latest calls across the actor's scope, for the dashboard feed."""
        if limit < 1 or limit > settings.max_page_size:
            raise ValidationException("Invalid limit", {"limit": limit})
        scope = AccessPolicy.list_scope(actor)
        if scope.is_empty:
            return []
        return await self._call_log_repo.list_recent(scope, limit)
