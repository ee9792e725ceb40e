"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. None of these repositories commit: the
request's session is the unit of work.
"""

from typing import List, Optional, Tuple

from sqlalchemy import false, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agrodesk.config import (
    CALL_STATUS_CATALOG, TICKET_STATUS_CATALOG, Category, Priority, Role
)
from agrodesk.core import ConflictException, RepositoryException
from agrodesk.shared.infrastructure.logging import get_logger
from agrodesk.tickets.application.services import (
    IAuditLogRepository,
    ICallLogRepository,
    IOrgDirectory,
    IStatusCatalog,
    ITicketRepository,
)
from agrodesk.tickets.domain import (
    AuditEntry,
    CallLog,
    EquipmentRef,
    FarmerRef,
    StaffMember,
    StatusRef,
    Ticket,
    TicketQuery,
    TicketScope,
    ensure_utc,
)
from agrodesk.tickets.infrastructure.models import (
    AuditLogModel,
    CallLogModel,
    CallStatusModel,
    EquipmentModel,
    FarmerModel,
    TicketModel,
    TicketStatusModel,
    UserModel,
)

logger = get_logger(__name__)


def _ticket_to_entity(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        ticket_number=model.ticket_number,
        title=model.title,
        description=model.description,
        category=Category(model.category),
        priority=Priority(model.priority),
        status=StatusRef(id=model.status.id, name=model.status.name),
        farmer_id=model.farmer_id,
        zone_id=model.zone_id,
        branch_id=model.branch_id,
        line_id=model.line_id,
        created_by=model.created_by,
        equipment_id=model.equipment_id,
        assigned_to=model.assigned_to,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
        sla_deadline=ensure_utc(model.sla_deadline),
        resolved_at=ensure_utc(model.resolved_at),
        closed_at=ensure_utc(model.closed_at),
        is_active=model.is_active,
    )


def _call_log_to_entity(model: CallLogModel) -> CallLog:
    return CallLog(
        id=model.id,
        ticket_id=model.ticket_id,
        called_by=model.called_by,
        outcome=StatusRef(id=model.call_status.id, name=model.call_status.name),
        created_at=ensure_utc(model.created_at),
        duration_seconds=model.duration_seconds,
        remarks=model.remarks,
        next_follow_up_date=ensure_utc(model.next_follow_up_date),
        resulting_status=model.resulting_status,
        resulting_status_date=ensure_utc(model.resulting_status_date),
    )


def _ticket_conditions(scope: TicketScope, query: TicketQuery) -> list:
    """WHERE clause for the implicit scope intersected with explicit filters."""
    conditions = [TicketModel.is_active.is_(True)]

    if scope.is_empty:
        conditions.append(false())
    elif scope.restricted:
        conditions.append(TicketModel.zone_id == scope.zone_id)

    columns = (
        (query.status_id, TicketModel.status_id),
        (query.priority, TicketModel.priority),
        (query.category, TicketModel.category),
        (query.zone_id, TicketModel.zone_id),
        (query.branch_id, TicketModel.branch_id),
        (query.line_id, TicketModel.line_id),
        (query.farmer_id, TicketModel.farmer_id),
        (query.equipment_id, TicketModel.equipment_id),
        (query.assigned_to, TicketModel.assigned_to),
    )
    for value, column in columns:
        if value is not None:
            conditions.append(column == value)

    if query.created_from is not None:
        conditions.append(TicketModel.created_at >= query.created_from)
    if query.created_to is not None:
        conditions.append(TicketModel.created_at <= query.created_to)
    return conditions


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        """Get ticket by id."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _ticket_to_entity(model) if model else None

    async def create(self, ticket: Ticket) -> Ticket:
        """
        Insert a new ticket.

        The insert runs in a SAVEPOINT so a ticket number collision leaves
        the surrounding unit of work usable for a retry.
        """
        model = TicketModel(
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category.value,
            priority=ticket.priority.value,
            status=await self._status_model(ticket.status),
            farmer_id=ticket.farmer_id,
            equipment_id=ticket.equipment_id,
            zone_id=ticket.zone_id,
            branch_id=ticket.branch_id,
            line_id=ticket.line_id,
            assigned_to=ticket.assigned_to,
            created_by=ticket.created_by,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            sla_deadline=ticket.sla_deadline,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            is_active=ticket.is_active,
        )

        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except IntegrityError as e:
            if "ticket_number" in str(e.orig):
                raise ConflictException(
                    f"Ticket number {ticket.ticket_number} already exists",
                    {"ticket_number": ticket.ticket_number}
                ) from e
            logger.error("Ticket insert failed", extra={"error": str(e.orig)})
            raise RepositoryException("Failed to create ticket") from e

        return _ticket_to_entity(model)

    async def save(self, ticket: Ticket) -> Ticket:
        """Persist the mutable fields of an existing ticket."""
        model = await self._session.get(TicketModel, ticket.id)
        if model is None:
            raise RepositoryException(f"Ticket {ticket.id} not found")

        model.title = ticket.title
        model.description = ticket.description
        model.category = ticket.category.value
        model.priority = ticket.priority.value
        model.status = await self._status_model(ticket.status)
        model.assigned_to = ticket.assigned_to
        model.updated_at = ticket.updated_at
        model.resolved_at = ticket.resolved_at
        model.closed_at = ticket.closed_at
        model.is_active = ticket.is_active

        await self._session.flush()
        return _ticket_to_entity(model)

    async def list(
        self,
        scope: TicketScope,
        query: TicketQuery,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """List tickets newest first, with the total matching count."""
        conditions = _ticket_conditions(scope, query)

        count_stmt = select(func.count()).select_from(TicketModel).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = (
            select(TicketModel)
            .where(*conditions)
            .order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return [_ticket_to_entity(m) for m in result.scalars().all()], total

    async def find_all(self, scope: TicketScope, query: TicketQuery) -> List[Ticket]:
        stmt = (
            select(TicketModel)
            .where(*_ticket_conditions(scope, query))
            .order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return [_ticket_to_entity(m) for m in result.scalars().all()]

    async def _status_model(self, status: StatusRef) -> TicketStatusModel:
        model = await self._session.get(TicketStatusModel, status.id)
        if model is None:
            raise RepositoryException(f"Ticket status {status.name} not found")
        return model


class SQLAlchemyCallLogRepository(ICallLogRepository):
    """Append-only call log storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, call_log: CallLog) -> CallLog:
        call_status = await self._session.get(CallStatusModel, call_log.outcome.id)
        if call_status is None:
            raise RepositoryException(f"Call status {call_log.outcome.name} not found")

        model = CallLogModel(
            ticket_id=call_log.ticket_id,
            called_by=call_log.called_by,
            call_status=call_status,
            duration_seconds=call_log.duration_seconds,
            remarks=call_log.remarks,
            next_follow_up_date=call_log.next_follow_up_date,
            resulting_status=call_log.resulting_status,
            resulting_status_date=call_log.resulting_status_date,
            created_at=call_log.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return _call_log_to_entity(model)

    async def list_for_ticket(self, ticket_id: int) -> List[CallLog]:
        stmt = (
            select(CallLogModel)
            .where(CallLogModel.ticket_id == ticket_id)
            .order_by(CallLogModel.created_at.desc(), CallLogModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return [_call_log_to_entity(m) for m in result.scalars().all()]

    async def list_recent(self, scope: TicketScope, limit: int = 10) -> List[CallLog]:
        stmt = (
            select(CallLogModel)
            .join(TicketModel, CallLogModel.ticket_id == TicketModel.id)
            .where(*_ticket_conditions(scope, TicketQuery()))
            .order_by(CallLogModel.created_at.desc(), CallLogModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [_call_log_to_entity(m) for m in result.scalars().all()]


class SQLAlchemyAuditLogRepository(IAuditLogRepository):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(self, entry: AuditEntry) -> None:
        self._session.add(AuditLogModel(
            user_id=entry.user_id,
            action=entry.action.value,
            entity=entry.entity,
            entity_id=entry.entity_id,
            old_values=entry.old_values,
            new_values=entry.new_values,
            created_at=entry.created_at,
        ))
        await self._session.flush()


class SQLAlchemyStatusCatalog(IStatusCatalog):
    """Resolves catalog names to ids. Inactive entries are invisible."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def ticket_status(self, name: str) -> Optional[StatusRef]:
        stmt = select(TicketStatusModel).where(
            TicketStatusModel.name == name,
            TicketStatusModel.is_active.is_(True),
        )
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return StatusRef(id=model.id, name=model.name) if model else None

    async def call_status(self, name: str) -> Optional[StatusRef]:
        stmt = select(CallStatusModel).where(
            CallStatusModel.name == name,
            CallStatusModel.is_active.is_(True),
        )
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return StatusRef(id=model.id, name=model.name) if model else None


class SQLAlchemyOrgDirectory(IOrgDirectory):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_farmer(self, farmer_id: int) -> Optional[FarmerRef]:
        model = await self._session.get(FarmerModel, farmer_id)
        if model is None:
            return None
        return FarmerRef(
            id=model.id,
            zone_id=model.zone_id,
            branch_id=model.branch_id,
            line_id=model.line_id,
            is_active=model.is_active,
        )

    async def get_equipment(self, equipment_id: int) -> Optional[EquipmentRef]:
        model = await self._session.get(EquipmentModel, equipment_id)
        if model is None:
            return None
        return EquipmentRef(id=model.id, farmer_id=model.farmer_id, is_active=model.is_active)

    async def get_staff(self, user_id: int) -> Optional[StaffMember]:
        model = await self._session.get(UserModel, user_id)
        if model is None:
            return None
        return StaffMember(
            id=model.id,
            role=Role(model.role),
            zone_id=model.zone_id,
            branch_id=model.branch_id,
            is_active=model.is_active,
        )


async def seed_catalogs(session: AsyncSession) -> int:
    """
    Insert missing ticket and call status catalog entries.

    Idempotent; run at startup, never from ticket operations.

    Returns:
        Number of rows inserted
    """
    inserted = 0
    for model_cls, entries in (
        (TicketStatusModel, TICKET_STATUS_CATALOG),
        (CallStatusModel, CALL_STATUS_CATALOG),
    ):
        result = await session.execute(select(model_cls.name))
        existing = set(result.scalars().all())
        for entry in entries:
            if entry["name"] not in existing:
                session.add(model_cls(**entry))
                inserted += 1

    await session.flush()
    if inserted:
        logger.info("Status catalogs seeded", extra={"inserted": inserted})
    return inserted
