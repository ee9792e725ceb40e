"""
Reporting Application Service
=============================

Loads the tickets an actor may see, then hands them to the pure
aggregation functions. ``now`` is read once per call so every figure of
one response agrees on the breach cut-off.
"""

from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from agrodesk.config import MttrGroup
from agrodesk.core import ValidationException
from agrodesk.reporting.domain import (
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
    summarize,
)
from agrodesk.shared.infrastructure.logging import get_logger
from agrodesk.tickets.application import (
    IStatusCatalog,
    ITicketRepository,
    TicketFilterDTO,
    resolve_filters,
)
from agrodesk.tickets.domain import AccessPolicy, Actor, Ticket, utc_now

logger = get_logger(__name__)

Filters = Optional[Union[TicketFilterDTO, Mapping[str, Any]]]


def _group(value: Union[str, MttrGroup], allowed: Tuple[MttrGroup, ...]) -> MttrGroup:
    try:
        group = MttrGroup(value)
    except ValueError:
        group = None
    if group not in allowed:
        raise ValidationException(
            f"Invalid group_by: {value}",
            {"group_by": str(value), "allowed": [g.value for g in allowed]}
        )
    return group


class ReportingService:
    """Dashboard and report figures, always within the actor's scope."""

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        status_catalog: IStatusCatalog,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._ticket_repo = ticket_repository
        self._catalog = status_catalog
        self._clock = clock or utc_now

    async def _scoped_tickets(self, actor: Actor, filters: Filters) -> List[Ticket]:
        query = await resolve_filters(self._catalog, filters)
        scope = AccessPolicy.list_scope(actor)
        if scope.is_empty:
            return []
        return await self._ticket_repo.find_all(scope, query)

    async def stats(self, actor: Actor, filters: Filters = None) -> TicketStats:
        tickets = await self._scoped_tickets(actor, filters)
        return summarize(tickets, self._clock())

    async def sla_compliance_by_priority(
        self,
        actor: Actor,
        filters: Filters = None
    ) -> List[PriorityCompliance]:
        tickets = await self._scoped_tickets(actor, filters)
        return compliance_by_priority(tickets, self._clock())

    async def sla_overview(
        self,
        actor: Actor,
        filters: Filters = None,
        limit: int = 20
    ) -> Tuple[List[PriorityCompliance], List[BreachedTicket]]:
        """Compliance by priority and the most overdue tickets, at one instant."""
        tickets = await self._scoped_tickets(actor, filters)
        now = self._clock()
        return compliance_by_priority(tickets, now), breaches(tickets, now, limit)

    async def mean_time_to_resolution(
        self,
        actor: Actor,
        group_by: Union[str, MttrGroup] = MttrGroup.EQUIPMENT,
        filters: Filters = None
    ) -> List[ResolutionTime]:
        group = _group(group_by, tuple(MttrGroup))
        tickets = await self._scoped_tickets(actor, filters)
        results = mean_time_to_resolution(tickets, group)
        logger.debug(
            "MTTR computed",
            extra={"group_by": group.value, "entities": len(results), "actor_id": actor.id}
        )
        return results

    async def sla_breaches(
        self,
        actor: Actor,
        filters: Filters = None,
        limit: Optional[int] = None
    ) -> List[BreachedTicket]:
        if limit is not None and limit < 1:
            raise ValidationException("Invalid limit", {"limit": limit})
        tickets = await self._scoped_tickets(actor, filters)
        return breaches(tickets, self._clock(), limit)

    async def performance(
        self,
        actor: Actor,
        group_by: Union[str, MttrGroup] = MttrGroup.ZONE,
        filters: Filters = None
    ) -> List[EntityPerformance]:
        group = _group(group_by, (MttrGroup.ZONE, MttrGroup.BRANCH))
        tickets = await self._scoped_tickets(actor, filters)
        return performance(tickets, self._clock(), group)

    async def breakdown(self, actor: Actor, filters: Filters = None) -> Breakdown:
        tickets = await self._scoped_tickets(actor, filters)
        return breakdown(tickets, self._clock())
