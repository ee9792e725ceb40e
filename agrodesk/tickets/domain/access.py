"""
Access Scope
============

Single place where role and zone assignment decide what an actor may see
or change. Every service consults this policy instead of re-deriving the
rules per endpoint.

Rules, in order:
1. Superusers (and master admins) are unrestricted.
2. Admins view and mutate everything; only they may assign tickets.
3. Executives only see tickets of their own zone and only mutate those
   assigned to them.
"""

from dataclasses import dataclass
from typing import Optional

from agrodesk.core import ForbiddenException
from agrodesk.tickets.domain.entities import Actor, FarmerRef, Ticket


@dataclass(frozen=True)
class TicketScope:
    """
    Implicit filter applied to every list/aggregate query of an actor.

    ``restricted`` with no ``zone_id`` means the actor sees nothing.
    """

    zone_id: Optional[int] = None
    restricted: bool = False

    @property
    def is_empty(self) -> bool:
        return self.restricted and self.zone_id is None

    def admits(self, ticket: Ticket) -> bool:
        if not self.restricted:
            return True
        return self.zone_id is not None and ticket.zone_id == self.zone_id


UNRESTRICTED = TicketScope()


class AccessPolicy:
    """Stateless capability checks shared by all ticket operations."""

    @staticmethod
    def list_scope(actor: Actor) -> TicketScope:
        if actor.is_unrestricted or actor.is_admin:
            return UNRESTRICTED
        return TicketScope(zone_id=actor.zone_id, restricted=True)

    @staticmethod
    def can_view(actor: Actor, ticket: Ticket) -> bool:
        return AccessPolicy.list_scope(actor).admits(ticket)

    @staticmethod
    def can_mutate(actor: Actor, ticket: Ticket) -> bool:
        if actor.is_unrestricted or actor.is_admin:
            return True
        return (
            AccessPolicy.can_view(actor, ticket)
            and ticket.assigned_to is not None
            and ticket.assigned_to == actor.id
        )

    @staticmethod
    def can_create_for(actor: Actor, farmer: FarmerRef) -> bool:
        if actor.is_unrestricted or actor.is_admin:
            return True
        return actor.zone_id is not None and farmer.zone_id == actor.zone_id

    @staticmethod
    def can_assign(actor: Actor) -> bool:
        return actor.is_unrestricted or actor.is_admin

    # ========== Guards ==========

    @staticmethod
    def ensure_can_view(actor: Actor, ticket: Ticket) -> None:
        if not AccessPolicy.can_view(actor, ticket):
            raise ForbiddenException(
                "Ticket not found or access denied",
                {"ticket_id": ticket.id}
            )

    @staticmethod
    def ensure_can_mutate(actor: Actor, ticket: Ticket) -> None:
        AccessPolicy.ensure_can_view(actor, ticket)
        if not AccessPolicy.can_mutate(actor, ticket):
            raise ForbiddenException(
                "Ticket is not assigned to you",
                {"ticket_id": ticket.id}
            )
