"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket, CallLog, AuditEntry, Actor and org references
- Value Objects: SLAConfig, TicketQuery, StatusRef
- Domain Services: SLACalculator, AccessPolicy, TicketNumberGenerator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from agrodesk.tickets.domain.entities import (
    Actor,
    AuditEntry,
    CallLog,
    EquipmentRef,
    FarmerRef,
    StaffMember,
    StatusRef,
    Ticket,
    ensure_utc,
    utc_now,
)
from agrodesk.tickets.domain.value_objects import (
    DEFAULT_SLA_MINUTES,
    SLACalculator,
    SLAConfig,
    TicketNumberGenerator,
    TicketQuery,
)
from agrodesk.tickets.domain.access import AccessPolicy, TicketScope, UNRESTRICTED

__all__ = [
    # Entities
    "Actor",
    "AuditEntry",
    "CallLog",
    "EquipmentRef",
    "FarmerRef",
    "StaffMember",
    "StatusRef",
    "Ticket",
    "ensure_utc",
    "utc_now",
    # Value Objects & Services
    "DEFAULT_SLA_MINUTES",
    "SLACalculator",
    "SLAConfig",
    "TicketNumberGenerator",
    "TicketQuery",
    "AccessPolicy",
    "TicketScope",
    "UNRESTRICTED",
]
