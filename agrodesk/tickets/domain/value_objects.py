"""
Ticket Value Objects
====================

Immutable value objects and stateless domain services:

- SLAConfig: priority -> resolution window, loaded from YAML
- SLACalculator: deadline, breach and compliance math
- TicketNumberGenerator: collision-resistant ticket numbers
- TicketQuery: explicit list/aggregate filters
"""

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from agrodesk.config import Priority, ComplianceBucket, VALID_PRIORITIES
from agrodesk.tickets.domain.entities import Ticket


# Default resolution windows, in minutes.
DEFAULT_SLA_MINUTES: Dict[str, int] = {
    Priority.CRITICAL.value: 30,
    Priority.URGENT.value: 120,
    Priority.NORMAL.value: 480,
}


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    Deadline = created_at + sla_targets[priority] minutes.

    This is a value object - immutable and defined by its attributes.
    """
    sla_targets: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_SLA_MINUTES),
        description="Resolution window in minutes by priority"
    )

    @field_validator("sla_targets")
    @classmethod
    def validate_sla_targets(cls, v: Dict[str, int]) -> Dict[str, int]:
        """Fill missing priorities with defaults and reject unknown ones."""
        unknown = set(v) - set(VALID_PRIORITIES)
        if unknown:
            raise ValueError(f"unknown priorities in sla_targets: {sorted(unknown)}")

        targets = dict(DEFAULT_SLA_MINUTES)
        targets.update(v)
        for priority, minutes in targets.items():
            if minutes <= 0:
                raise ValueError(f"SLA window for '{priority}' must be positive")
        return targets

    def get_offset(self, priority: str) -> timedelta:
        """Resolution window for a priority."""
        return timedelta(minutes=self.sla_targets[Priority(priority).value])


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    """

    @staticmethod
    def compute_deadline(
        priority: str,
        created_at: datetime,
        config: SLAConfig
    ) -> datetime:
        """
        Calculate the SLA deadline for a ticket.

        Plain timedelta arithmetic on an aware UTC instant, so the offset is
        exact regardless of local calendar changes.
        """
        return created_at + config.get_offset(priority)

    @staticmethod
    def is_breached(ticket: Ticket, now: datetime) -> bool:
        """A non-closed ticket whose deadline has passed."""
        if ticket.is_closed or ticket.sla_deadline is None:
            return False
        return now > ticket.sla_deadline

    @staticmethod
    def compliance_bucket(ticket: Ticket, now: datetime) -> ComplianceBucket:
        """
        Classify a ticket against its SLA.

        - compliant: closed and resolved on or before the deadline
        - breached: still open past the deadline, or resolved after it
        - pending: everything else
        """
        if ticket.is_closed:
            resolved_at = ticket.resolved_at or ticket.closed_at
            if resolved_at is None or ticket.sla_deadline is None:
                return ComplianceBucket.PENDING
            if resolved_at <= ticket.sla_deadline:
                return ComplianceBucket.COMPLIANT
            return ComplianceBucket.BREACHED

        if SLACalculator.is_breached(ticket, now):
            return ComplianceBucket.BREACHED
        return ComplianceBucket.PENDING

    @staticmethod
    def remaining_seconds(ticket: Ticket, now: datetime) -> float:
        """Seconds until the deadline (negative once past)."""
        if ticket.sla_deadline is None:
            return 0.0
        return (ticket.sla_deadline - now).total_seconds()

    @staticmethod
    def hours_overdue(ticket: Ticket, now: datetime) -> float:
        """Hours past the deadline, 0 when not overdue."""
        overdue = -SLACalculator.remaining_seconds(ticket, now)
        return round(max(0.0, overdue) / 3600, 2)


class TicketNumberGenerator:
    """
    Produces ticket numbers shaped ``<prefix><8 timestamp digits><4 random>``.

    No lookup is made before insertion: uniqueness is enforced by the
    storage layer and collisions surface as ConflictException.
    """

    ALPHABET = string.digits + string.ascii_uppercase
    RANDOM_LENGTH = 4

    def __init__(
        self,
        prefix: str = "SHC",
        clock: Optional[Callable[[], float]] = None
    ):
        self._prefix = prefix
        self._clock = clock or time.time

    def __call__(self) -> str:
        timestamp = str(int(self._clock() * 1000))[-8:]
        suffix = "".join(
            secrets.choice(self.ALPHABET) for _ in range(self.RANDOM_LENGTH)
        )
        return f"{self._prefix}{timestamp}{suffix}"


@dataclass(frozen=True)
class TicketQuery:
    """
    Explicit filters for list and aggregate queries.

    These are always intersected with the actor's implicit scope, never
    used in its place.
    """

    status_id: Optional[int] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    line_id: Optional[int] = None
    farmer_id: Optional[int] = None
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
