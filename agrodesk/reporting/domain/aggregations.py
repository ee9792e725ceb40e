"""
Ticket Aggregations
===================

Pure functions computing dashboard and report figures over a list of
tickets that has already been scoped and filtered.

Every SLA-dependent figure takes ``now`` explicitly: breach counts are
derived at query time, never stored.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from agrodesk.config import ComplianceBucket, MttrGroup, Priority
from agrodesk.tickets.domain import SLACalculator, Ticket


@dataclass
class TicketStats:
    total_count: int = 0
    open_count: int = 0
    resolved_count: int = 0
    closed_count: int = 0
    critical_count: int = 0
    breach_count: int = 0


@dataclass
class PriorityCompliance:
    priority: str
    total: int = 0
    compliant: int = 0
    breached: int = 0
    pending: int = 0

    @property
    def compliance_rate(self) -> float:
        """Percentage of tickets resolved within SLA."""
        return round(self.compliant / (self.total or 1) * 100, 1)


@dataclass
class ResolutionTime:
    entity_id: int
    resolved_count: int
    mean_hours: float


@dataclass
class BreachedTicket:
    ticket: Ticket
    hours_overdue: float


@dataclass
class EntityPerformance:
    entity_id: int
    total: int = 0
    open: int = 0
    closed: int = 0
    breached: int = 0
    mean_resolution_hours: Optional[float] = None


@dataclass
class Breakdown:
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    by_day: Dict[date, int] = field(default_factory=dict)


_GROUP_KEYS: Dict[MttrGroup, Callable[[Ticket], Optional[int]]] = {
    MttrGroup.EQUIPMENT: lambda t: t.equipment_id,
    MttrGroup.ZONE: lambda t: t.zone_id,
    MttrGroup.BRANCH: lambda t: t.branch_id,
}


def resolution_hours(ticket: Ticket) -> float:
    return (ticket.resolved_at - ticket.created_at).total_seconds() / 3600


def summarize(tickets: Iterable[Ticket], now: datetime) -> TicketStats:
    stats = TicketStats()
    for ticket in tickets:
        stats.total_count += 1
        if ticket.is_closed:
            stats.closed_count += 1
        else:
            stats.open_count += 1
        if ticket.is_resolved:
            stats.resolved_count += 1
        if ticket.priority == Priority.CRITICAL:
            stats.critical_count += 1
        if SLACalculator.is_breached(ticket, now):
            stats.breach_count += 1
    return stats


def compliance_by_priority(
    tickets: Iterable[Ticket],
    now: datetime
) -> List[PriorityCompliance]:
    """
    Bucket tickets by priority using the SLA compliance classification.

    Priorities without tickets are left out; order is most urgent first.
    """
    rows = {p: PriorityCompliance(priority=p.value) for p in Priority}
    for ticket in tickets:
        row = rows[ticket.priority]
        row.total += 1
        bucket = SLACalculator.compliance_bucket(ticket, now)
        if bucket == ComplianceBucket.COMPLIANT:
            row.compliant += 1
        elif bucket == ComplianceBucket.BREACHED:
            row.breached += 1
        else:
            row.pending += 1
    return [row for row in rows.values() if row.total]


def mean_time_to_resolution(
    tickets: Iterable[Ticket],
    group_by: MttrGroup
) -> List[ResolutionTime]:
    """
    Mean ``resolved_at - created_at`` in hours per entity.

    Only resolved tickets count; entities with none are omitted rather
    than reported as zero. Slowest entities first.
    """
    key = _GROUP_KEYS[MttrGroup(group_by)]
    durations: Dict[int, List[float]] = defaultdict(list)
    for ticket in tickets:
        entity_id = key(ticket)
        if ticket.resolved_at is None or entity_id is None:
            continue
        durations[entity_id].append(resolution_hours(ticket))

    results = [
        ResolutionTime(
            entity_id=entity_id,
            resolved_count=len(hours),
            mean_hours=round(sum(hours) / len(hours), 2),
        )
        for entity_id, hours in durations.items()
    ]
    results.sort(key=lambda r: (-r.mean_hours, r.entity_id))
    return results


def breaches(
    tickets: Iterable[Ticket],
    now: datetime,
    limit: Optional[int] = None
) -> List[BreachedTicket]:
    """Open tickets past their deadline, most overdue first."""
    overdue = [
        BreachedTicket(ticket=t, hours_overdue=SLACalculator.hours_overdue(t, now))
        for t in tickets
        if SLACalculator.is_breached(t, now)
    ]
    overdue.sort(key=lambda b: (b.ticket.sla_deadline, b.ticket.id or 0))
    return overdue[:limit] if limit is not None else overdue


def performance(
    tickets: Iterable[Ticket],
    now: datetime,
    group_by: MttrGroup
) -> List[EntityPerformance]:
    """Volume, closure and breach counts per zone or branch, busiest first."""
    if MttrGroup(group_by) == MttrGroup.EQUIPMENT:
        raise ValueError("performance is grouped by zone or branch")
    key = _GROUP_KEYS[MttrGroup(group_by)]

    rows: Dict[int, EntityPerformance] = {}
    durations: Dict[int, List[float]] = defaultdict(list)
    for ticket in tickets:
        entity_id = key(ticket)
        row = rows.setdefault(entity_id, EntityPerformance(entity_id=entity_id))
        row.total += 1
        if ticket.is_closed:
            row.closed += 1
        else:
            row.open += 1
        if SLACalculator.compliance_bucket(ticket, now) == ComplianceBucket.BREACHED:
            row.breached += 1
        if ticket.resolved_at is not None:
            durations[entity_id].append(resolution_hours(ticket))

    for entity_id, hours in durations.items():
        rows[entity_id].mean_resolution_hours = round(sum(hours) / len(hours), 2)

    return sorted(rows.values(), key=lambda r: (-r.total, r.entity_id))


def breakdown(
    tickets: Iterable[Ticket],
    now: datetime,
    trend_days: int = 30
) -> Breakdown:
    """Counts by status, priority and category, plus a daily creation trend."""
    tickets = list(tickets)
    since = (now - timedelta(days=trend_days)).date()

    by_day = Counter(
        t.created_at.date() for t in tickets if t.created_at.date() >= since
    )
    return Breakdown(
        by_status=dict(Counter(t.status.name for t in tickets).most_common()),
        by_priority=dict(Counter(t.priority.value for t in tickets).most_common()),
        by_category=dict(Counter(t.category.value for t in tickets).most_common()),
        by_day=dict(sorted(by_day.items())),
    )
