from datetime import timedelta

import pytest

from agrodesk.config import AuditAction
from agrodesk.core import (
    ForbiddenException,
    InvalidOutcomeException,
    InvalidStatusException,
    ResourceNotFoundException,
    ValidationException,
)
from tests.fakes import ADMIN, EXEC_NO_ZONE, EXEC_Z1, EXEC_Z1_OTHER, EXEC_Z2, T0, ticket_fields


@pytest.fixture
async def ticket(ticket_service):
    return await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)


async def test_record_call(call_log_service, ticket, audit_repo):
    call_log = await call_log_service.record_call(
        {"ticket_id": ticket.id, "outcome": "busy", "duration_seconds": 15},
        EXEC_Z1,
    )

    assert call_log.id is not None
    assert call_log.outcome.name == "busy"
    assert call_log.called_by == EXEC_Z1.id
    assert call_log.created_at == T0

    entry = audit_repo.entries[-1]
    assert entry.action == AuditAction.CREATE
    assert entry.entity == "call_log"
    assert entry.new_values == {"ticket_id": ticket.id, "outcome": "busy"}


async def test_call_never_changes_ticket_status(call_log_service, ticket_service, ticket):
    await call_log_service.record_call(
        {
            "ticket_id": ticket.id,
            "outcome": "connected",
            "next_follow_up_date": T0 + timedelta(days=1),
            "resulting_status": "closed",
            "resulting_status_date": T0,
        },
        EXEC_Z1,
    )

    reloaded = await ticket_service.get_ticket(ticket.id, ADMIN)
    assert reloaded.status.name == "open"
    assert reloaded.closed_at is None


async def test_invalid_outcome(call_log_service, ticket, call_log_repo):
    with pytest.raises(InvalidOutcomeException):
        await call_log_service.record_call({"ticket_id": ticket.id, "outcome": "voicemail"}, ADMIN)
    assert call_log_repo.call_logs == []


async def test_invalid_resulting_status(call_log_service, ticket):
    with pytest.raises(InvalidStatusException):
        await call_log_service.record_call(
            {"ticket_id": ticket.id, "outcome": "connected", "resulting_status": "archived"},
            ADMIN,
        )


async def test_negative_duration(call_log_service, ticket):
    with pytest.raises(ValidationException):
        await call_log_service.record_call(
            {"ticket_id": ticket.id, "outcome": "busy", "duration_seconds": -1}, ADMIN
        )


async def test_unassigned_executive_cannot_log(call_log_service, ticket):
    with pytest.raises(ForbiddenException):
        await call_log_service.record_call({"ticket_id": ticket.id, "outcome": "busy"}, EXEC_Z1_OTHER)


async def test_missing_ticket(call_log_service):
    with pytest.raises(ResourceNotFoundException):
        await call_log_service.record_call({"ticket_id": 404, "outcome": "busy"}, ADMIN)


async def test_list_for_ticket_newest_first(call_log_service, ticket, clock):
    first = await call_log_service.record_call({"ticket_id": ticket.id, "outcome": "no_answer"}, ADMIN)
    clock.advance(minutes=15)
    second = await call_log_service.record_call({"ticket_id": ticket.id, "outcome": "connected"}, ADMIN)

    call_logs = await call_log_service.list_for_ticket(ticket.id, EXEC_Z1_OTHER)

    assert [c.id for c in call_logs] == [second.id, first.id]


async def test_list_for_ticket_out_of_scope(call_log_service, ticket):
    with pytest.raises(ForbiddenException):
        await call_log_service.list_for_ticket(ticket.id, EXEC_Z2)


async def test_recent_respects_scope(call_log_service, ticket_service, ticket, clock):
    other = await ticket_service.create_ticket(ticket_fields(farmer_id=2000), ADMIN)
    await call_log_service.record_call({"ticket_id": ticket.id, "outcome": "busy"}, ADMIN)
    clock.advance(minutes=1)
    await call_log_service.record_call({"ticket_id": other.id, "outcome": "busy"}, ADMIN)

    assert [c.ticket_id for c in await call_log_service.recent(ADMIN)] == [other.id, ticket.id]
    assert [c.ticket_id for c in await call_log_service.recent(EXEC_Z2)] == [other.id]
    assert [c.ticket_id for c in await call_log_service.recent(ADMIN, limit=1)] == [other.id]
    assert await call_log_service.recent(EXEC_NO_ZONE) == []


async def test_recent_invalid_limit(call_log_service):
    with pytest.raises(ValidationException):
        await call_log_service.recent(ADMIN, limit=0)
