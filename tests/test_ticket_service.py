from datetime import timedelta

import pytest

from agrodesk.config import AuditAction
from agrodesk.core import (
    ConflictException,
    ForbiddenException,
    InvalidAssignmentException,
    InvalidStatusException,
    ResourceNotFoundException,
    ValidationException,
)
from agrodesk.tickets.application import TicketService
from tests.fakes import (
    ADMIN,
    EXEC_NO_ZONE,
    EXEC_Z1,
    EXEC_Z1_OTHER,
    EXEC_Z2,
    SUPERUSER,
    T0,
    StaticSLAConfigProvider,
    ticket_fields,
)


def service_with_numbers(numbers, ticket_repo, call_log_repo, audit_repo, catalog, org, clock):
    generated = iter(numbers)
    return TicketService(
        ticket_repository=ticket_repo,
        call_log_repository=call_log_repo,
        audit_repository=audit_repo,
        status_catalog=catalog,
        org_directory=org,
        config_provider=StaticSLAConfigProvider(),
        number_generator=lambda: next(generated),
        clock=clock,
    )


class TestCreateTicket:
    async def test_snapshots_farmer_placement(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)

        assert ticket.id is not None
        assert (ticket.zone_id, ticket.branch_id, ticket.line_id) == (1, 10, 100)
        assert ticket.status.name == "open"
        assert ticket.created_by == ADMIN.id
        assert ticket.created_at == T0
        assert ticket.sla_deadline == T0 + timedelta(minutes=30)
        assert ticket.resolved_at is None and ticket.closed_at is None

    @pytest.mark.parametrize("priority,minutes", [("urgent", 120), ("normal", 480)])
    async def test_deadline_follows_priority(self, ticket_service, priority, minutes):
        ticket = await ticket_service.create_ticket(ticket_fields(priority=priority), ADMIN)
        assert ticket.sla_deadline - ticket.created_at == timedelta(minutes=minutes)

    async def test_executive_creates_in_own_zone(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), EXEC_Z1)
        assert ticket.zone_id == EXEC_Z1.zone_id

    async def test_executive_cannot_create_in_other_zone(self, ticket_service, ticket_repo):
        with pytest.raises(ForbiddenException):
            await ticket_service.create_ticket(ticket_fields(farmer_id=2000), EXEC_Z1)
        assert ticket_repo.tickets == {}

    async def test_executive_without_zone_cannot_create(self, ticket_service):
        with pytest.raises(ForbiddenException):
            await ticket_service.create_ticket(ticket_fields(), EXEC_NO_ZONE)

    @pytest.mark.parametrize("farmer_id", [1001, 4242])
    async def test_missing_or_inactive_farmer(self, ticket_service, farmer_id):
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.create_ticket(ticket_fields(farmer_id=farmer_id), ADMIN)

    @pytest.mark.parametrize("overrides", [
        {"title": ""},
        {"priority": "low"},
        {"category": "weather"},
        {"farmer_id": None},
        {"zone_id": 2},
    ])
    async def test_invalid_fields(self, ticket_service, overrides):
        with pytest.raises(ValidationException):
            await ticket_service.create_ticket(ticket_fields(**overrides), ADMIN)

    async def test_equipment_must_belong_to_farmer(self, ticket_service):
        with pytest.raises(ValidationException):
            await ticket_service.create_ticket(ticket_fields(equipment_id=5001), ADMIN)

    @pytest.mark.parametrize("equipment_id", [5002, 9999])
    async def test_missing_or_inactive_equipment(self, ticket_service, equipment_id):
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.create_ticket(ticket_fields(equipment_id=equipment_id), ADMIN)

    async def test_initial_assignee(self, ticket_service):
        ticket = await ticket_service.create_ticket(
            ticket_fields(equipment_id=5000, assigned_to=11), ADMIN
        )
        assert ticket.assigned_to == 11
        assert ticket.equipment_id == 5000

    @pytest.mark.parametrize("assignee", [13, 2, 21, 404])
    async def test_ineligible_initial_assignee(self, ticket_service, assignee):
        with pytest.raises(InvalidAssignmentException):
            await ticket_service.create_ticket(ticket_fields(assigned_to=assignee), ADMIN)

    async def test_number_collision_is_retried(
        self, ticket_repo, call_log_repo, audit_repo, catalog, org, clock
    ):
        service = service_with_numbers(
            ["SHC00000001AAAA", "SHC00000001AAAA", "SHC00000002BBBB"],
            ticket_repo, call_log_repo, audit_repo, catalog, org, clock,
        )
        first = await service.create_ticket(ticket_fields(), ADMIN)
        second = await service.create_ticket(ticket_fields(), ADMIN)

        assert first.ticket_number == "SHC00000001AAAA"
        assert second.ticket_number == "SHC00000002BBBB"
        assert len(ticket_repo.tickets) == 2

    async def test_number_collision_surfaces_after_retries(
        self, ticket_repo, call_log_repo, audit_repo, catalog, org, clock
    ):
        service = service_with_numbers(
            ["SHC00000001AAAA"] * 3,
            ticket_repo, call_log_repo, audit_repo, catalog, org, clock,
        )
        await service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(ConflictException):
            await service.create_ticket(ticket_fields(), ADMIN)
        assert len(ticket_repo.tickets) == 1


class TestReadTickets:
    async def test_get_missing_ticket(self, ticket_service):
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket(999, ADMIN)

    async def test_inactive_ticket_is_not_found(self, ticket_service, ticket_repo):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        ticket_repo.tickets[ticket.id].is_active = False
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket(ticket.id, ADMIN)

    async def test_other_zone_executive_is_denied(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(ForbiddenException):
            await ticket_service.get_ticket(ticket.id, EXEC_Z2)

    async def test_detail_includes_call_logs(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        await ticket_service.change_status(ticket.id, "progress", ADMIN, remarks="Visited farm")

        found, call_logs = await ticket_service.get_ticket_detail(ticket.id, EXEC_Z1)
        assert found.status.name == "progress"
        assert [c.remarks for c in call_logs] == ["Visited farm"]


class TestListTickets:
    @pytest.fixture
    async def seeded(self, ticket_service, clock):
        created = []
        for farmer_id, priority in [(1000, "critical"), (1000, "normal"), (2000, "urgent")]:
            created.append(await ticket_service.create_ticket(
                ticket_fields(farmer_id=farmer_id, priority=priority), ADMIN
            ))
            clock.advance(minutes=1)
        return created

    async def test_newest_first(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(ADMIN)
        assert [t.id for t in page.tickets] == [t.id for t in reversed(seeded)]
        assert page.total == 3

    async def test_executive_sees_own_zone(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(EXEC_Z1)
        assert page.total == 2
        assert {t.zone_id for t in page.tickets} == {1}

    async def test_scope_wins_over_zone_filter(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(EXEC_Z1, {"zone_id": 2})
        assert page.total == 0
        assert page.tickets == []

    async def test_executive_without_zone_gets_nothing(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(EXEC_NO_ZONE)
        assert page.total == 0

    async def test_filters(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(SUPERUSER, {"priority": "normal"})
        assert [t.id for t in page.tickets] == [seeded[1].id]

        page = await ticket_service.list_tickets(ADMIN, {"status": "open", "zone_id": 2})
        assert [t.id for t in page.tickets] == [seeded[2].id]

        page = await ticket_service.list_tickets(
            ADMIN, {"start_date": T0 + timedelta(seconds=30)}
        )
        assert page.total == 2

    async def test_unknown_status_filter(self, ticket_service, seeded):
        with pytest.raises(InvalidStatusException):
            await ticket_service.list_tickets(ADMIN, {"status": "archived"})

    async def test_pagination(self, ticket_service, seeded):
        page = await ticket_service.list_tickets(ADMIN, page=2, limit=2)
        assert [t.id for t in page.tickets] == [seeded[0].id]
        assert page.total == 3
        assert page.total_pages == 2

    @pytest.mark.parametrize("page,limit", [(0, 20), (1, 0), (1, -1), (1, 201)])
    async def test_invalid_pagination(self, ticket_service, page, limit):
        with pytest.raises(ValidationException):
            await ticket_service.list_tickets(ADMIN, page=page, limit=limit)


class TestChangeStatus:
    async def test_assigned_executive_closes(self, ticket_service, clock):
        ticket = await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)
        closed_at = clock.advance(minutes=20)

        updated = await ticket_service.change_status(ticket.id, "closed", EXEC_Z1)

        assert updated.status.name == "closed"
        assert updated.closed_at == closed_at
        assert updated.resolved_at == closed_at

    async def test_unassigned_executive_is_denied(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)
        with pytest.raises(ForbiddenException):
            await ticket_service.change_status(ticket.id, "progress", EXEC_Z1_OTHER)

    async def test_unknown_status(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(InvalidStatusException):
            await ticket_service.change_status(ticket.id, "archived", ADMIN)

    async def test_closing_twice_is_rejected(self, ticket_service, ticket_repo):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        await ticket_service.change_status(ticket.id, "closed", ADMIN)
        with pytest.raises(InvalidStatusException):
            await ticket_service.change_status(ticket.id, "closed", ADMIN)
        assert ticket_repo.tickets[ticket.id].status.name == "closed"

    async def test_remarks_become_connected_call_log(
        self, ticket_service, call_log_repo, audit_repo
    ):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)

        await ticket_service.change_status(
            ticket.id, "progress", ADMIN, remarks="Technician dispatched"
        )

        [call_log] = call_log_repo.call_logs
        assert call_log.outcome.name == "connected"
        assert call_log.remarks == "Technician dispatched"
        assert call_log.resulting_status == "progress"
        assert call_log.called_by == ADMIN.id

        entry = audit_repo.entries[-1]
        assert entry.action == AuditAction.UPDATE
        assert entry.old_values == {"status": "open"}
        assert entry.new_values == {"status": "progress"}

    async def test_without_remarks_no_call_log(self, ticket_service, call_log_repo):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        await ticket_service.change_status(ticket.id, "progress", ADMIN)
        assert call_log_repo.call_logs == []

    async def test_reopen_keeps_resolution(self, ticket_service, clock):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        closed_at = clock.advance(minutes=10)
        await ticket_service.change_status(ticket.id, "closed", ADMIN)
        clock.advance(hours=1)

        reopened = await ticket_service.change_status(ticket.id, "reopen", ADMIN)

        assert reopened.status.name == "reopen"
        assert reopened.resolved_at == closed_at
        assert reopened.closed_at == closed_at

    async def test_same_status_saves_and_audits_nothing(
        self, ticket_service, ticket_repo, call_log_repo, audit_repo, clock
    ):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        await ticket_service.change_status(ticket.id, "progress", ADMIN)
        entries = len(audit_repo.entries)
        stamped = ticket_repo.tickets[ticket.id].updated_at
        clock.advance(minutes=5)

        updated = await ticket_service.change_status(
            ticket.id, "progress", ADMIN, remarks="Still waiting for parts"
        )

        assert updated.status.name == "progress"
        assert ticket_repo.tickets[ticket.id].updated_at == stamped
        assert len(audit_repo.entries) == entries
        assert [c.remarks for c in call_log_repo.call_logs] == ["Still waiting for parts"]


class TestAssignTicket:
    async def test_admin_assigns(self, ticket_service, audit_repo):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)

        updated = await ticket_service.assign_ticket(ticket.id, 12, ADMIN)

        assert updated.assigned_to == 12
        assert updated.status.name == "open"
        assert audit_repo.entries[-1].new_values == {"assigned_to": 12}

    async def test_executive_cannot_assign(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)
        with pytest.raises(ForbiddenException):
            await ticket_service.assign_ticket(ticket.id, 12, EXEC_Z1)

    @pytest.mark.parametrize("assignee", [13, 2, 21])
    async def test_ineligible_assignee(self, ticket_service, assignee):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(InvalidAssignmentException):
            await ticket_service.assign_ticket(ticket.id, assignee, ADMIN)

    async def test_reassigned_executive_loses_write_access(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)
        await ticket_service.assign_ticket(ticket.id, 12, ADMIN)

        with pytest.raises(ForbiddenException):
            await ticket_service.change_status(ticket.id, "progress", EXEC_Z1)
        updated = await ticket_service.change_status(ticket.id, "progress", EXEC_Z1_OTHER)
        assert updated.status.name == "progress"


class TestUpdateTicket:
    async def test_priority_change_keeps_deadline(self, ticket_service, audit_repo):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)

        updated = await ticket_service.update_ticket(ticket.id, {"priority": "normal"}, ADMIN)

        assert updated.priority.value == "normal"
        assert updated.sla_deadline == ticket.sla_deadline
        assert audit_repo.entries[-1].old_values == {"priority": "critical"}

    async def test_edit_fields_and_status(self, ticket_service, clock):
        ticket = await ticket_service.create_ticket(ticket_fields(assigned_to=11), ADMIN)
        now = clock.advance(minutes=5)

        updated = await ticket_service.update_ticket(
            ticket.id,
            {"title": "Pump repaired", "category": "service", "status": "closed"},
            EXEC_Z1,
        )

        assert updated.title == "Pump repaired"
        assert updated.category.value == "service"
        assert updated.closed_at == now
        assert updated.updated_at == now

    async def test_empty_update(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(ValidationException):
            await ticket_service.update_ticket(ticket.id, {}, ADMIN)

    @pytest.mark.parametrize("changes", [{"zone_id": 2}, {"sla_deadline": "2024-03-02T00:00:00Z"}])
    async def test_placement_and_deadline_are_not_editable(self, ticket_service, changes):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(ValidationException):
            await ticket_service.update_ticket(ticket.id, changes, ADMIN)

    async def test_unassigned_executive_cannot_edit(self, ticket_service):
        ticket = await ticket_service.create_ticket(ticket_fields(), ADMIN)
        with pytest.raises(ForbiddenException):
            await ticket_service.update_ticket(ticket.id, {"title": "x"}, EXEC_Z1)
