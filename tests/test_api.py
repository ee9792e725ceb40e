import pytest
from httpx import ASGITransport, AsyncClient

from agrodesk.main import app
from agrodesk.reporting.interfaces.controllers import get_reporting_service
from agrodesk.tickets.application import TicketService
from agrodesk.tickets.interfaces.dependencies import get_call_log_service, get_ticket_service
from tests.fakes import StaticSLAConfigProvider, ticket_fields

ADMIN_HEADERS = {"X-Actor-Id": "1", "X-Actor-Role": "admin"}
EXEC_Z1_HEADERS = {"X-Actor-Id": "11", "X-Actor-Role": "executive", "X-Actor-Zone-Id": "1"}
EXEC_Z2_HEADERS = {"X-Actor-Id": "21", "X-Actor-Role": "executive", "X-Actor-Zone-Id": "2"}


@pytest.fixture
def override():
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override, ticket_service, call_log_service, reporting_service):
    override[get_ticket_service] = lambda: ticket_service
    override[get_call_log_service] = lambda: call_log_service
    override[get_reporting_service] = lambda: reporting_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create(client, headers=ADMIN_HEADERS, **overrides):
    response = await client.post("/tickets", json=ticket_fields(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestTicketRoutes:
    async def test_create(self, client):
        body = await create(client, equipment_id=5000)

        assert body["ticket_number"].startswith("SHC")
        assert body["status"]["name"] == "open"
        assert body["zone_id"] == 1
        assert body["sla_deadline"].startswith("2024-03-01T08:30:00")
        assert body["sla_state"] in ("pending", "breached")

    async def test_missing_actor_headers(self, client):
        response = await client.post("/tickets", json=ticket_fields())

        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "unauthorized"

    async def test_malformed_actor_headers(self, client):
        response = await client.get("/tickets", headers={"X-Actor-Id": "1", "X-Actor-Role": "janitor"})
        assert response.status_code == 401

    async def test_invalid_body(self, client):
        response = await client.post(
            "/tickets", json=ticket_fields(priority="low"), headers=ADMIN_HEADERS
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["kind"] == "validation_error"
        assert "body.priority" in body["error"]["fields"]
        assert "correlation_id" in body

    async def test_out_of_zone_create(self, client):
        response = await client.post(
            "/tickets", json=ticket_fields(farmer_id=2000), headers=EXEC_Z1_HEADERS
        )
        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "forbidden"

    async def test_get_detail(self, client):
        ticket = await create(client)
        await client.put(
            f"/tickets/{ticket['id']}/status",
            json={"status": "progress", "remarks": "Engineer on the way"},
            headers=ADMIN_HEADERS,
        )

        response = await client.get(f"/tickets/{ticket['id']}", headers=EXEC_Z1_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["ticket"]["status"]["name"] == "progress"
        assert body["call_logs"][0]["outcome"]["name"] == "connected"

    async def test_get_out_of_scope(self, client):
        ticket = await create(client)
        response = await client.get(f"/tickets/{ticket['id']}", headers=EXEC_Z2_HEADERS)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Ticket not found or access denied"

    async def test_get_missing(self, client):
        response = await client.get("/tickets/999", headers=ADMIN_HEADERS)
        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "not_found"

    async def test_invalid_status(self, client):
        ticket = await create(client)
        response = await client.put(
            f"/tickets/{ticket['id']}/status", json={"status": "archived"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_status"

    async def test_close(self, client):
        ticket = await create(client)
        response = await client.put(
            f"/tickets/{ticket['id']}/status", json={"status": "closed"}, headers=ADMIN_HEADERS
        )

        body = response.json()
        assert body["closed_at"] is not None
        assert body["resolved_at"] == body["closed_at"]
        assert body["sla_breached"] is False

    async def test_assign(self, client):
        ticket = await create(client)

        response = await client.put(
            f"/tickets/{ticket['id']}/assign", json={"assigned_to": 11}, headers=ADMIN_HEADERS
        )
        assert response.json()["assigned_to"] == 11

        response = await client.put(
            f"/tickets/{ticket['id']}/assign", json={"assigned_to": 21}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_assignment"

    async def test_update(self, client):
        ticket = await create(client)
        response = await client.put(
            f"/tickets/{ticket['id']}", json={"priority": "normal"}, headers=ADMIN_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["priority"] == "normal"
        assert response.json()["sla_deadline"] == ticket["sla_deadline"]

    async def test_list_with_pagination(self, client):
        for _ in range(3):
            await create(client)
        await create(client, farmer_id=2000)

        response = await client.get("/tickets?limit=2&page=2", headers=EXEC_Z1_HEADERS)

        body = response.json()
        assert len(body["tickets"]) == 1
        assert body["pagination"] == {"total": 3, "page": 2, "limit": 2, "total_pages": 2}

    async def test_list_filter_by_status(self, client):
        await create(client)
        response = await client.get("/tickets?status=closed", headers=ADMIN_HEADERS)
        assert response.json()["pagination"]["total"] == 0

    async def test_limit_out_of_range(self, client):
        response = await client.get("/tickets?limit=500", headers=ADMIN_HEADERS)
        assert response.status_code == 422

    async def test_number_conflict(
        self, override, client, ticket_repo, call_log_repo, audit_repo, catalog, org, clock
    ):
        override[get_ticket_service] = lambda: TicketService(
            ticket_repository=ticket_repo,
            call_log_repository=call_log_repo,
            audit_repository=audit_repo,
            status_catalog=catalog,
            org_directory=org,
            config_provider=StaticSLAConfigProvider(),
            number_generator=lambda: "SHC00000001AAAA",
            clock=clock,
        )
        await create(client)

        response = await client.post("/tickets", json=ticket_fields(), headers=ADMIN_HEADERS)

        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "conflict"


class TestCallLogRoutes:
    async def test_record_and_list(self, client):
        ticket = await create(client, assigned_to=11)

        response = await client.post(
            "/call-logs",
            json={"ticket_id": ticket["id"], "outcome": "no_answer", "next_follow_up_date": "2024-03-02T09:00:00Z"},
            headers=EXEC_Z1_HEADERS,
        )
        assert response.status_code == 201

        response = await client.get(f"/call-logs/ticket/{ticket['id']}", headers=ADMIN_HEADERS)
        [call_log] = response.json()["call_logs"]
        assert call_log["outcome"]["name"] == "no_answer"

        response = await client.get(f"/tickets/{ticket['id']}", headers=ADMIN_HEADERS)
        assert response.json()["ticket"]["status"]["name"] == "open"

    async def test_invalid_outcome(self, client):
        ticket = await create(client)
        response = await client.post(
            "/call-logs", json={"ticket_id": ticket["id"], "outcome": "voicemail"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_outcome"

    async def test_recent(self, client):
        ticket = await create(client)
        await client.post(
            "/call-logs", json={"ticket_id": ticket["id"], "outcome": "busy"}, headers=ADMIN_HEADERS
        )

        response = await client.get("/call-logs/recent", headers=EXEC_Z2_HEADERS)
        assert response.json() == {"call_logs": []}


class TestReportingRoutes:
    async def test_dashboard_stats(self, client):
        await create(client)
        await create(client, farmer_id=2000, priority="normal")

        response = await client.get("/dashboard/stats", headers=ADMIN_HEADERS)

        assert response.json() == {
            "total_count": 2,
            "open_count": 2,
            "resolved_count": 0,
            "closed_count": 0,
            "critical_count": 1,
            "breach_count": 0,
        }
        response = await client.get("/dashboard/stats", headers=EXEC_Z2_HEADERS)
        assert response.json()["total_count"] == 1

    async def test_dashboard_sla(self, client):
        await create(client)
        response = await client.get("/dashboard/sla", headers=ADMIN_HEADERS)

        body = response.json()
        assert body["by_priority"][0]["priority"] == "critical"
        assert body["by_priority"][0]["pending"] == 1
        assert body["breaches"] == []

    async def test_breakdown(self, client):
        await create(client)
        response = await client.get("/dashboard/breakdown", headers=ADMIN_HEADERS)

        body = response.json()
        assert body["by_status"] == {"open": 1}
        assert body["by_day"] == {"2024-03-01": 1}

    async def test_mttr(self, client, clock):
        ticket = await create(client, equipment_id=5000)
        clock.advance(hours=2)
        await client.put(
            f"/tickets/{ticket['id']}/status", json={"status": "closed"}, headers=ADMIN_HEADERS
        )

        response = await client.get("/reports/mttr", headers=ADMIN_HEADERS)

        body = response.json()
        assert body["group_by"] == "equipment"
        assert body["results"] == [{"entity_id": 5000, "resolved_count": 1, "mean_hours": 2.0}]

    async def test_mttr_invalid_group(self, client):
        response = await client.get("/reports/mttr?group_by=line", headers=ADMIN_HEADERS)
        assert response.status_code == 422

    async def test_sla_breaches(self, client, clock):
        await create(client)
        clock.advance(hours=1)

        response = await client.get("/reports/sla-breaches", headers=ADMIN_HEADERS)

        body = response.json()
        assert [b["hours_overdue"] for b in body["breaches"]] == [0.5]
        assert body["summary"][0]["breached"] == 1

    async def test_performance(self, client):
        await create(client)
        response = await client.get("/reports/performance?group_by=branch", headers=ADMIN_HEADERS)

        body = response.json()
        assert body["group_by"] == "branch"
        assert body["results"][0]["entity_id"] == 10


class TestAppRoutes:
    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["service"] == "AgroDesk"

    async def test_health_without_database(self, client):
        response = await client.get("/health")

        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["database"] == "unavailable"

    async def test_correlation_id_is_echoed(self, client):
        response = await client.get(
            "/tickets/999", headers={**ADMIN_HEADERS, "X-Correlation-ID": "req-123"}
        )

        assert response.headers["X-Correlation-ID"] == "req-123"
        assert response.json()["correlation_id"] == "req-123"
        assert "X-Response-Time" in response.headers

    async def test_unhandled_error_is_opaque(self, override):
        class Broken:
            async def list_tickets(self, *args, **kwargs):
                raise RuntimeError("connection reset by peer")

        override[get_ticket_service] = lambda: Broken()
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/tickets", headers=ADMIN_HEADERS)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == {"kind": "internal", "message": "Internal server error"}
        assert "connection reset" not in response.text
