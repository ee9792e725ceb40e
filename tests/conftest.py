"""
Shared fixtures.

Org layout used throughout:

    zone 1 -> branch 10 -> line 100 -> farmer 1000 (equipment 5000, 5002 inactive)
                                    -> farmer 1001 (inactive)
    zone 2 -> branch 20 -> line 200 -> farmer 2000 (equipment 5001)

Staff: admin 1; executives 11 and 12 in zone 1, 21 in zone 2,
13 inactive in zone 1; admin 2 placed in zone 1.
"""

import pytest

from agrodesk.config import Role
from agrodesk.reporting.application import ReportingService
from agrodesk.tickets.application import CallLogService, TicketService
from agrodesk.tickets.domain import EquipmentRef, FarmerRef, SLAConfig, StaffMember
from tests.fakes import (
    T0,
    FakeClock,
    FakeOrgDirectory,
    FakeStatusCatalog,
    InMemoryAuditLogRepository,
    InMemoryCallLogRepository,
    InMemoryTicketRepository,
    StaticSLAConfigProvider,
)


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def call_log_repo(ticket_repo):
    return InMemoryCallLogRepository(ticket_repo)


@pytest.fixture
def audit_repo():
    return InMemoryAuditLogRepository()


@pytest.fixture
def catalog():
    return FakeStatusCatalog()


@pytest.fixture
def org():
    directory = FakeOrgDirectory()
    directory.add_farmer(FarmerRef(id=1000, zone_id=1, branch_id=10, line_id=100))
    directory.add_farmer(FarmerRef(id=1001, zone_id=1, branch_id=10, line_id=100, is_active=False))
    directory.add_farmer(FarmerRef(id=2000, zone_id=2, branch_id=20, line_id=200))
    directory.add_equipment(EquipmentRef(id=5000, farmer_id=1000))
    directory.add_equipment(EquipmentRef(id=5001, farmer_id=2000))
    directory.add_equipment(EquipmentRef(id=5002, farmer_id=1000, is_active=False))
    directory.add_staff(StaffMember(id=1, role=Role.ADMIN))
    directory.add_staff(StaffMember(id=2, role=Role.ADMIN, zone_id=1))
    directory.add_staff(StaffMember(id=11, role=Role.EXECUTIVE, zone_id=1, branch_id=10))
    directory.add_staff(StaffMember(id=12, role=Role.EXECUTIVE, zone_id=1, branch_id=10))
    directory.add_staff(StaffMember(id=13, role=Role.EXECUTIVE, zone_id=1, is_active=False))
    directory.add_staff(StaffMember(id=21, role=Role.EXECUTIVE, zone_id=2, branch_id=20))
    return directory


@pytest.fixture
def sla_config():
    return SLAConfig()


@pytest.fixture
def ticket_service(ticket_repo, call_log_repo, audit_repo, catalog, org, sla_config, clock):
    return TicketService(
        ticket_repository=ticket_repo,
        call_log_repository=call_log_repo,
        audit_repository=audit_repo,
        status_catalog=catalog,
        org_directory=org,
        config_provider=StaticSLAConfigProvider(sla_config),
        clock=clock,
    )


@pytest.fixture
def call_log_service(ticket_repo, call_log_repo, audit_repo, catalog, clock):
    return CallLogService(
        ticket_repository=ticket_repo,
        call_log_repository=call_log_repo,
        audit_repository=audit_repo,
        status_catalog=catalog,
        clock=clock,
    )


@pytest.fixture
def reporting_service(ticket_repo, catalog, clock):
    return ReportingService(ticket_repo, catalog, clock=clock)
