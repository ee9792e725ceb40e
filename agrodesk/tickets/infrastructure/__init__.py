"""
Ticket Infrastructure Layer
===========================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: SQLAlchemy implementations of the application interfaces
- External: YAML SLA configuration with hot reload
"""

from agrodesk.tickets.infrastructure.external import ConfigFileHandler, SLAConfigManager
from agrodesk.tickets.infrastructure.repositories import (
    SQLAlchemyAuditLogRepository,
    SQLAlchemyCallLogRepository,
    SQLAlchemyOrgDirectory,
    SQLAlchemyStatusCatalog,
    SQLAlchemyTicketRepository,
    seed_catalogs,
)

__all__ = [
    "ConfigFileHandler",
    "SLAConfigManager",
    "SQLAlchemyAuditLogRepository",
    "SQLAlchemyCallLogRepository",
    "SQLAlchemyOrgDirectory",
    "SQLAlchemyStatusCatalog",
    "SQLAlchemyTicketRepository",
    "seed_catalogs",
]
