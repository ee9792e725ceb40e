"""
Request Dependencies
====================

FastAPI dependency providers shared by every router:
- get_current_actor: the Actor forwarded by the authentication gateway
- get_sla_config_provider: the process-wide SLAConfigManager
- service factories bound to the request's database session
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agrodesk.config import Role
from agrodesk.core import ConfigurationException, UnauthorizedException
from agrodesk.infrastructure.database import get_session
from agrodesk.tickets.application import (
    CallLogService,
    ISLAConfigProvider,
    TicketService,
)
from agrodesk.tickets.domain import Actor
from agrodesk.tickets.infrastructure import (
    SQLAlchemyAuditLogRepository,
    SQLAlchemyCallLogRepository,
    SQLAlchemyOrgDirectory,
    SQLAlchemyStatusCatalog,
    SQLAlchemyTicketRepository,
)

_TRUE_VALUES = {"1", "true", "yes"}


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_actor_zone_id: Optional[str] = Header(None),
    x_actor_branch_id: Optional[str] = Header(None),
    x_actor_superuser: Optional[str] = Header(None),
) -> Actor:
    """
    Build the Actor from gateway headers.

    Raises:
        UnauthorizedException: id or role missing or malformed
    """
    if not x_actor_id or not x_actor_role:
        raise UnauthorizedException("Authentication required")
    try:
        return Actor(
            id=int(x_actor_id),
            role=Role(x_actor_role.lower()),
            zone_id=int(x_actor_zone_id) if x_actor_zone_id else None,
            branch_id=int(x_actor_branch_id) if x_actor_branch_id else None,
            is_superuser=(x_actor_superuser or "").lower() in _TRUE_VALUES,
        )
    except ValueError as e:
        raise UnauthorizedException("Invalid actor headers", {"error": str(e)}) from e


def get_sla_config_provider(request: Request) -> ISLAConfigProvider:
    provider = getattr(request.app.state, "sla_config_manager", None)
    if provider is None:
        raise ConfigurationException("SLA configuration not loaded")
    return provider


async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    config_provider: ISLAConfigProvider = Depends(get_sla_config_provider),
) -> TicketService:
    """Get ticket service instance."""
    return TicketService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        call_log_repository=SQLAlchemyCallLogRepository(session),
        audit_repository=SQLAlchemyAuditLogRepository(session),
        status_catalog=SQLAlchemyStatusCatalog(session),
        org_directory=SQLAlchemyOrgDirectory(session),
        config_provider=config_provider,
    )


async def get_call_log_service(
    session: AsyncSession = Depends(get_session),
) -> CallLogService:
    """Get call log service instance."""
    return CallLogService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        call_log_repository=SQLAlchemyCallLogRepository(session),
        audit_repository=SQLAlchemyAuditLogRepository(session),
        status_catalog=SQLAlchemyStatusCatalog(session),
    )
