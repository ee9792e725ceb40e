"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="agrodesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/agrodesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    sla_watch_config: bool = Field(
        default=True,
        description="Hot-reload the SLA configuration file on change"
    )

    # ========== Tickets ==========
    ticket_number_prefix: str = Field(
        default="SHC",
        min_length=1,
        max_length=8,
        description="Prefix for generated ticket numbers"
    )
    ticket_number_attempts: int = Field(
        default=2,
        description="Insert attempts before a ticket number collision is surfaced",
        ge=1,
        le=5
    )
    default_page_size: int = Field(default=20, description="Default list page size", ge=1)
    max_page_size: int = Field(default=200, description="Largest allowed page size", ge=1)

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Role(str, Enum):
    """Staff roles."""
    ADMIN = "admin"
    EXECUTIVE = "executive"
    MASTER_ADMIN = "master_admin"


class Priority(str, Enum):
    """Ticket priority levels, most urgent first."""
    CRITICAL = "critical"
    URGENT = "urgent"
    NORMAL = "normal"


class Category(str, Enum):
    """Complaint categories."""
    EQUIPMENT = "equipment"
    FEED = "feed"
    MEDICINE = "medicine"
    SERVICE = "service"
    BILLING = "billing"
    OTHER = "other"


class TicketStatusName(str, Enum):
    """Canonical ticket status catalog names."""
    OPEN = "open"
    PROGRESS = "progress"
    CLOSED = "closed"
    REOPEN = "reopen"


class CallOutcome(str, Enum):
    """Call status catalog names."""
    CONNECTED = "connected"
    NO_ANSWER = "no_answer"
    BUSY = "busy"
    WRONG_NUMBER = "wrong_number"


class AuditAction(str, Enum):
    """Audit trail actions."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"
    EXPORT = "export"
    LOGIN = "login"
    LOGOUT = "logout"


class ComplianceBucket(str, Enum):
    """SLA compliance classification of a ticket."""
    COMPLIANT = "compliant"
    BREACHED = "breached"
    PENDING = "pending"


class MttrGroup(str, Enum):
    """Entities mean time to resolution can be grouped by."""
    EQUIPMENT = "equipment"
    ZONE = "zone"
    BRANCH = "branch"


# ========== Lists for validation ==========

VALID_PRIORITIES = [p.value for p in Priority]
VALID_CATEGORIES = [c.value for c in Category]
VALID_TICKET_STATUSES = [s.value for s in TicketStatusName]
VALID_CALL_OUTCOMES = [o.value for o in CallOutcome]

# Seed data for the status catalogs, in display order.
TICKET_STATUS_CATALOG = [
    {"name": "open", "display_name": "Open", "color": "#3B82F6", "sort_order": 1},
    {"name": "progress", "display_name": "In Progress", "color": "#F59E0B", "sort_order": 2},
    {"name": "closed", "display_name": "Closed", "color": "#10B981", "sort_order": 3},
    {"name": "reopen", "display_name": "Reopened", "color": "#EF4444", "sort_order": 4},
]
CALL_STATUS_CATALOG = [
    {"name": "connected", "display_name": "Connected", "icon": "phone", "color": "#10b981", "sort_order": 1},
    {"name": "no_answer", "display_name": "No Answer", "icon": "phone-missed", "color": "#f59e0b", "sort_order": 2},
    {"name": "busy", "display_name": "Busy", "icon": "phone-off", "color": "#ef4444", "sort_order": 3},
    {"name": "wrong_number", "display_name": "Wrong Number", "icon": "phone-x", "color": "#8b5cf6", "sort_order": 4},
]
