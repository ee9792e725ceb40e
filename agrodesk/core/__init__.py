"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from agrodesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    UnauthorizedException,
    ForbiddenException,
    InvalidStatusException,
    InvalidOutcomeException,
    InvalidAssignmentException,
    ConflictException,
    ConfigurationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "InvalidStatusException",
    "InvalidOutcomeException",
    "InvalidAssignmentException",
    "ConflictException",
    "ConfigurationException",
]
