"""
Ticket Interfaces Layer
=======================

Interface adapters (controllers) for the ticket module.

Contains:
- Controllers: FastAPI route handlers for tickets and call logs
- Dependencies: actor extraction and service factories

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from agrodesk.tickets.interfaces.controllers import call_logs_router, tickets_router

__all__ = ["tickets_router", "call_logs_router"]
