"""
Reporting Module
================

Bounded Context for dashboard and report figures over tickets.

Responsibilities:
- Ticket counts and breach counts evaluated at query time
- SLA compliance by priority
- Mean time to resolution by equipment, zone or branch
- Breach lists, zone/branch performance and distribution breakdowns

Every figure is computed within the requesting actor's scope.
"""

__version__ = "1.0.0"
