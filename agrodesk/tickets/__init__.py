"""
Ticket Lifecycle Module
=======================

Bounded Context for farmer complaints ("tickets") and their SLA.

Responsibilities:
- Generate unique ticket numbers
- Compute SLA deadlines from priority and detect breaches
- Decide what an actor may view or mutate (zone-scoped RBAC)
- Drive status transitions and resolved/closed timestamps
- Record the call-log trail attached to each ticket
"""

__version__ = "1.0.0"
