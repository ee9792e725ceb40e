"""
AgroDesk
========

Farmer complaint desk: ticket lifecycle, SLA tracking and reporting.
"""

__version__ = "1.0.0"
