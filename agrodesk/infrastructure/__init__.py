"""
Infrastructure Package
======================

Technical adapters shared by all modules (database engine and sessions).
"""
