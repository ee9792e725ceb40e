"""Middleware and exception handlers shared by every router."""
