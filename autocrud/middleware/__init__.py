"""Starlette middleware: request correlation, request logging and per-request sessions."""
