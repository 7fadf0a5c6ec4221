"""
Repository layer for data access.

Provides the generic CRUD repository the generated routes are built on.
"""
