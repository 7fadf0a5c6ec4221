"""Pydantic schemas: generated model schemas and health responses."""
