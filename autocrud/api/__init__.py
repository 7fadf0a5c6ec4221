"""Route generation, filters, dependencies and health endpoints."""
