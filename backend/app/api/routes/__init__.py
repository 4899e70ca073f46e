"""API routes."""

from app.api.routes import brokers, jobs

__all__ = ["brokers", "jobs"]
