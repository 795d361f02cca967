"""API Routes Package."""

from api.routes import health, reconciliation, entities

__all__ = [
    "health",
    "reconciliation",
    "entities",
]
