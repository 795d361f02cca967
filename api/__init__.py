"""API Package.

FastAPI server exposing the reconciliation engine to the dashboards.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
