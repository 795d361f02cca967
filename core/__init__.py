"""Core module - source records and observability.

This module contains the immutable source record models and the logging and
metrics stack shared by the reconciliation engine, the entity resolver and
the API.
"""

__version__ = "1.0.0"
