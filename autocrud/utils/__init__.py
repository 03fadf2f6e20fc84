"""
Utilities package for autocrud.

Exports shared helpers for logging and naming.
Keep this package lightweight and free of domain-specific logic.
"""

from autocrud.utils.logging import configure_logging, get_logger
from autocrud.utils.naming import capitalize, to_singular

__all__ = [
    "configure_logging",
    "get_logger",
    "capitalize",
    "to_singular",
]
