"""
HTTP layer for autocrud: route generation and the FastAPI application factory.
"""

from autocrud.api.app import create_app, register_models
from autocrud.api.routes import RouteGenerator

__all__ = [
    "RouteGenerator",
    "create_app",
    "register_models",
]
