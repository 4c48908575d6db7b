"""
API route controllers for the Retention Portal.

Routes handle HTTP requests and delegate to services for remote calls.
"""

from .health import router as health_router
from .vicidial import router as vicidial_router

__all__ = [
    "health_router",
    "vicidial_router",
]
