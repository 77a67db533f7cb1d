"""
Template Migration Tool API Routers
"""
from .console import router as console_router

__all__ = [
    "console_router",
]
