"""
API v1 package.

Contains versioned API routes for the authentication flows.
"""

from src.api.v1.routes import router

__all__ = ["router"]
