"""
API v1 package.

Contains versioned API routes for the event registration API.
"""

from eventdesk.api.v1.routes import router

__all__ = ["router"]
