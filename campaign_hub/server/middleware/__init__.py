"""
Middleware modules for the CampaignHub server.

This package contains custom middleware for request/response logging and
other cross-cutting concerns.
"""

from .logfire_middleware import LogfireMiddleware

__all__ = ["LogfireMiddleware"]
