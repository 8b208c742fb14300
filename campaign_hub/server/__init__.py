"""
CampaignHub Server Package.

This package contains the web server implementation for the CampaignHub platform.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Configuration, constants and access tokens.
    services: Business logic and request dependencies.
    exception_handlers: Mapping of domain errors and unhandled exceptions to responses.
    middleware: Request timing and tracing.
"""
