"""
Domain errors.

Services raise these instead of HTTP exceptions; the server maps each one to
its ``status_code`` through the domain exception handler.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CampaignHubError(Exception):
    """Base class for expected, client-facing failures."""

    status_code: int = 400

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ValidationFailedError(CampaignHubError):
    status_code = 400


class InsufficientFundsError(CampaignHubError):
    status_code = 400


class BudgetExceededError(CampaignHubError):
    """A requested ad budget does not fit the campaign; ``extra`` carries ``budget_info``."""

    status_code = 400


class UpstreamAuthError(CampaignHubError):
    status_code = 401


class PaymentRequiredError(CampaignHubError):
    status_code = 402


class PermissionDeniedError(CampaignHubError):
    status_code = 403


class NotFoundError(CampaignHubError):
    status_code = 404


class ConflictError(CampaignHubError):
    status_code = 409


class GoneError(CampaignHubError):
    status_code = 410
