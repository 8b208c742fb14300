"""
Monitoring and Tracing Configuration Module.

This module provides integration with Logfire for monitoring and tracing of
CampaignHub operations, including:
- API endpoint tracing
- Database operation monitoring
- Outbound HTTP calls (SSO verification, monetization callbacks)
- Ad serving and impression billing events

The integration is opt-in through ``LOGFIRE_ENABLED``. Every helper in this
module degrades to a debug log line when Logfire is not configured.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI

logger = logging.getLogger(__name__)

LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "campaign-hub")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "campaign-hub-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

LOGFIRE_SAMPLE_RATE = float(os.getenv("LOGFIRE_SAMPLE_RATE", "1.0"))

LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")

_logfire_ready = False


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize Logfire for monitoring and tracing.

    Sets up Logfire with automatic instrumentation for SQLAlchemy, HTTPX and,
    when an application instance is given, FastAPI endpoints.

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).
    """
    global _logfire_ready

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return

    if not LOGFIRE_TOKEN:
        logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set. Monitoring will not work.")
        return

    try:
        import logfire

        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
            sampling=logfire.SamplingOptions(head=LOGFIRE_SAMPLE_RATE),
        )

        if LOGFIRE_TRACE_SQLALCHEMY:
            try:
                logfire.instrument_sqlalchemy()
                logger.info("Logfire: SQLAlchemy instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument SQLAlchemy: {e}")

        if LOGFIRE_TRACE_HTTPX:
            try:
                logfire.instrument_httpx()
                logger.info("Logfire: HTTPX instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument HTTPX: {e}")

        if LOGFIRE_TRACE_FASTAPI and app is not None:
            try:
                logfire.instrument_fastapi(app=app)
                logger.info("Logfire: FastAPI instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument FastAPI: {e}")

        _logfire_ready = True
        logger.info(
            f"Logfire monitoring initialized: "
            f"project={LOGFIRE_PROJECT_NAME}, "
            f"environment={LOGFIRE_ENVIRONMENT}, "
            f"service={LOGFIRE_SERVICE_NAME}"
        )

    except ImportError:
        logger.warning("Logfire is enabled but the 'logfire' package is not installed.")
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)


def _emit(level: str, message: str, **attributes) -> bool:
    """Send a structured event to Logfire; returns False when it was not sent."""
    if not _logfire_ready:
        return False
    try:
        import logfire

        getattr(logfire, level)(message, **attributes)
        return True
    except Exception:
        return False


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    if not _emit("info", "API request completed", method=method, path=path, status_code=status_code, duration_ms=duration_ms):
        logger.debug(f"API request: {method} {path} -> {status_code} ({duration_ms:.2f}ms)")


def log_ad_served(ad_id: int, impression_id: int, video_id: str, score: float, candidates: int) -> None:
    """
    Log the outcome of an ad selection.

    Args:
        ad_id: Selected ad
        impression_id: Reserved impression
        video_id: Video the ad is served against
        score: Winning score
        candidates: Number of budget-eligible candidates that were scored
    """
    if not _emit(
        "info",
        "Ad served",
        ad_id=ad_id,
        impression_id=impression_id,
        video_id=video_id,
        score=score,
        candidates=candidates,
    ):
        logger.debug(f"Ad served: ad_id={ad_id} impression_id={impression_id} score={score:.4f}")


def log_impression_billed(impression_id: int, ad_id: int, campaign_id: int, cost_cents: int) -> None:
    """
    Log a billed impression.

    Args:
        impression_id: The confirmed impression
        ad_id: Ad that was billed
        campaign_id: Campaign that was billed
        cost_cents: Amount billed
    """
    if not _emit(
        "info",
        "Impression billed",
        impression_id=impression_id,
        ad_id=ad_id,
        campaign_id=campaign_id,
        cost_cents=cost_cents,
    ):
        logger.debug(f"Impression billed: impression_id={impression_id} cost_cents={cost_cents}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _emit("error", f"{error_type}: {error_message}", **(context or {})):
        logger.debug(f"Could not log error to Logfire: {error_type}")
