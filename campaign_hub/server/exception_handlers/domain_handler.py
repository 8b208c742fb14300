"""
Domain Exception Handler.

Maps the expected failures raised by services (``CampaignHubError`` and its
subclasses) to their HTTP status. The body carries ``detail`` plus any extra
fields the error provides, such as ``budget_info``.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from campaign_hub.core.errors import CampaignHubError
from campaign_hub.core.logging_config import get_logger

logger = get_logger(__name__)


async def domain_exception_handler(request: Request, exc: CampaignHubError) -> JSONResponse:
    logger.info(
        f"{type(exc).__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.extra})
