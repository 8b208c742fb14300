"""
Monetization notifier.

After an impression is billed, VideoStreamPro is told which video earned the
view so it can credit the creator. The call is best-effort: failures are
logged and reported in the result, never raised into the billing flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.monitoring import log_error
from campaign_hub.server.core.config import VideoStreamProConfig, settings

logger = get_logger(__name__)

AD_CONFIRMED_PATH = "/api/monetization/ad-confirmed"


@dataclass(frozen=True)
class AdConfirmation:
    video_id: str
    viewer_id: Optional[str]
    ad_id: int
    cost_cents: int

    def to_payload(self) -> dict:
        return {
            "videoId": self.video_id,
            "viewerId": self.viewer_id,
            "adId": self.ad_id,
            "costCents": self.cost_cents,
        }


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message: str
    monetization_enabled: bool = False


class MonetizationNotifier:
    """Posts billed impressions to the VideoStreamPro monetization API."""

    def __init__(
        self,
        config: Optional[VideoStreamProConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            config: VideoStreamPro settings, defaults to the application settings
            client: Preconfigured ``httpx.AsyncClient``; a short-lived one is used per call otherwise
        """
        self.config = config or settings.videostreampro
        self._client = client

    @property
    def endpoint(self) -> Optional[str]:
        base = self.config.base_url
        return f"{base}{AD_CONFIRMED_PATH}" if base else None

    async def notify_ad_confirmation(self, data: AdConfirmation) -> NotificationResult:
        endpoint = self.endpoint
        if endpoint is None:
            logger.debug("VideoStreamPro URL not configured, skipping monetization notification")
            return NotificationResult(success=False, message="Monetization notification skipped: not configured")

        headers = {"x-api-key": self.config.api_key or ""}
        try:
            if self._client is not None:
                response = await self._client.post(
                    endpoint, json=data.to_payload(), headers=headers, timeout=self.config.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    response = await client.post(endpoint, json=data.to_payload(), headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Monetization notification for ad {data.ad_id} failed: {e}")
            log_error("MonetizationNotificationError", str(e), {"ad_id": data.ad_id, "video_id": data.video_id})
            return NotificationResult(success=False, message=f"Monetization notification failed: {e}")

        if response.status_code >= 400:
            logger.warning(f"Monetization API answered {response.status_code} for ad {data.ad_id}")
            return NotificationResult(
                success=False, message=f"Monetization API returned status {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        enabled = bool(body.get("monetizationEnabled", body.get("success", True))) if isinstance(body, dict) else True
        message = body.get("message", "Monetization notified") if isinstance(body, dict) else "Monetization notified"
        logger.info(f"Monetization notified for ad {data.ad_id} on video {data.video_id}")
        return NotificationResult(success=True, message=message, monetization_enabled=enabled)


async def notify_ad_confirmation(data: AdConfirmation, notifier: Optional[MonetizationNotifier] = None) -> None:
    """Background-task entry point."""
    result = await (notifier or MonetizationNotifier()).notify_ad_confirmation(data)
    logger.debug(f"Monetization result for ad {data.ad_id}: {result.message}")
