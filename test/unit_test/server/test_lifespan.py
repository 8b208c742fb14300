"""
Unit tests for FastAPI application lifespan management.

Tests verify that startup initializes the database and schedules the
impression sweeper, and that shutdown stops it.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI

from campaign_hub.server.main import app, lifespan


@pytest.mark.asyncio
class TestLifespan:
    """Test application startup and shutdown."""

    async def test_startup_and_shutdown(self):
        sweeper = MagicMock(name="sweeper-task")

        with (
            patch("campaign_hub.server.main.init_db", new_callable=AsyncMock) as mock_init_db,
            patch("campaign_hub.server.main.start_impression_sweeper", return_value=sweeper) as mock_start,
            patch("campaign_hub.server.main.stop_impression_sweeper", new_callable=AsyncMock) as mock_stop,
        ):
            async with lifespan(FastAPI()):
                mock_init_db.assert_awaited_once()
                mock_start.assert_called_once()
                mock_stop.assert_not_awaited()

        mock_stop.assert_awaited_once_with(sweeper)

    async def test_sweeper_uses_configured_interval(self):
        with (
            patch("campaign_hub.server.main.init_db", new_callable=AsyncMock),
            patch("campaign_hub.server.main.start_impression_sweeper", return_value=None) as mock_start,
            patch("campaign_hub.server.main.stop_impression_sweeper", new_callable=AsyncMock),
            patch("campaign_hub.server.main.settings") as mock_settings,
        ):
            mock_settings.serving.impression_sweep_interval_seconds = 45
            async with lifespan(FastAPI()):
                pass

        assert mock_start.call_args[0][1] == 45

    async def test_database_failure_does_not_block_startup(self):
        with (
            patch("campaign_hub.server.main.init_db", new_callable=AsyncMock, side_effect=OSError("no db")),
            patch("campaign_hub.server.main.start_impression_sweeper", return_value=None),
            patch("campaign_hub.server.main.stop_impression_sweeper", new_callable=AsyncMock) as mock_stop,
            patch("campaign_hub.server.main.logger") as mock_logger,
        ):
            async with lifespan(FastAPI()):
                pass

        assert "Database initialization failed" in mock_logger.error.call_args[0][0]
        mock_stop.assert_awaited_once_with(None)


class TestApplication:
    """Test the assembled application."""

    def test_routes_are_mounted(self):
        # Included routers may appear as entries without a path of their own.
        paths = {getattr(route, "path", None) for route in app.routes} | set(app.openapi()["paths"])

        assert "/health" in paths
        assert "/api/v1/auth/sso" in paths
        assert "/api/v1/auth/google" in paths
        assert "/api/v1/ad/serve" in paths
        assert "/api/v1/impression/confirm" in paths
        assert "/api/v1/teams/{team_id}/campaigns/{campaign_id}/ads" in paths
        assert "/api/v1/teams/{team_id}/analytics" in paths
