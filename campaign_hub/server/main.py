"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request tracing), registers exception handlers and includes all API routers.
It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campaign_hub.core.database import async_session_maker, init_db
from campaign_hub.core.logging_config import get_logger, setup_logging
from campaign_hub.core.monitoring import initialize_logfire

from .api.v1 import ads, analytics, auth, campaigns, health, serving, teams, users, wallet
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware
from .services.housekeeping import start_impression_sweeper, stop_impression_sweeper

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Initializes the database on startup and runs the stale-impression sweeper
    until shutdown.
    """
    # Startup
    try:
        logger.info("Starting up CampaignHub Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    sweeper = start_impression_sweeper(async_session_maker, settings.serving.impression_sweep_interval_seconds)

    yield

    # Shutdown
    logger.info("Shutting down CampaignHub Server...")
    await stop_impression_sweeper(sweeper)


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    CampaignHub Server API

    Video advertising for VideoStreamPro: teams fund campaigns from their wallets,
    video players request ads in real time, and confirmed impressions are billed
    against campaign and ad budgets.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Set all CORS enabled origins
cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(LogfireMiddleware)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=f"{constant.API_V1_STR}/auth")
app.include_router(users.router, prefix=f"{constant.API_V1_STR}/users")
app.include_router(wallet.router, prefix=f"{constant.API_V1_STR}/wallet")
app.include_router(teams.router, prefix=f"{constant.API_V1_STR}/teams")
app.include_router(campaigns.router, prefix=f"{constant.API_V1_STR}/teams")
app.include_router(ads.router, prefix=f"{constant.API_V1_STR}/teams")
app.include_router(analytics.router, prefix=f"{constant.API_V1_STR}/teams")
app.include_router(serving.ad_router, prefix=f"{constant.API_V1_STR}/ad")
app.include_router(serving.impression_router, prefix=f"{constant.API_V1_STR}/impression")
