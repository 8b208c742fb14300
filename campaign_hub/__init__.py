"""CampaignHub.

This package contains the backend of a multi-tenant advertising platform:
users organize into teams, teams run campaigns, campaigns contain ads, and a
per-user wallet funds campaign budgets.

High-level architecture
-----------------------

The codebase is organized around two concerns:

- **Management** (authenticated): teams and their role/permission model,
  campaigns and ads with budget allocation, wallets and their transaction
  ledger, and analytics over confirmed impressions.
- **Serving** (public): selecting the best ad for a video context, reserving
  an impression behind a signed token, and billing the impression once the
  player confirms it was served.

Core subpackages
----------------

- ``campaign_hub.core``: logging, monitoring, database layer (entities and
  repositories) and the API I/O models.
- ``campaign_hub.serving``: the ad scoring, budget accounting, impression
  token and client fingerprinting primitives used by the serving endpoints.
- ``campaign_hub.server``: the FastAPI application, its routers, services,
  middleware and exception handlers.
"""
