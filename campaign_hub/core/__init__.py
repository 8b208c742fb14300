"""Shared infrastructure for CampaignHub: logging, monitoring, database and I/O models."""
