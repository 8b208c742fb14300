"""Version 1 of the CampaignHub HTTP API."""
