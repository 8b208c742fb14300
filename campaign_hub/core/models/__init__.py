"""Models shared across CampaignHub: domain enums (``domain``) and API schemas (``io``)."""
