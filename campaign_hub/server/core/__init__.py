"""Server configuration, constants and access tokens."""
