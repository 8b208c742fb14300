"""
Application services.

Each service wraps one area of the management API (auth, users, teams,
wallet, campaigns, ads, analytics) or the impression lifecycle, and owns the
unit of work: repositories only flush, services commit.
"""
