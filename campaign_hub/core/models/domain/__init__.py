"""Domain-level models (enums) shared across the database layer and the API."""

from .enums import (
    EVENT_ACTIONS,
    AdStatus,
    CampaignStatus,
    DeviceType,
    ImpressionAction,
    ImpressionEvent,
    ImpressionStatus,
    OsType,
    PaymentMethod,
    Permission,
    TeamRole,
    TransactionStatus,
    TransactionType,
    UserRole,
)

__all__ = [
    "EVENT_ACTIONS",
    "AdStatus",
    "CampaignStatus",
    "DeviceType",
    "ImpressionAction",
    "ImpressionEvent",
    "ImpressionStatus",
    "OsType",
    "PaymentMethod",
    "Permission",
    "TeamRole",
    "TransactionStatus",
    "TransactionType",
    "UserRole",
]
