"""Domain enums shared by entities, I/O models and services."""

from __future__ import annotations

from enum import Enum


class CampaignStatus(str, Enum):
    """Lifecycle status of a campaign."""

    draft = "draft"
    active = "active"
    paused = "paused"
    completed = "completed"  # Terminal.
    cancelled = "cancelled"  # Terminal.


class AdStatus(str, Enum):
    """Lifecycle status of an ad. Only ``active`` ads are eligible for serving."""

    draft = "draft"
    active = "active"
    paused = "paused"
    completed = "completed"
    rejected = "rejected"
    under_review = "under_review"


class ImpressionStatus(str, Enum):
    """
    Lifecycle status of an ad impression.

    An impression is ``reserved`` when the ad is selected, becomes ``confirmed``
    once the player reports it was served (and it is billed), or ends as
    ``expired``/``cancelled`` without being billed.
    """

    reserved = "reserved"
    served = "served"
    confirmed = "confirmed"
    expired = "expired"
    cancelled = "cancelled"


class ImpressionAction(str, Enum):
    """Last viewer interaction recorded on an impression."""

    view = "view"
    click = "click"
    skip = "skip"
    complete = "complete"
    pause = "pause"
    resume = "resume"
    mute = "mute"
    unmute = "unmute"


class ImpressionEvent(str, Enum):
    """Events a player can report for an impression."""

    served = "served"  # The only billing event.
    clicked = "clicked"
    completed = "completed"
    skipped = "skipped"


EVENT_ACTIONS = {
    ImpressionEvent.served: ImpressionAction.view,
    ImpressionEvent.clicked: ImpressionAction.click,
    ImpressionEvent.completed: ImpressionAction.complete,
    ImpressionEvent.skipped: ImpressionAction.skip,
}


class DeviceType(str, Enum):
    desktop = "desktop"
    mobile = "mobile"
    tablet = "tablet"
    tv = "tv"
    unknown = "unknown"


class OsType(str, Enum):
    windows = "windows"
    macos = "macos"
    linux = "linux"
    ios = "ios"
    android = "android"
    tvos = "tvos"
    unknown = "unknown"


class TeamRole(str, Enum):
    """Role of a user inside a team."""

    owner = "owner"
    admin = "admin"
    member = "member"
    viewer = "viewer"


class Permission(str, Enum):
    """Fine-grained team permissions."""

    create_campaign = "create_campaign"
    edit_campaign = "edit_campaign"
    delete_campaign = "delete_campaign"
    view_campaign = "view_campaign"
    create_ad = "create_ad"
    edit_ad = "edit_ad"
    delete_ad = "delete_ad"
    view_ad = "view_ad"
    manage_team = "manage_team"
    view_analytics = "view_analytics"


class TransactionType(str, Enum):
    credit = "credit"
    debit = "debit"


class TransactionStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"
    refunded = "refunded"


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    debit_card = "debit_card"
    bank_transfer = "bank_transfer"
    paypal = "paypal"
    stripe = "stripe"
    razorpay = "razorpay"
    wallet = "wallet"
    manual = "manual"


class UserRole(str, Enum):
    user = "user"
    admin = "admin"
