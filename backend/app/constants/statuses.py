"""Status and type vocabularies stored as plain strings in the database."""

from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    REQUESTED = "Requested"
    ACCEPTED = "Accepted"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    DENIED = "Denied"
    NO_SHOW = "NoShow"
    COMPLETED = "Completed"


# Only these statuses hold a slot; cancelled or denied sessions free it again.
OCCUPYING_STATUSES = (
    SessionStatus.REQUESTED.value,
    SessionStatus.ACCEPTED.value,
    SessionStatus.PAID.value,
)


class ReceiptType(str, Enum):
    EARNED = "Earned"
    SPENT = "Spent"
    ADJUSTMENT = "Adjustment"


# Receipt types that count toward a user's total.
TOTAL_RECEIPT_TYPES = (ReceiptType.EARNED.value, ReceiptType.ADJUSTMENT.value)


class LeaderboardMode(str, Enum):
    CURRENT = "Current"
    TOTAL = "Total"


class LeaderboardTimeFilter(str, Enum):
    ALL_TIME = "AllTime"
    THIS_MONTH = "ThisMonth"
    LAST_30_DAYS = "Last30Days"
    LAST_MONTH = "LastMonth"
