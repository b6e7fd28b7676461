from enum import Enum


class ReconcileOutcome(Enum):
    """What a webhook did to the order it targeted."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    DUPLICATE = "duplicate"
    STALE = "stale"
    REJECTED = "rejected"
    UNKNOWN_STATUS = "unknown_status"
