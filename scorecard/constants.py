"""Objective kinds and lifecycle statuses."""

from enum import Enum


class ObjectiveKind(str, Enum):
    currency = "currency"
    percentage = "percentage"
    count = "count"


class ObjectiveStatus(str, Enum):
    """Lifecycle shared by assignments and qualitative objectives."""

    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    not_completed = "not_completed"


MONTH_KEY_PATTERN = r"^(0[1-9]|1[0-2])$"
