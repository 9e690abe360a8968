"""Follow-up scheduling for lead outreach."""

from .config import OutreachConfig, ConfigManager
from .scheduler import (
    DEFAULT_SEQUENCE,
    FollowUpScheduler,
    FollowUpDecision,
    MalformedLeadError,
    Urgency,
    classify_urgency,
    format_countdown,
    format_follow_up_date,
    next_follow_up,
    record_outreach,
)

__all__ = [
    "OutreachConfig",
    "ConfigManager",
    "DEFAULT_SEQUENCE",
    "FollowUpScheduler",
    "FollowUpDecision",
    "MalformedLeadError",
    "Urgency",
    "classify_urgency",
    "format_countdown",
    "format_follow_up_date",
    "next_follow_up",
    "record_outreach",
]
