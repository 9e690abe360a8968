"""Storage layer for leads database."""

from .models import Lead, LeadStatus, OutreachEvent, OutreachOutcome, Platform
from .database import LeadDatabase, LeadNotFoundError

__all__ = [
    "LeadDatabase",
    "LeadNotFoundError",
    "Lead",
    "LeadStatus",
    "OutreachEvent",
    "OutreachOutcome",
    "Platform",
]
