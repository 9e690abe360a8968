"""Data models for lead storage."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List, Set


class Platform(Enum):
    """Communication channels a lead can be reached on."""

    INSTAGRAM = "Instagram"
    LINKEDIN = "LinkedIn"
    FACEBOOK = "Facebook"
    EMAIL = "Email"
    WHATSAPP = "WhatsApp"


class LeadStatus(Enum):
    """Status of a lead in the outreach pipeline."""

    NOT_CONTACTED = "not-contacted"
    AWAITING_REPLY = "awaiting-reply"
    IN_CONVERSATION = "in-conversation"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        """Terminal leads are never scheduled for follow-up."""
        return self in (LeadStatus.IN_CONVERSATION, LeadStatus.DECLINED)


class OutreachOutcome(Enum):
    """Result of a single outreach attempt."""

    SENT = "sent"
    REPLIED = "replied"
    SKIPPED = "skipped"


@dataclass
class OutreachEvent:
    """One attempt in a lead's outreach history."""

    day_number: int
    platform: Platform
    outcome: OutreachOutcome = OutreachOutcome.SENT
    sent_at: Optional[datetime] = None


@dataclass
class Lead:
    """A prospective client tracked for outreach."""

    id: Optional[int] = None
    profile: str = "main"
    name: Optional[str] = None
    location: Optional[str] = None
    time_zone: Optional[float] = None  # UTC offset in hours

    # Where the lead can be reached
    platforms: Set[Platform] = field(default_factory=lambda: {Platform.INSTAGRAM})
    whatsapp_no: Optional[str] = None
    instagram_url: Optional[str] = None
    facebook_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    other_urls: List[str] = field(default_factory=list)

    source: str = "manual"
    added_via: str = "manual"

    # Outreach state
    status: LeadStatus = LeadStatus.NOT_CONTACTED
    outreach_history: List[OutreachEvent] = field(default_factory=list)
    next_follow_up_platform: Optional[Platform] = None
    next_follow_up_date: Optional[datetime] = None

    # Timestamps
    added_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        """Get best available name for display."""
        return self.name or self.instagram_url or f"Lead #{self.id}"

    @property
    def contact_info(self) -> str:
        """Get primary contact info."""
        if self.whatsapp_no:
            return self.whatsapp_no
        if self.instagram_url:
            return self.instagram_url
        if self.linkedin_url:
            return self.linkedin_url
        if self.facebook_url:
            return self.facebook_url
        return "No contact"

    @property
    def last_event(self) -> Optional[OutreachEvent]:
        return self.outreach_history[-1] if self.outreach_history else None

    def platform_names(self) -> List[str]:
        """Platforms as sorted display strings."""
        return sorted(p.value for p in self.platforms)

    def local_time(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Wall-clock time at the lead's location, from its UTC offset."""
        if self.time_zone is None:
            return None
        current = (now or datetime.now()).astimezone()
        utc_now = current.astimezone(timezone.utc).replace(tzinfo=None)
        return utc_now + timedelta(hours=self.time_zone)
