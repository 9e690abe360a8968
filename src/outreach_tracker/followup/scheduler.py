"""Follow-up scheduling: which platform to use next, and when.

A lead is worked through a fixed sequence of daily slots, each naming a
preferred platform. Slots whose platform the lead is not on are skipped.
Once the sequence runs out, the lead replies, or the lead moves to a
terminal status, there is nothing left to schedule.

Due dates are computed relative to the moment of evaluation ("tomorrow at
9 AM from now"), not from the date of the last contact. Re-evaluating the
same lead on a later day moves ``due_at`` forward while the platform and
day number stay put until a new event is recorded.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

from ..storage.models import Lead, OutreachEvent, OutreachOutcome, Platform

logger = logging.getLogger(__name__)

# Slot (1-based day number) -> preferred platform. The length is the attempt budget.
DEFAULT_SEQUENCE: Dict[int, Platform] = {
    1: Platform.INSTAGRAM,
    2: Platform.LINKEDIN,
    3: Platform.FACEBOOK,
    4: Platform.EMAIL,
    5: Platform.INSTAGRAM,  # final attempt cycles back
}

DEFAULT_FOLLOW_UP_HOUR = 9


def validate_sequence(sequence: Dict[int, Platform]) -> Dict[int, Platform]:
    """Check that slots run 1..n without gaps."""
    if not sequence:
        raise ValueError("Follow-up sequence must have at least one slot")
    if sorted(sequence) != list(range(1, len(sequence) + 1)):
        raise ValueError(f"Sequence slots must be contiguous from 1, got {sorted(sequence)}")
    return dict(sorted(sequence.items()))


def validate_hour(hour: int) -> int:
    """Check that a follow-up hour is a valid hour of day."""
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise ValueError(f"Hour must be between 0 and 23, got {hour!r}")
    return hour


class MalformedLeadError(ValueError):
    """A lead record violates the scheduler's preconditions."""


class Urgency(Enum):
    """Display bucket for a follow-up decision."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"
    NONE = "none"  # no follow-up left: max attempts reached or terminal status


@dataclass(frozen=True)
class FollowUpDecision:
    """The next follow-up to perform for a lead."""

    platform: Platform
    due_at: datetime
    day_number: int
    reason: str


class FollowUpScheduler:
    """Compute follow-up decisions against a platform sequence."""

    def __init__(
        self,
        sequence: Optional[Dict[int, Platform]] = None,
        follow_up_hour: int = DEFAULT_FOLLOW_UP_HOUR
    ):
        self.sequence = validate_sequence(sequence or DEFAULT_SEQUENCE)
        self.follow_up_hour = validate_hour(follow_up_hour)

    @classmethod
    def from_config(cls, config) -> "FollowUpScheduler":
        """Build a scheduler from an OutreachConfig."""
        return cls(sequence=config.sequence, follow_up_hour=config.follow_up_hour)

    @property
    def max_attempts(self) -> int:
        return len(self.sequence)

    def validate(self, lead: Lead):
        """Raise MalformedLeadError if the lead cannot be scheduled."""
        if not lead.platforms:
            raise MalformedLeadError(f"Lead {lead.id} has no platforms")

        for expected, event in enumerate(lead.outreach_history, start=1):
            if event.day_number != expected:
                raise MalformedLeadError(
                    f"Lead {lead.id} history is not contiguous: "
                    f"expected day {expected}, found day {event.day_number}"
                )

    def next_follow_up(self, lead: Lead, now: Optional[datetime] = None) -> Optional[FollowUpDecision]:
        """Decide the next platform and due date, or None if nothing is due."""
        self.validate(lead)
        now = now or datetime.now()

        if lead.status.is_terminal:
            return None

        last = lead.last_event
        if last is None:
            return FollowUpDecision(
                platform=self.sequence[1],
                due_at=now,
                day_number=1,
                reason="First contact"
            )

        if last.outcome == OutreachOutcome.REPLIED:
            return None

        for day in range(last.day_number + 1, self.max_attempts + 1):
            platform = self.sequence[day]
            if platform not in lead.platforms:
                logger.debug(f"Lead {lead.id}: skipping day {day}, not on {platform.value}")
                continue

            return FollowUpDecision(
                platform=platform,
                due_at=self.tomorrow_at_hour(now),
                day_number=day,
                reason=f"Day {day} follow-up"
            )

        return None

    def record_outreach(
        self,
        lead: Lead,
        platform: Platform,
        now: Optional[datetime] = None
    ) -> OutreachEvent:
        """Build the event for an outreach just sent on ``platform``.

        The day number comes from the history length; the caller appends
        the event and persists it. Any platform is accepted, so users can
        override the suggestion.
        """
        return OutreachEvent(
            day_number=len(lead.outreach_history) + 1,
            platform=platform,
            outcome=OutreachOutcome.SENT,
            sent_at=now or datetime.now()
        )

    def is_unreachable(self, lead: Lead) -> bool:
        """True when none of the lead's platforms appears in the sequence."""
        return not set(self.sequence.values()) & set(lead.platforms)

    def tomorrow_at_hour(self, now: datetime) -> datetime:
        """The calendar day after ``now`` at the follow-up hour."""
        tomorrow = now + timedelta(days=1)
        return tomorrow.replace(hour=self.follow_up_hour, minute=0, second=0, microsecond=0)


def classify_urgency(decision: Optional[FollowUpDecision], now: Optional[datetime] = None) -> Urgency:
    """Bucket a decision as overdue, due today, or upcoming."""
    if decision is None or decision.due_at is None:
        return Urgency.NONE

    now = now or datetime.now()
    if decision.due_at < now:
        return Urgency.OVERDUE
    if decision.due_at.date() == now.date():
        return Urgency.DUE_TODAY
    return Urgency.UPCOMING


def days_until(due_at: datetime, now: Optional[datetime] = None) -> int:
    """Calendar days from now to due_at (negative when past)."""
    return (due_at.date() - (now or datetime.now()).date()).days


def format_countdown(due_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human-readable countdown to a due date."""
    if due_at is None:
        return ""

    days = days_until(due_at, now)
    if days < 0:
        overdue = abs(days)
        return f"{overdue} day{'s' if overdue != 1 else ''} overdue"
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    return f"Due in {days} days"


def format_follow_up_date(due_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Short date label: Today, Tomorrow, or e.g. 'Oct 18'."""
    if due_at is None:
        return ""

    days = days_until(due_at, now)
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    return f"{due_at.strftime('%b')} {due_at.day}"


_default_scheduler = FollowUpScheduler()


def next_follow_up(lead: Lead, now: Optional[datetime] = None) -> Optional[FollowUpDecision]:
    """Next follow-up for a lead using the default sequence."""
    return _default_scheduler.next_follow_up(lead, now)


def record_outreach(lead: Lead, platform: Platform, now: Optional[datetime] = None) -> OutreachEvent:
    """Outreach event for a lead using the default sequence."""
    return _default_scheduler.record_outreach(lead, platform, now)
