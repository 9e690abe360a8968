"""Tests for follow-up scheduling."""

import pytest
from datetime import datetime, timedelta

from outreach_tracker.followup import (
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
from outreach_tracker.storage.models import (
    Lead,
    LeadStatus,
    OutreachEvent,
    OutreachOutcome,
    Platform,
)

NOW = datetime(2024, 3, 12, 14, 30)
TOMORROW_9AM = datetime(2024, 3, 13, 9, 0)


def make_lead(platforms, days=(), status=LeadStatus.AWAITING_REPLY, last_outcome=OutreachOutcome.SENT):
    """Build a lead whose history follows the default sequence for the given days."""
    sequence = FollowUpScheduler().sequence
    history = [
        OutreachEvent(day_number=day, platform=sequence[day], outcome=OutreachOutcome.SENT)
        for day in days
    ]
    if history:
        history[-1].outcome = last_outcome
    return Lead(id=1, platforms=set(platforms), outreach_history=history, status=status)


ALL_PLATFORMS = set(Platform)


class TestNextFollowUp:
    """Tests for next_follow_up."""

    def test_first_contact(self):
        """A new lead is due right away on Instagram."""
        lead = make_lead(ALL_PLATFORMS, status=LeadStatus.NOT_CONTACTED)
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 1
        assert decision.platform == Platform.INSTAGRAM
        assert decision.due_at == NOW
        assert decision.reason == "First contact"

    def test_first_contact_ignores_platforms(self):
        """Day 1 is always the first slot, even if the lead is not on it."""
        lead = make_lead({Platform.WHATSAPP}, status=LeadStatus.NOT_CONTACTED)
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 1
        assert decision.platform == Platform.INSTAGRAM

    def test_day_two_follow_up(self):
        """Second attempt goes to LinkedIn tomorrow at 9 AM."""
        lead = make_lead(ALL_PLATFORMS, days=[1])
        decision = next_follow_up(lead, now=NOW)

        assert decision == FollowUpDecision(
            platform=Platform.LINKEDIN,
            due_at=TOMORROW_9AM,
            day_number=2,
            reason="Day 2 follow-up"
        )

    def test_replied_stops_follow_up(self):
        """No follow-up once the lead has replied."""
        for days in ([1], [1, 2], [1, 2, 3, 4]):
            lead = make_lead(ALL_PLATFORMS, days=days, last_outcome=OutreachOutcome.REPLIED)
            assert next_follow_up(lead, now=NOW) is None

    def test_budget_exhausted(self):
        """Five attempts is the maximum."""
        lead = make_lead(ALL_PLATFORMS, days=[1, 2, 3, 4, 5])
        assert next_follow_up(lead, now=NOW) is None

    @pytest.mark.parametrize("status", [LeadStatus.IN_CONVERSATION, LeadStatus.DECLINED])
    def test_terminal_status(self, status):
        """Terminal leads are never scheduled."""
        lead = make_lead(ALL_PLATFORMS, status=status)
        assert next_follow_up(lead, now=NOW) is None

        lead = make_lead(ALL_PLATFORMS, days=[1, 2], status=status)
        assert next_follow_up(lead, now=NOW) is None

    def test_skips_unavailable_platforms(self):
        """LinkedIn and Facebook are skipped for an Instagram/Email lead."""
        lead = make_lead({Platform.INSTAGRAM, Platform.EMAIL}, days=[1])
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 4
        assert decision.platform == Platform.EMAIL
        assert decision.reason == "Day 4 follow-up"
        assert decision.due_at == TOMORROW_9AM

    def test_skips_to_final_instagram(self):
        """An Instagram-only lead jumps straight to the final slot."""
        lead = make_lead({Platform.INSTAGRAM}, days=[1])
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 5
        assert decision.platform == Platform.INSTAGRAM

    def test_linkedin_only_lead(self):
        """A LinkedIn-only lead gets day 2, then nothing."""
        lead = make_lead({Platform.LINKEDIN}, days=[1])
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 2
        assert decision.platform == Platform.LINKEDIN

        lead.outreach_history.append(record_outreach(lead, decision.platform, now=NOW))
        assert lead.outreach_history[-1].day_number == 2
        assert next_follow_up(lead, now=NOW) is None

    def test_no_usable_platform_returns_none(self):
        """A lead on none of the sequence platforms has nothing after day 1."""
        lead = make_lead({Platform.WHATSAPP}, days=[1])
        scheduler = FollowUpScheduler()

        assert scheduler.next_follow_up(lead, now=NOW) is None
        assert scheduler.is_unreachable(lead) is True
        assert scheduler.is_unreachable(make_lead({Platform.EMAIL})) is False

    def test_skipped_last_event_continues(self):
        """A stored skipped event advances the day like a sent one."""
        lead = make_lead(ALL_PLATFORMS, days=[1, 2], last_outcome=OutreachOutcome.SKIPPED)
        decision = next_follow_up(lead, now=NOW)

        assert decision.day_number == 3
        assert decision.platform == Platform.FACEBOOK

    def test_idempotent_without_new_events(self):
        """Repeated calls give the same platform and day."""
        lead = make_lead({Platform.INSTAGRAM, Platform.EMAIL}, days=[1])
        first = next_follow_up(lead, now=NOW)
        second = next_follow_up(lead, now=NOW + timedelta(hours=3))

        assert (first.platform, first.day_number) == (second.platform, second.day_number)
        assert first.due_at == second.due_at
        assert len(lead.outreach_history) == 1

    def test_due_date_relative_to_evaluation_time(self):
        """Evaluating on a later day pushes the due date forward."""
        lead = make_lead(ALL_PLATFORMS, days=[1])
        later = next_follow_up(lead, now=NOW + timedelta(days=3))

        assert later.day_number == 2
        assert later.due_at == datetime(2024, 3, 16, 9, 0)

    def test_due_date_crosses_month(self):
        """Tomorrow at 9 AM rolls over month boundaries."""
        lead = make_lead(ALL_PLATFORMS, days=[1])
        decision = next_follow_up(lead, now=datetime(2024, 2, 29, 23, 59))

        assert decision.due_at == datetime(2024, 3, 1, 9, 0)

    def test_does_not_mutate_lead(self):
        """Skipping never appends synthetic events."""
        lead = make_lead({Platform.INSTAGRAM}, days=[1])
        next_follow_up(lead, now=NOW)

        assert [e.day_number for e in lead.outreach_history] == [1]


class TestMalformedLeads:
    """Tests for precondition checks."""

    def test_non_contiguous_history(self):
        lead = Lead(id=7, platforms={Platform.INSTAGRAM}, outreach_history=[
            OutreachEvent(day_number=1, platform=Platform.INSTAGRAM),
            OutreachEvent(day_number=3, platform=Platform.FACEBOOK),
        ])

        with pytest.raises(MalformedLeadError, match="expected day 2"):
            next_follow_up(lead, now=NOW)

    def test_history_not_starting_at_one(self):
        lead = Lead(id=7, platforms={Platform.INSTAGRAM}, outreach_history=[
            OutreachEvent(day_number=2, platform=Platform.LINKEDIN),
        ])

        with pytest.raises(MalformedLeadError):
            next_follow_up(lead, now=NOW)

    def test_empty_platforms(self):
        lead = Lead(id=7, platforms=set())

        with pytest.raises(MalformedLeadError):
            next_follow_up(lead, now=NOW)

    def test_is_value_error(self):
        assert issubclass(MalformedLeadError, ValueError)


class TestRecordOutreach:
    """Tests for record_outreach."""

    def test_day_number_from_history_length(self):
        """Day number is position in history, whatever platform is passed."""
        lead = make_lead({Platform.INSTAGRAM, Platform.EMAIL}, days=[1])

        event = record_outreach(lead, Platform.WHATSAPP, now=NOW)

        assert event.day_number == 2
        assert event.platform == Platform.WHATSAPP
        assert event.outcome == OutreachOutcome.SENT
        assert event.sent_at == NOW

    def test_first_event(self):
        lead = make_lead(ALL_PLATFORMS, status=LeadStatus.NOT_CONTACTED)
        event = record_outreach(lead, Platform.INSTAGRAM, now=NOW)

        assert event.day_number == 1

    def test_does_not_append(self):
        """The caller owns the history."""
        lead = make_lead(ALL_PLATFORMS, days=[1, 2])
        record_outreach(lead, Platform.FACEBOOK, now=NOW)

        assert len(lead.outreach_history) == 2

    def test_full_run_uses_five_attempts(self):
        """Following every suggestion for an Instagram/Email lead ends after five events."""
        lead = make_lead({Platform.INSTAGRAM, Platform.EMAIL}, status=LeadStatus.NOT_CONTACTED)
        platforms = []

        decision = next_follow_up(lead, now=NOW)
        while decision is not None:
            platforms.append(decision.platform)
            lead.outreach_history.append(record_outreach(lead, decision.platform, now=NOW))
            decision = next_follow_up(lead, now=NOW)

        assert len(lead.outreach_history) == 5
        assert platforms == [
            Platform.INSTAGRAM,
            Platform.EMAIL,
            Platform.EMAIL,
            Platform.EMAIL,
            Platform.INSTAGRAM,
        ]


class TestCustomSequence:
    """Tests for a configured sequence."""

    def test_custom_sequence_and_hour(self):
        scheduler = FollowUpScheduler(
            sequence={1: Platform.EMAIL, 2: Platform.WHATSAPP},
            follow_up_hour=10
        )
        lead = Lead(id=1, platforms={Platform.EMAIL, Platform.WHATSAPP})

        first = scheduler.next_follow_up(lead, now=NOW)
        assert first.platform == Platform.EMAIL

        lead.outreach_history.append(scheduler.record_outreach(lead, first.platform, now=NOW))
        second = scheduler.next_follow_up(lead, now=NOW)
        assert second.platform == Platform.WHATSAPP
        assert second.due_at == datetime(2024, 3, 13, 10, 0)

        lead.outreach_history.append(scheduler.record_outreach(lead, second.platform, now=NOW))
        assert scheduler.next_follow_up(lead, now=NOW) is None
        assert scheduler.max_attempts == 2

    def test_rejects_gapped_sequence(self):
        with pytest.raises(ValueError):
            FollowUpScheduler(sequence={1: Platform.EMAIL, 3: Platform.WHATSAPP})

    @pytest.mark.parametrize("hour", [-1, 24, 25])
    def test_rejects_out_of_range_hour(self, hour):
        with pytest.raises(ValueError):
            FollowUpScheduler(follow_up_hour=hour)

    def test_accepts_midnight_and_last_hour(self):
        assert FollowUpScheduler(follow_up_hour=0).follow_up_hour == 0
        assert FollowUpScheduler(follow_up_hour=23).follow_up_hour == 23


class TestUrgency:
    """Tests for classify_urgency."""

    def _decision(self, due_at):
        return FollowUpDecision(platform=Platform.EMAIL, due_at=due_at, day_number=2, reason="Day 2 follow-up")

    def test_overdue(self):
        assert classify_urgency(self._decision(NOW - timedelta(days=1)), NOW) == Urgency.OVERDUE

    def test_overdue_earlier_today(self):
        assert classify_urgency(self._decision(datetime(2024, 3, 12, 9, 0)), NOW) == Urgency.OVERDUE

    def test_due_today(self):
        now = datetime(2024, 3, 12, 8, 0)
        assert classify_urgency(self._decision(datetime(2024, 3, 12, 9, 0)), now) == Urgency.DUE_TODAY

    def test_due_exactly_now_is_today(self):
        assert classify_urgency(self._decision(NOW), NOW) == Urgency.DUE_TODAY

    def test_upcoming(self):
        assert classify_urgency(self._decision(NOW + timedelta(days=3)), NOW) == Urgency.UPCOMING

    def test_none(self):
        assert classify_urgency(None, NOW) == Urgency.NONE

    def test_first_contact_is_due_today(self):
        lead = make_lead(ALL_PLATFORMS, status=LeadStatus.NOT_CONTACTED)
        assert classify_urgency(next_follow_up(lead, now=NOW), NOW) == Urgency.DUE_TODAY


class TestCountdown:
    """Tests for format_countdown and format_follow_up_date."""

    def test_overdue_days(self):
        assert format_countdown(NOW - timedelta(days=3), NOW) == "3 days overdue"

    def test_one_day_overdue_uses_calendar_days(self):
        """Two hours ago across midnight is one calendar day."""
        now = datetime(2024, 3, 12, 1, 0)
        assert format_countdown(datetime(2024, 3, 11, 23, 0), now) == "1 day overdue"

    def test_today(self):
        assert format_countdown(datetime(2024, 3, 12, 23, 0), NOW) == "Today"
        assert format_countdown(datetime(2024, 3, 12, 9, 0), NOW) == "Today"

    def test_tomorrow(self):
        """A minute to midnight still counts as one calendar day."""
        now = datetime(2024, 3, 12, 23, 59)
        assert format_countdown(TOMORROW_9AM, now) == "Tomorrow"

    def test_due_in_days(self):
        assert format_countdown(NOW + timedelta(days=3), NOW) == "Due in 3 days"

    def test_missing_date(self):
        assert format_countdown(None, NOW) == ""

    def test_follow_up_date_labels(self):
        assert format_follow_up_date(NOW, NOW) == "Today"
        assert format_follow_up_date(TOMORROW_9AM, NOW) == "Tomorrow"
        assert format_follow_up_date(datetime(2024, 3, 20, 9, 0), NOW) == "Mar 20"
        assert format_follow_up_date(None, NOW) == ""
