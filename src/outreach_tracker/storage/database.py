"""SQLite database for leads and their outreach history."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Generator

from .models import Lead, LeadStatus, OutreachEvent, OutreachOutcome, Platform
from ..followup.scheduler import FollowUpScheduler, Urgency, classify_urgency

logger = logging.getLogger(__name__)


class LeadNotFoundError(LookupError):
    """No lead with the requested id."""


class LeadDatabase:
    """SQLite database for storing leads and recording outreach."""

    def __init__(self, db_path: Optional[Path] = None, scheduler: Optional[FollowUpScheduler] = None):
        """Initialize database connection."""
        if db_path is None:
            db_path = Path.home() / ".outreach-tracker" / "leads.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.scheduler = scheduler or FollowUpScheduler()

        self._init_db()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS leads (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    profile TEXT NOT NULL DEFAULT 'main',

                    name TEXT,
                    location TEXT,
                    time_zone REAL,

                    platforms_json TEXT NOT NULL,
                    whatsapp_no TEXT,
                    instagram_url TEXT,
                    facebook_url TEXT,
                    linkedin_url TEXT,
                    other_urls_json TEXT,

                    source TEXT DEFAULT 'manual',
                    added_via TEXT DEFAULT 'manual',

                    status TEXT DEFAULT 'not-contacted',
                    next_follow_up_platform TEXT,
                    next_follow_up_date TIMESTAMP,

                    added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS outreach_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    lead_id INTEGER NOT NULL,
                    day_number INTEGER NOT NULL,
                    platform TEXT NOT NULL,
                    outcome TEXT NOT NULL,
                    sent_at TIMESTAMP,

                    UNIQUE(lead_id, day_number),
                    FOREIGN KEY (lead_id) REFERENCES leads(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_leads_profile_status ON leads(profile, status)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_lead ON outreach_events(lead_id, day_number)
            """)

    def _row_to_lead(self, row: sqlite3.Row, events: List[sqlite3.Row]) -> Lead:
        """Convert a database row and its event rows to a Lead object."""
        return Lead(
            id=row["id"],
            profile=row["profile"],
            name=row["name"],
            location=row["location"],
            time_zone=row["time_zone"],
            platforms={Platform(p) for p in json.loads(row["platforms_json"])},
            whatsapp_no=row["whatsapp_no"],
            instagram_url=row["instagram_url"],
            facebook_url=row["facebook_url"],
            linkedin_url=row["linkedin_url"],
            other_urls=json.loads(row["other_urls_json"]) if row["other_urls_json"] else [],
            source=row["source"] or "manual",
            added_via=row["added_via"] or "manual",
            status=LeadStatus(row["status"]) if row["status"] else LeadStatus.NOT_CONTACTED,
            outreach_history=[
                OutreachEvent(
                    day_number=e["day_number"],
                    platform=Platform(e["platform"]),
                    outcome=OutreachOutcome(e["outcome"]),
                    sent_at=datetime.fromisoformat(e["sent_at"]) if e["sent_at"] else None,
                )
                for e in events
            ],
            next_follow_up_platform=(
                Platform(row["next_follow_up_platform"]) if row["next_follow_up_platform"] else None
            ),
            next_follow_up_date=(
                datetime.fromisoformat(row["next_follow_up_date"]) if row["next_follow_up_date"] else None
            ),
            added_at=datetime.fromisoformat(row["added_at"]) if row["added_at"] else datetime.now(),
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else datetime.now(),
        )

    def _fetch_lead(self, cursor: sqlite3.Cursor, lead_id: int) -> Optional[Lead]:
        cursor.execute("SELECT * FROM leads WHERE id = ?", (lead_id,))
        row = cursor.fetchone()
        if not row:
            return None
        cursor.execute(
            "SELECT * FROM outreach_events WHERE lead_id = ? ORDER BY day_number",
            (lead_id,)
        )
        return self._row_to_lead(row, cursor.fetchall())

    def _require_lead(self, cursor: sqlite3.Cursor, lead_id: int) -> Lead:
        lead = self._fetch_lead(cursor, lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead #{lead_id} not found")
        return lead

    def _store_follow_up(self, cursor: sqlite3.Cursor, lead: Lead, now: datetime):
        """Recompute and save the next follow-up fields for a lead."""
        decision = self.scheduler.next_follow_up(lead, now)
        lead.next_follow_up_platform = decision.platform if decision else None
        lead.next_follow_up_date = decision.due_at if decision else None
        lead.updated_at = now

        cursor.execute("""
            UPDATE leads SET
                status = ?, next_follow_up_platform = ?, next_follow_up_date = ?, updated_at = ?
            WHERE id = ?
        """, (
            lead.status.value,
            lead.next_follow_up_platform.value if lead.next_follow_up_platform else None,
            lead.next_follow_up_date.isoformat() if lead.next_follow_up_date else None,
            lead.updated_at.isoformat(),
            lead.id,
        ))

    # === CRUD OPERATIONS ===

    def add_lead(self, lead: Lead, now: Optional[datetime] = None) -> Lead:
        """Insert a new lead and schedule its first contact."""
        now = now or datetime.now()
        self.scheduler.validate(lead)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO leads (
                    profile, name, location, time_zone,
                    platforms_json, whatsapp_no, instagram_url, facebook_url, linkedin_url,
                    other_urls_json, source, added_via, status, added_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                lead.profile,
                lead.name,
                lead.location,
                lead.time_zone,
                json.dumps(lead.platform_names()),
                lead.whatsapp_no,
                lead.instagram_url,
                lead.facebook_url,
                lead.linkedin_url,
                json.dumps(lead.other_urls) if lead.other_urls else None,
                lead.source,
                lead.added_via,
                lead.status.value,
                lead.added_at.isoformat(),
                now.isoformat(),
            ))
            lead.id = cursor.lastrowid

            for event in lead.outreach_history:
                self._insert_event(cursor, lead.id, event)

            self._store_follow_up(cursor, lead, now)

        logger.info(f"Added lead #{lead.id} ({lead.display_name}) to profile '{lead.profile}'")
        return lead

    def _insert_event(self, cursor: sqlite3.Cursor, lead_id: int, event: OutreachEvent):
        cursor.execute("""
            INSERT INTO outreach_events (lead_id, day_number, platform, outcome, sent_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            lead_id,
            event.day_number,
            event.platform.value,
            event.outcome.value,
            event.sent_at.isoformat() if event.sent_at else None,
        ))

    def get_lead(self, lead_id: int) -> Optional[Lead]:
        """Get a lead by ID."""
        with self._get_connection() as conn:
            return self._fetch_lead(conn.cursor(), lead_id)

    def update_lead(self, lead: Lead) -> Lead:
        """Update a lead's descriptive fields and reschedule against its platforms."""
        self.scheduler.validate(lead)
        lead.updated_at = datetime.now()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute("""
                UPDATE leads SET
                    name = ?, location = ?, time_zone = ?, platforms_json = ?,
                    whatsapp_no = ?, instagram_url = ?, facebook_url = ?, linkedin_url = ?,
                    other_urls_json = ?, source = ?, updated_at = ?
                WHERE id = ?
            """, (
                lead.name, lead.location, lead.time_zone, json.dumps(lead.platform_names()),
                lead.whatsapp_no, lead.instagram_url, lead.facebook_url, lead.linkedin_url,
                json.dumps(lead.other_urls) if lead.other_urls else None,
                lead.source,
                lead.updated_at.isoformat(),
                lead.id
            ))
            self._store_follow_up(cursor, lead, lead.updated_at)

        return lead

    def delete_lead(self, lead_id: int) -> bool:
        """Delete a lead and its outreach history."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM outreach_events WHERE lead_id = ?", (lead_id,))
            cursor.execute("DELETE FROM leads WHERE id = ?", (lead_id,))
            return cursor.rowcount > 0

    # === OUTREACH ===

    def record_outreach(
        self,
        lead_id: int,
        platform: Optional[Platform] = None,
        now: Optional[datetime] = None
    ) -> OutreachEvent:
        """Record an outreach sent to a lead.

        Defaults to the suggested platform. The read-append-write runs in an
        IMMEDIATE transaction so concurrent recordings for the same lead are
        serialized and never share a day number.
        """
        now = now or datetime.now()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            lead = self._require_lead(cursor, lead_id)

            if platform is None:
                decision = self.scheduler.next_follow_up(lead, now)
                if decision is None:
                    raise ValueError(f"Lead #{lead_id} has no follow-up due; pass a platform explicitly")
                platform = decision.platform

            event = self.scheduler.record_outreach(lead, platform, now)
            self._insert_event(cursor, lead_id, event)
            lead.outreach_history.append(event)

            if lead.status == LeadStatus.NOT_CONTACTED:
                lead.status = LeadStatus.AWAITING_REPLY
            self._store_follow_up(cursor, lead, now)

        logger.info(f"Recorded day {event.day_number} outreach to lead #{lead_id} via {platform.value}")
        return event

    def record_reply(self, lead_id: int, now: Optional[datetime] = None) -> Lead:
        """Mark the latest outreach as replied and move the lead into conversation."""
        now = now or datetime.now()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            lead = self._require_lead(cursor, lead_id)

            last = lead.last_event
            if last is not None:
                last.outcome = OutreachOutcome.REPLIED
                cursor.execute(
                    "UPDATE outreach_events SET outcome = ? WHERE lead_id = ? AND day_number = ?",
                    (OutreachOutcome.REPLIED.value, lead_id, last.day_number)
                )

            lead.status = LeadStatus.IN_CONVERSATION
            self._store_follow_up(cursor, lead, now)

        logger.info(f"Lead #{lead_id} replied")
        return lead

    def set_status(self, lead_id: int, status: LeadStatus, now: Optional[datetime] = None) -> Lead:
        """Move a lead to a new status and reschedule accordingly."""
        now = now or datetime.now()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            lead = self._require_lead(cursor, lead_id)
            previous = lead.status
            lead.status = status
            self._store_follow_up(cursor, lead, now)

        logger.info(f"Lead #{lead_id} moved from {previous.value} to {status.value}")
        return lead

    def refresh_follow_up(self, lead_id: int, now: Optional[datetime] = None) -> Lead:
        """Re-evaluate the stored next follow-up against the current time."""
        now = now or datetime.now()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            lead = self._require_lead(cursor, lead_id)
            self._store_follow_up(cursor, lead, now)
            return lead

    # === QUERIES ===

    def get_leads(
        self,
        profile: Optional[str] = None,
        status: Optional[LeadStatus] = None,
        limit: int = 1000,
        offset: int = 0
    ) -> List[Lead]:
        """Get leads with optional filters."""
        query = "SELECT * FROM leads WHERE 1=1"
        params: List[Any] = []

        if profile:
            query += " AND profile = ?"
            params.append(profile)

        if status:
            query += " AND status = ?"
            params.append(status.value)

        query += " ORDER BY added_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()

            leads = []
            for row in rows:
                cursor.execute(
                    "SELECT * FROM outreach_events WHERE lead_id = ? ORDER BY day_number",
                    (row["id"],)
                )
                leads.append(self._row_to_lead(row, cursor.fetchall()))
            return leads

    def get_status_board(self, profile: Optional[str] = None) -> Dict[LeadStatus, List[Lead]]:
        """Leads grouped by status."""
        board: Dict[LeadStatus, List[Lead]] = {status: [] for status in LeadStatus}
        for lead in self.get_leads(profile=profile):
            board[lead.status].append(lead)
        return board

    def get_follow_up_queue(
        self,
        profile: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Non-terminal leads bucketed by follow-up urgency.

        Keys are the Urgency values plus ``unreachable`` for leads none of
        whose platforms appear in the sequence. Each entry holds the lead
        and its decision (None in the ``none`` and ``unreachable`` buckets).
        Follow-up due dates come from the stored ``next_follow_up_date``,
        the date fixed when the last outreach was recorded, so missed
        follow-ups show up as overdue. A first contact is due from the
        moment of evaluation and so always counts as due today.
        """
        now = now or datetime.now()
        queue: Dict[str, List[Dict[str, Any]]] = {u.value: [] for u in Urgency}
        queue["unreachable"] = []

        for lead in self.get_leads(profile=profile):
            if lead.status.is_terminal:
                continue

            decision = self.scheduler.next_follow_up(lead, now)
            if decision is not None and decision.day_number > 1 and lead.next_follow_up_date is not None:
                decision = replace(decision, due_at=lead.next_follow_up_date)

            if decision is None and self.scheduler.is_unreachable(lead):
                bucket = "unreachable"
            else:
                bucket = classify_urgency(decision, now).value
            queue[bucket].append({"lead": lead, "decision": decision})

        for entries in queue.values():
            entries.sort(key=lambda e: e["decision"].due_at if e["decision"] else now)
        return queue
