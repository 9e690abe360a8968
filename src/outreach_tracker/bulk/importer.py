"""Bulk import of leads scraped by the browser extension."""

import json
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any, Union
from pathlib import Path

from ..storage import LeadDatabase
from ..storage.models import Lead, LeadStatus, Platform

logger = logging.getLogger(__name__)


def _first_link(search: Optional[Dict[str, Any]]) -> str:
    """First result link from a LinkedIn/Facebook search block."""
    if not search:
        return ""
    items = search.get("items") or []
    return items[0].get("link", "") if items else ""


def parse_profile(entry: Dict[str, Any], profile: str = "main", now: Optional[datetime] = None) -> Lead:
    """Turn one extension profile into a Lead.

    Expects format:
    {"instagram": {"name": ..., "url": ..., "platforms": [...], ...},
     "linkedin": {"items": [{"link": ...}]},
     "facebook": {"items": [{"link": ...}]}}
    """
    instagram = entry.get("instagram") or {}
    name = instagram.get("name") or instagram.get("username")
    if not name:
        raise ValueError("Missing required field (instagram.name)")

    platforms = {Platform(p) for p in instagram.get("platforms") or ["Instagram"]}
    now = now or datetime.now()

    return Lead(
        profile=profile,
        name=name,
        location=instagram.get("location"),
        platforms=platforms,
        instagram_url=instagram.get("url") or instagram.get("profileUrl"),
        linkedin_url=_first_link(entry.get("linkedin")) or instagram.get("linkedinUrl") or None,
        facebook_url=_first_link(entry.get("facebook")) or instagram.get("facebookUrl") or None,
        other_urls=list(instagram.get("otherUrls") or []),
        source="Instagram",
        added_via="bulk",
        status=LeadStatus.NOT_CONTACTED,
        added_at=now,
        updated_at=now,
    )


class BulkImporter:
    """Import leads from extension exports."""

    def __init__(self, db: LeadDatabase):
        """Initialize importer."""
        self.db = db

    def import_profiles(
        self,
        payload: Union[List[Dict[str, Any]], Dict[str, Any]],
        profile: str = "main",
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Import a list of extension profiles (or {"profiles": [...]})."""
        results = {
            "imported": 0,
            "errors": 0,
            "error_details": [],
            "lead_ids": []
        }

        if isinstance(payload, dict):
            payload = payload.get("profiles", [])

        if not isinstance(payload, list):
            results["file_error"] = f"Expected a list of profiles, got {type(payload).__name__}"
            logger.error(f"Bulk import into '{profile}' rejected: {results['file_error']}")
            return results

        for index, entry in enumerate(payload):
            try:
                lead = parse_profile(entry, profile=profile, now=now)
                self.db.add_lead(lead, now=now)
                results["imported"] += 1
                results["lead_ids"].append(lead.id)
            except (ValueError, AttributeError) as e:
                results["errors"] += 1
                results["error_details"].append({
                    "index": index,
                    "error": str(e)
                })

        logger.info(
            f"Bulk import into '{profile}': {results['imported']} imported, {results['errors']} errors"
        )
        return results

    def import_json(self, file_path: Union[str, Path], profile: str = "main") -> Dict[str, Any]:
        """Import profiles from an extension JSON export file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading JSON file: {e}")
            return {
                "imported": 0,
                "errors": 0,
                "error_details": [],
                "lead_ids": [],
                "file_error": str(e)
            }

        return self.import_profiles(payload, profile=profile)
