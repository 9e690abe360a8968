"""Outreach Tracker - follow-up scheduling for prospective clients."""

__version__ = "1.0.0"
