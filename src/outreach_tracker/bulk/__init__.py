"""Bulk operations for leads."""

from .importer import BulkImporter, parse_profile

__all__ = ["BulkImporter", "parse_profile"]
