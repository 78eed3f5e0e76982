"""Canonical locations: resolution, master-list import and maintenance."""
