"""Operational commands (seeding, admin bootstrap)."""
