"""Maintenance commands for the bundled word data."""
