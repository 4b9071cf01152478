"""Auxiliary CLI command groups."""
