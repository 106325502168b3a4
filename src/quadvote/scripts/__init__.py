"""Operational entry points for the quadvote service."""
