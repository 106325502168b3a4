"""HTTP API for the quadvote service."""
