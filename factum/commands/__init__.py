"""Implementations behind the factum CLI commands."""
