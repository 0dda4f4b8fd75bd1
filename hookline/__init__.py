"""Hookline — outbound webhook delivery engine."""

__version__ = "0.1.0"
