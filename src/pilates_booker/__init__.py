"""Pilates class booking bot (09:30 class, +7 days, KST)."""

__version__ = "0.1.0"
