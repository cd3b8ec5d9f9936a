"""Foldera conflict detection core."""
__version__ = "0.4.0"
