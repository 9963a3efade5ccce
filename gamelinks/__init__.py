"""Resolve owned games to Epic Games Store links."""

__version__ = "0.3.0"
