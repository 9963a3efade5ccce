"""Scrapers for the Epic Games Store and Google Lens."""
