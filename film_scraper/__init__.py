"""Polite, resumable scraper that enriches a film worklist from Wikipedia, IMDb and IMSDb."""

__version__ = "0.1.0"
