"""Scraping pipeline for marketplace deal discovery.

This package provides:
- Data structures for sources, candidate listings and session stats
- A budgeted, retrying page fetcher
- Matcher-driven HTML card extraction
- Built-in community and marketplace source definitions
- The session orchestrator (dealscout.scrapers.orchestrator)
"""

from .base import (
    CandidateListing,
    FieldMatchers,
    NormalizedListing,
    SessionStats,
    SourceConfig,
)

__all__ = [
    # Sources
    "FieldMatchers",
    "SourceConfig",
    # Data structures
    "CandidateListing",
    "NormalizedListing",
    "SessionStats",
]
