"""Scraper utilities for pacing, retries, headers, and data normalization."""

from .pacing import HumanPacer
from .user_agents import (
    get_random_user_agent,
    build_browser_headers,
    USER_AGENTS,
)
from .normalizer import (
    PriceNormalizer,
    CategoryClassifier,
    OTHER_CATEGORY,
    compute_discount,
    extract_item_id,
    clean_item_id,
    synthetic_listing_id,
    absolutize_url,
    clean_text,
)
from .retry import linear_retrying, RETRYABLE_ERRORS


__all__ = [
    # Pacing
    "HumanPacer",
    # User agents
    "get_random_user_agent",
    "build_browser_headers",
    "USER_AGENTS",
    # Normalization
    "PriceNormalizer",
    "CategoryClassifier",
    "OTHER_CATEGORY",
    "compute_discount",
    "extract_item_id",
    "clean_item_id",
    "synthetic_listing_id",
    "absolutize_url",
    "clean_text",
    # Retry
    "linear_retrying",
    "RETRYABLE_ERRORS",
]
