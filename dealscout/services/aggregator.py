"""Cross-source merge: dedupe, quality filter, rank, truncate."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

import structlog

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import NormalizedListing

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 20


@dataclass(frozen=True)
class QualityThresholds:
    """Hard constraints a listing must meet to be published. Bounds are inclusive."""

    min_price: Decimal = Decimal("20")
    max_price: Decimal = Decimal("3000")
    min_popularity: int = 5
    min_discount: int = 10
    min_title_length: int = 10
    min_rating: float = 0.0  # only checked when the listing carries a rating

    @classmethod
    def from_config(cls, config: DiscoveryConfig) -> "QualityThresholds":
        return cls(
            min_price=Decimal(str(config.MIN_PRICE)),
            max_price=Decimal(str(config.MAX_PRICE)),
            min_popularity=config.MIN_POPULARITY,
            min_discount=config.MIN_DISCOUNT,
            min_title_length=config.MIN_TITLE_LENGTH,
            min_rating=config.MIN_RATING,
        )


@dataclass
class AggregationResult:
    """Ranked listings plus the counts after each stage."""

    listings: List[NormalizedListing]
    found: int
    after_dedup: int
    after_filter: int


def dedupe_listings(listings: Iterable[NormalizedListing]) -> List[NormalizedListing]:
    """Keep one listing per listing_id.

    A later duplicate replaces the kept one only with a strictly higher
    score; the survivor keeps the position of the first-seen duplicate.
    """
    kept = {}
    for entry in listings:
        existing = kept.get(entry.listing_id)
        if existing is None or entry.score > existing.score:
            kept[entry.listing_id] = entry
    return list(kept.values())


def passes_quality(entry: NormalizedListing, thresholds: QualityThresholds) -> bool:
    """Check every hard constraint for one listing."""
    listing = entry.listing
    if not listing.title or len(listing.title) < thresholds.min_title_length:
        return False
    if listing.price < thresholds.min_price or listing.price > thresholds.max_price:
        return False
    if listing.popularity < thresholds.min_popularity:
        return False
    if listing.discount < thresholds.min_discount:
        return False
    if listing.rating > 0 and listing.rating < thresholds.min_rating:
        return False
    return True


def filter_quality(
    listings: Iterable[NormalizedListing],
    thresholds: QualityThresholds,
) -> List[NormalizedListing]:
    """Drop listings that fail any hard constraint."""
    return [entry for entry in listings if passes_quality(entry, thresholds)]


def rank_listings(listings: Iterable[NormalizedListing]) -> List[NormalizedListing]:
    """Sort by score, highest first; equal scores keep discovery order."""
    return sorted(listings, key=lambda entry: entry.score, reverse=True)


def run_aggregation(
    listings: Iterable[NormalizedListing],
    max_n: int = DEFAULT_LIMIT,
    thresholds: Optional[QualityThresholds] = None,
) -> AggregationResult:
    """Run dedupe -> filter -> sort -> truncate.

    Dedup runs before the filter, so which duplicate survives depends only
    on score; the survivor is then filter-tested on its own.

    Args:
        listings: Scored listings from every source, in discovery order
        max_n: Maximum number of listings to return
        thresholds: Quality constraints; defaults when omitted

    Returns:
        AggregationResult with the top listings and stage counts
    """
    thresholds = thresholds or QualityThresholds()
    listings = list(listings)

    deduped = dedupe_listings(listings)
    logger.info("listings_deduplicated", before=len(listings), after=len(deduped))

    filtered = filter_quality(deduped, thresholds)
    logger.info("listings_quality_filtered", before=len(deduped), after=len(filtered))

    ranked = rank_listings(filtered)[: max(max_n, 0)]

    return AggregationResult(
        listings=ranked,
        found=len(listings),
        after_dedup=len(deduped),
        after_filter=len(filtered),
    )


def aggregate(
    listings: Iterable[NormalizedListing],
    max_n: int = DEFAULT_LIMIT,
    thresholds: Optional[QualityThresholds] = None,
) -> List[NormalizedListing]:
    """Top max_n listings after dedupe and quality filtering, best first."""
    return run_aggregation(listings, max_n, thresholds).listings
