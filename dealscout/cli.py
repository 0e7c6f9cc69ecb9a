"""Command-line runner for one discovery session.

Usage:
    dealscout
    dealscout --sources marketplace --limit 10
    dealscout --sources all --budget 8 --json
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Sequence

import structlog

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import NormalizedListing
from dealscout.scrapers.orchestrator import DealDiscovery
from dealscout.scrapers.sources import SOURCE_GROUPS, get_sources
from dealscout.services.aggregator import DEFAULT_LIMIT

MAX_LIMIT = 50


def configure_logging(level: str = "INFO") -> None:
    """Console logging to stderr so --json output stays clean on stdout."""
    level_number = logging.getLevelName(level.upper())
    if not isinstance(level_number, int):
        level_number = logging.INFO

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_number),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def listing_to_dict(entry: NormalizedListing) -> dict:
    listing = entry.listing
    return {
        "listing_id": listing.listing_id,
        "item_id": listing.item_id,
        "title": listing.title,
        "price": str(listing.price),
        "original_price": str(listing.original_price) if listing.original_price else None,
        "discount": listing.discount,
        "popularity": listing.popularity,
        "rating": listing.rating,
        "category": entry.category,
        "score": entry.score,
        "source": listing.source,
        "listing_url": listing.listing_url,
        "marketplace_url": listing.marketplace_url,
        "image_url": listing.image_url,
        "captured_at": listing.captured_at.isoformat(),
    }


def format_table(listings: Sequence[NormalizedListing]) -> str:
    if not listings:
        return "No deals passed the quality filter."

    lines = [
        f"{'#':>3}  {'Score':>5}  {'Price':>10}  {'Off':>4}  {'Category':<12} Title",
        "-" * 78,
    ]
    for rank, entry in enumerate(listings, start=1):
        listing = entry.listing
        lines.append(
            f"{rank:>3}  {entry.score:>5}  {'R$ ' + format(listing.price, '.2f'):>10}  "
            f"{str(listing.discount) + '%':>4}  {entry.category:<12} {listing.title[:60]}"
        )
    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed Namespace object.
    """
    parser = argparse.ArgumentParser(
        prog="dealscout",
        description="Discover, score and rank marketplace deals from community and marketplace pages.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Maximum number of deals to return (default: {DEFAULT_LIMIT}, capped at {MAX_LIMIT})",
    )
    parser.add_argument(
        "--sources",
        choices=sorted(SOURCE_GROUPS),
        default="community",
        help="Source group to scrape (default: community)",
    )
    parser.add_argument(
        "--budget",
        type=int,
        default=None,
        help="Override the per-session request budget",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print the ranked deals as JSON",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, config: DiscoveryConfig) -> List[NormalizedListing]:
    limit = max(0, min(args.limit, MAX_LIMIT))
    discovery = DealDiscovery(config=config, sources=get_sources(args.sources))
    try:
        return await discovery.discover(limit)
    finally:
        await discovery.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    config = DiscoveryConfig()
    if args.budget is not None:
        config = config.model_copy(update={"REQUEST_BUDGET": args.budget})

    configure_logging(config.LOG_LEVEL)

    listings = asyncio.run(run(args, config))

    if args.as_json:
        print(json.dumps([listing_to_dict(entry) for entry in listings], ensure_ascii=False, indent=2))
    else:
        print(format_table(listings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
