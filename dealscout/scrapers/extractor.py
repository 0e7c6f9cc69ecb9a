"""HTML card extraction into CandidateListing values.

extract() is a pure function of (html, source, config): no network, no clock
other than the capture timestamp, which callers may pin via `now`.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Set

import structlog
from bs4 import BeautifulSoup, Tag

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import CandidateListing, Matcher, SourceConfig
from dealscout.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolutize_url,
    clean_item_id,
    clean_text,
    compute_discount,
    extract_item_id,
    synthetic_listing_id,
)

logger = structlog.get_logger(__name__)

DEFAULT_RAW_CATEGORY = "Geral"


# ---------------------------------------------------------------------------
# Matcher factories
# ---------------------------------------------------------------------------


def text(css: str) -> Matcher:
    """Text of the first element matching css inside the card."""

    def match(card: Tag) -> Optional[str]:
        elem = card.select_one(css)
        if elem is None:
            return None
        return clean_text(elem.get_text(" ", strip=True)) or None

    return match


def attr(css: str, name: str) -> Matcher:
    """Attribute of the first element matching css inside the card."""

    def match(card: Tag) -> Optional[str]:
        elem = card.select_one(css)
        if elem is None:
            return None
        value = elem.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value and value.strip() else None

    return match


def last_attr(css: str, name: str) -> Matcher:
    """Attribute of the last element matching css that carries it."""

    def match(card: Tag) -> Optional[str]:
        for elem in reversed(card.select(css)):
            value = elem.get(name)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
        return None

    return match


def own_attr(name: str) -> Matcher:
    """Attribute of the card element itself."""

    def match(card: Tag) -> Optional[str]:
        value = card.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value and value.strip() else None

    return match


def image(css: str = "img") -> Matcher:
    """Image URL: largest data-a-dynamic-image entry, else src, else data-src."""

    def match(card: Tag) -> Optional[str]:
        img = card.select_one(css)
        if img is None:
            return None
        dynamic = img.get("data-a-dynamic-image")
        if dynamic:
            try:
                urls = list(json.loads(dynamic).keys())
            except (ValueError, AttributeError):
                urls = []
            if urls:
                return urls[0]
        return img.get("src") or img.get("data-src") or None

    return match


def first_match(card: Tag, matchers: Sequence[Matcher]) -> Optional[str]:
    """Run matchers in order and return the first non-empty result."""
    for matcher in matchers:
        value = matcher(card)
        if value:
            return value
    return None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _select_cards(soup: BeautifulSoup, source: SourceConfig) -> List[Tag]:
    """Cards from the first card selector that matches anything."""
    for selector in source.card_selectors:
        cards = soup.select(selector)
        if cards:
            logger.debug("cards_selected", source=source.name, selector=selector, count=len(cards))
            return cards
    return []


def _is_marketplace_link(href: Optional[str], hosts: Sequence[str]) -> bool:
    if not href:
        return False
    lower = href.lower()
    return any(host in lower for host in hosts)


def _find_marketplace_url(card: Tag, source: SourceConfig, hosts: Sequence[str]) -> Optional[str]:
    """Outbound marketplace link: configured link matchers first, then any anchor."""
    for matcher in source.fields.link:
        href = matcher(card)
        if _is_marketplace_link(href, hosts):
            return href

    if card.name == "a" and _is_marketplace_link(card.get("href"), hosts):
        return card.get("href")

    for anchor in card.select("a[href]"):
        href = anchor.get("href")
        if _is_marketplace_link(href, hosts):
            return href
    return None


def _find_item_id(card: Tag, source: SourceConfig, marketplace_url: Optional[str]) -> Optional[str]:
    """Item id from a data attribute or an id-bearing URL, else from the outbound link."""
    for matcher in source.fields.item_id:
        value = matcher(card)
        item_id = clean_item_id(value) or extract_item_id(value)
        if item_id:
            return item_id
    return extract_item_id(marketplace_url)


def _parse_price(card: Tag, matchers: Sequence[Matcher]) -> Decimal:
    """First matcher whose text parses to a positive price."""
    for matcher in matchers:
        price = PriceNormalizer.parse_brl(matcher(card))
        if price > 0:
            return price
    return Decimal("0")


def _parse_card(
    card: Tag,
    source: SourceConfig,
    config: DiscoveryConfig,
    now: datetime,
) -> Optional[CandidateListing]:
    """Read one card. Returns None for cards that should be skipped."""
    fields = source.fields

    title = first_match(card, fields.title)
    if not title or len(title) < config.MIN_TITLE_LENGTH:
        return None

    marketplace_url = _find_marketplace_url(card, source, config.MARKETPLACE_HOSTS)
    if source.require_marketplace_link and not marketplace_url:
        return None

    item_id = _find_item_id(card, source, marketplace_url)
    if source.require_item_id and not item_id:
        return None

    price = _parse_price(card, fields.price)
    original_price = _parse_price(card, fields.original_price) or None

    discount = compute_discount(price, original_price)
    if discount == 0:
        discount = PriceNormalizer.parse_discount(first_match(card, fields.discount))

    popularity = PriceNormalizer.parse_count(first_match(card, fields.popularity))
    rating = PriceNormalizer.parse_rating(first_match(card, fields.rating))

    image_url = first_match(card, fields.image) or image("img")(card) or ""

    listing_href = first_match(card, fields.listing_link)
    if not listing_href:
        first_anchor = card if card.name == "a" else card.select_one("a[href]")
        listing_href = first_anchor.get("href") if first_anchor is not None else None

    if source.category_hint:
        raw_category = source.category_hint
    else:
        raw_category = first_match(card, fields.category) or DEFAULT_RAW_CATEGORY

    if item_id and source.kind == "marketplace":
        marketplace_url = f"{config.MARKETPLACE_BASE_URL}/dp/{item_id}"

    listing_id = item_id or synthetic_listing_id(source.name, title, price)

    return CandidateListing(
        listing_id=listing_id,
        item_id=item_id,
        title=title[: config.MAX_TITLE_LENGTH],
        price=price,
        original_price=original_price,
        discount=discount,
        image_url=absolutize_url(image_url, source.base_url),
        listing_url=absolutize_url(listing_href, source.base_url),
        marketplace_url=marketplace_url,
        popularity=popularity,
        rating=rating,
        raw_category=raw_category,
        source=source.name,
        source_kind=source.kind,
        high_intent=source.high_intent,
        captured_at=now,
    )


def extract(
    html: str,
    source: SourceConfig,
    config: DiscoveryConfig,
    now: Optional[datetime] = None,
) -> List[CandidateListing]:
    """Extract candidate listings from one source page.

    Args:
        html: Page HTML
        source: Source definition (card selectors and field matchers)
        config: Discovery configuration (caps, title length, marketplace hosts)
        now: Capture timestamp; current UTC time when omitted

    Returns:
        Candidate listings in page order, at most MAX_CANDIDATES_PER_SOURCE
    """
    now = now or datetime.now(timezone.utc)
    soup = BeautifulSoup(html, "html.parser")
    cards = _select_cards(soup, source)

    listings: List[CandidateListing] = []
    seen_keys: Set[str] = set()
    skipped = 0

    for card in cards:
        if len(listings) >= config.MAX_CANDIDATES_PER_SOURCE:
            break

        try:
            listing = _parse_card(card, source, config, now)
        except (ArithmeticError, ValueError, TypeError, AttributeError) as e:
            logger.debug("parse_card_failed", source=source.name, error=str(e))
            listing = None

        if listing is None:
            skipped += 1
            continue

        key = listing.item_id or listing.title.lower()[:50]
        if key in seen_keys:
            skipped += 1
            continue
        seen_keys.add(key)
        listings.append(listing)

    logger.info(
        "source_parsed",
        source=source.name,
        cards=len(cards),
        listings=len(listings),
        skipped=skipped,
    )
    return listings
