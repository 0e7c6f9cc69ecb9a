"""Core data structures shared by the discovery pipeline.

Sources are plain SourceConfig values: an ordered list of card selectors plus,
for each field, an ordered list of matcher functions. No subclassing needed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from bs4 import Tag

from dealscout.core.exceptions import SourceConfigError

# A matcher pulls one raw string out of a card element, or None.
Matcher = Callable[[Tag], Optional[str]]

SOURCE_KINDS = ("community", "marketplace")


@dataclass(frozen=True)
class FieldMatchers:
    """Ordered matcher lists, one per extracted field.

    For every field the extractor calls the matchers in order and keeps the
    first non-empty result.
    """

    title: Tuple[Matcher, ...] = ()
    price: Tuple[Matcher, ...] = ()
    original_price: Tuple[Matcher, ...] = ()
    discount: Tuple[Matcher, ...] = ()
    link: Tuple[Matcher, ...] = ()
    listing_link: Tuple[Matcher, ...] = ()
    image: Tuple[Matcher, ...] = ()
    popularity: Tuple[Matcher, ...] = ()
    rating: Tuple[Matcher, ...] = ()
    category: Tuple[Matcher, ...] = ()
    item_id: Tuple[Matcher, ...] = ()


@dataclass(frozen=True)
class SourceConfig:
    """One scrape target and how to read its listing cards."""

    name: str
    url: str
    kind: str  # 'community' or 'marketplace'
    card_selectors: Tuple[str, ...]
    fields: FieldMatchers
    base_url: str = ""  # used to absolutize relative listing links
    require_marketplace_link: bool = True
    require_item_id: bool = False  # cards without a marketplace item id are dropped
    high_intent: bool = False  # e.g. a dedicated deals feed; earns the source bonus
    category_hint: Optional[str] = None  # fixed raw category for category pages
    detect_blocking: bool = True

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name:
            raise SourceConfigError("<unnamed>", "name is required")
        if not self.card_selectors:
            raise SourceConfigError(self.name, "at least one card selector is required")
        if self.kind not in SOURCE_KINDS:
            raise SourceConfigError(self.name, f"unknown kind: {self.kind}")


@dataclass
class CandidateListing:
    """A listing as read from one card, before classification and scoring."""

    listing_id: str  # item_id when known, else a synthetic id
    title: str
    price: Decimal
    source: str
    source_kind: str = "community"
    item_id: Optional[str] = None  # marketplace id (ASIN)
    original_price: Optional[Decimal] = None
    discount: int = 0
    image_url: str = ""
    listing_url: str = ""
    marketplace_url: Optional[str] = None
    popularity: int = 0  # upvotes or review count
    rating: float = 0.0
    raw_category: str = "Geral"
    high_intent: bool = False
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.listing_id:
            raise ValueError("listing_id is required")
        if not self.title:
            raise ValueError("title is required")
        if self.price is None or self.price < 0:
            raise ValueError("price must be a non-negative Decimal")
        if not 0 <= self.discount <= 100:
            raise ValueError(f"discount out of range: {self.discount}")
        if self.popularity < 0:
            raise ValueError("popularity must be non-negative")


@dataclass
class NormalizedListing:
    """A candidate with its canonical category and deal score."""

    listing: CandidateListing
    category: str
    score: int

    @property
    def listing_id(self) -> str:
        return self.listing.listing_id

    @property
    def title(self) -> str:
        return self.listing.title


@dataclass
class SessionStats:
    """Mutable counters for one discovery session. Never persisted."""

    request_budget: int
    request_count: int = 0
    deals_found: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def budget_exhausted(self) -> bool:
        return self.request_count >= self.request_budget

    @property
    def requests_remaining(self) -> int:
        return max(self.request_budget - self.request_count, 0)
