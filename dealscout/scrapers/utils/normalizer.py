"""Data normalization utilities for price parsing and category classification."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin

import structlog

from dealscout.config import CANONICAL_CATEGORIES, CATEGORY_ALIASES, CATEGORY_LABELS

logger = structlog.get_logger(__name__)

OTHER_CATEGORY = "other"

_NUMBER_TOKEN = re.compile(r"\d[\d.,]*")
_THOUSANDS_DOT = re.compile(r"\.(?=\d{3}(?:\D|$))")

# Marketplace item id (ASIN) patterns, most specific first
_ITEM_ID_PATTERNS = [
    re.compile(r"/dp/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
    re.compile(r"/product/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
    re.compile(r"[?&]asin=([A-Z0-9]{10})(?:&|$)", re.IGNORECASE),
]
_ITEM_ID = re.compile(r"^[A-Z0-9]{10}$")


class PriceNormalizer:
    """Parsing helpers for pt-BR formatted numbers.

    All parsers are total: unparseable input yields 0 instead of raising.
    """

    @staticmethod
    def parse_brl(raw: Optional[str]) -> Decimal:
        """Parse a Brazilian price string.

        Handles:
        - "R$ 1.234,56" -> 1234.56
        - "R$99,90" -> 99.90
        - "1234.56" -> 1234.56
        - "", "grátis" -> 0

        Only the first number in the text is read, so
        "R$ 99,90 R$ 149,90" yields 99.90.

        Args:
            raw: Raw price string

        Returns:
            Decimal price value, Decimal("0") when parsing fails
        """
        if not raw:
            return Decimal("0")

        match = _NUMBER_TOKEN.search(raw.replace("\xa0", " "))
        if not match:
            return Decimal("0")

        token = match.group(0).rstrip(".,")
        if "," in token and "." in token and token.rfind(".") > token.rfind(","):
            # "1,234.56" style
            token = token.replace(",", "")
        elif token.count(",") > 1:
            token = token.replace(",", "")
        else:
            # A period followed by exactly three digits is a thousands separator
            token = _THOUSANDS_DOT.sub("", token).replace(",", ".")

        try:
            value = Decimal(token)
        except InvalidOperation:
            return Decimal("0")
        return value if value > 0 else Decimal("0")

    @staticmethod
    def parse_discount(raw: Optional[str]) -> int:
        """Read a discount badge such as "-30%" or "30% OFF".

        Returns:
            Integer percentage clamped to 0..100, 0 when absent
        """
        if not raw:
            return 0
        match = re.search(r"(\d{1,3})\s*%", raw) or re.search(r"(\d+)", raw)
        if not match:
            return 0
        return max(0, min(int(match.group(1)), 100))

    @staticmethod
    def parse_count(raw: Optional[str]) -> int:
        """Read a vote or review count ("1.234", "(87)", "+15", "-3").

        Negative counts (downvoted threads) are clamped to 0.
        """
        if not raw:
            return 0
        text = raw.strip()
        match = re.search(r"-?\d[\d.\s]*", text)
        if not match:
            return 0
        token = match.group(0)
        negative = token.startswith("-")
        digits = re.sub(r"\D", "", token)
        if not digits:
            return 0
        value = int(digits)
        return 0 if negative else value

    @staticmethod
    def parse_rating(raw: Optional[str]) -> float:
        """Read a star rating ("4,5 de 5 estrelas", "4.5 out of 5").

        Returns:
            Rating between 0 and 5, 0.0 when absent
        """
        if not raw:
            return 0.0
        match = re.search(r"(\d)[,.](\d)", raw)
        if match:
            value = float(f"{match.group(1)}.{match.group(2)}")
        else:
            whole = re.search(r"\b([0-5])\b", raw)
            if not whole:
                return 0.0
            value = float(whole.group(1))
        return value if 0 <= value <= 5 else 0.0


def compute_discount(price: Decimal, original_price: Optional[Decimal]) -> int:
    """Discount percentage from two prices, 0 unless original > price > 0."""
    if not original_price or price <= 0 or original_price <= price:
        return 0
    pct = (original_price - price) / original_price * 100
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def extract_item_id(url: Optional[str]) -> Optional[str]:
    """Extract the marketplace item id (ASIN) from a product URL.

    Args:
        url: Marketplace or redirect URL

    Returns:
        Upper-cased 10 character id, or None
    """
    if not url:
        return None
    for pattern in _ITEM_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1).upper()
    return None


def clean_item_id(raw: Optional[str]) -> Optional[str]:
    """Validate an item id read from a data attribute."""
    if not raw:
        return None
    candidate = raw.strip().upper()
    return candidate if _ITEM_ID.match(candidate) else None


def synthetic_listing_id(source: str, title: str, price: Decimal) -> str:
    """Build a stable id for listings with no marketplace item id."""
    slug = re.sub(r"[^a-z0-9]", "", title.lower())[:20]
    rounded = int(Decimal(price).to_integral_value(rounding=ROUND_HALF_UP))
    return f"{source.lower()}-{slug}-{rounded}"


def clean_text(raw: Optional[str]) -> str:
    """Collapse whitespace runs into single spaces."""
    if not raw:
        return ""
    return re.sub(r"\s+", " ", raw).strip()


def absolutize_url(url: Optional[str], base_url: str) -> str:
    """Resolve a relative or protocol-relative URL against base_url."""
    if not url:
        return ""
    url = url.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http://") or url.startswith("https://"):
        return url
    if not base_url:
        return url
    return urljoin(base_url, url)


class CategoryClassifier:
    """Keyword classifier onto the fixed set of canonical categories.

    Matching is lower-cased substring containment. The exact-label table
    (marketplace taxonomy strings) is tried first, then the alias table
    (colloquial terms). Within a table, categories are tried in
    CANONICAL_CATEGORIES order and the first hit wins, so ambiguous text
    resolves to the earliest listed category.
    """

    def __init__(
        self,
        labels: Optional[Dict[str, List[str]]] = None,
        aliases: Optional[Dict[str, List[str]]] = None,
        order: Sequence[str] = CANONICAL_CATEGORIES,
    ):
        self.order = tuple(order)
        self._labels = self._lower_table(labels if labels is not None else CATEGORY_LABELS)
        self._aliases = self._lower_table(aliases if aliases is not None else CATEGORY_ALIASES)

    @staticmethod
    def _lower_table(table: Dict[str, List[str]]) -> Dict[str, List[str]]:
        return {cat: [kw.lower() for kw in keywords if kw] for cat, keywords in table.items()}

    def _match(self, text: str, table: Dict[str, List[str]]) -> Optional[str]:
        for category in self.order:
            if any(kw in text for kw in table.get(category, ())):
                return category
        return None

    def classify(self, text: Optional[str]) -> str:
        """Classify free text into a canonical category.

        Args:
            text: Title, category label, or both joined

        Returns:
            Canonical category slug, "other" when nothing matches
        """
        if not text:
            return OTHER_CATEGORY

        lower = text.lower()
        return (
            self._match(lower, self._labels)
            or self._match(lower, self._aliases)
            or OTHER_CATEGORY
        )
