"""The marketplace's own deals and bestseller pages (Amazon Brazil).

These pages actively resist automated access, so they are fetched with
bot-detection enabled and scored with the 'marketplace' profile (rating and
review count instead of community votes). Cards are keyed by ASIN.
"""

from typing import Optional

from dealscout.scrapers.base import FieldMatchers, SourceConfig
from dealscout.scrapers.extractor import attr, image, last_attr, own_attr, text

AMAZON_BASE = "https://www.amazon.com.br"

_CARD_SELECTORS = (
    # Bestsellers
    '[data-asin]:not([data-asin=""])',
    ".zg-item-immersion",
    ".p13n-sc-uncoverable-faceout",
    # Deals
    "[data-deal-id]",
    ".DealCard-module__card",
    # Generic result cards
    ".s-result-item[data-asin]",
    ".octopus-pc-item",
)

_FIELDS = FieldMatchers(
    title=(
        text(".p13n-sc-truncate"),
        text("._cDEzb_p13n-sc-css-line-clamp-3_g3dy1"),
        text("h2 a span"),
        text(".a-size-base-plus"),
        text(".a-link-normal span"),
        attr("img[alt]", "alt"),
    ),
    price=(
        text(".a-price:not([data-a-strike]) .a-offscreen"),
        text(".p13n-sc-price"),
        text(".a-color-price"),
        text("[data-a-color='price'] .a-offscreen"),
    ),
    original_price=(
        text(".a-price[data-a-strike] .a-offscreen"),
        text(".a-text-price .a-offscreen"),
    ),
    discount=(
        text(".savingsPercentage"),
        text(".a-badge-text"),
    ),
    listing_link=(
        attr("a[href*='/dp/']", "href"),
        attr("a[href*='/product/']", "href"),
    ),
    image=(image("img"),),
    popularity=(
        # Star rating span comes first in the row, review count last
        last_attr(".a-size-small span[aria-label]", "aria-label"),
        text(".a-link-normal .a-size-small"),
        text(".a-size-small"),
    ),
    rating=(
        text(".a-icon-alt"),
        attr("[aria-label*='estrela']", "aria-label"),
        attr("[aria-label*='star']", "aria-label"),
    ),
    item_id=(
        own_attr("data-asin"),
        attr("a[href*='/dp/']", "href"),
        attr("a[href*='/product/']", "href"),
    ),
)


def _page(
    path: str,
    name: str,
    category_hint: Optional[str],
    high_intent: bool = False,
) -> SourceConfig:
    return SourceConfig(
        name=name,
        url=f"{AMAZON_BASE}{path}",
        kind="marketplace",
        base_url=AMAZON_BASE,
        card_selectors=_CARD_SELECTORS,
        fields=_FIELDS,
        require_marketplace_link=False,
        require_item_id=True,
        high_intent=high_intent,
        category_hint=category_hint,
        detect_blocking=True,
    )


MARKETPLACE_SOURCES = (
    _page("/deals", "Amazon Ofertas", None, high_intent=True),
    _page("/gp/bestsellers/electronics", "Amazon Mais Vendidos Eletrônicos", "Eletrônicos"),
    _page("/gp/bestsellers/kitchen", "Amazon Mais Vendidos Cozinha", "Cozinha"),
    _page("/gp/bestsellers/sports", "Amazon Mais Vendidos Esportes", "Esportes"),
    _page("/gp/bestsellers/toys", "Amazon Mais Vendidos Brinquedos", "Brinquedos"),
    _page("/gp/most-wished-for/electronics", "Amazon Mais Desejados Eletrônicos", "Eletrônicos"),
)
