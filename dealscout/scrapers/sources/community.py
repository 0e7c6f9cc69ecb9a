"""Community deal aggregators (Pelando, Promobit).

These sites already curate marketplace deals and carry community votes,
so listings are scored with the 'community' profile. Only cards that link
out to the marketplace are kept.
"""

from dealscout.scrapers.base import FieldMatchers, SourceConfig
from dealscout.scrapers.extractor import attr, image, text

_MARKETPLACE_LINK = (
    attr("a[href*='amazon']", "href"),
    attr("a[href*='amzn']", "href"),
)

PELANDO = SourceConfig(
    name="Pelando",
    url="https://www.pelando.com.br/search?q=amazon",
    kind="community",
    base_url="https://www.pelando.com.br",
    card_selectors=('[data-t="dealCard"]', ".dealCard", "article.thread"),
    detect_blocking=False,
    fields=FieldMatchers(
        title=(
            text('[data-t="dealTitle"]'),
            text(".thread-title"),
            text(".dealTitle"),
        ),
        price=(
            text('[data-t="dealPrice"]'),
            text(".dealPrice"),
            text(".thread-price"),
        ),
        original_price=(
            text('[data-t="originalPrice"]'),
            text(".originalPrice"),
            text(".thread-price-old"),
        ),
        discount=(
            text('[data-t="discount"]'),
            text(".discount-badge"),
            text(".dealDiscount"),
        ),
        link=_MARKETPLACE_LINK,
        listing_link=(
            attr('a[data-t="dealTitle"]', "href"),
            attr(".thread-title a", "href"),
        ),
        image=(
            image("img[src*='amazon']"),
            image("img[data-src*='amazon']"),
        ),
        popularity=(
            text('[data-t="voteCount"]'),
            text(".vote-count"),
            text(".dealVotes"),
        ),
        category=(
            text('[data-t="category"]'),
            text(".category-tag"),
            text(".threadCategory"),
        ),
    ),
)

PROMOBIT = SourceConfig(
    name="Promobit",
    url="https://www.promobit.com.br/promocoes/loja/amazon",
    kind="community",
    base_url="https://www.promobit.com.br",
    card_selectors=(".offer-card", ".promotion-card", "[data-offer-id]"),
    detect_blocking=False,
    fields=FieldMatchers(
        title=(
            text(".offer-title"),
            text(".promotion-title"),
            text("h2 a"),
        ),
        price=(
            text(".offer-price"),
            text(".price-current"),
            text(".promotion-price"),
        ),
        original_price=(
            text(".offer-price-old"),
            text(".price-old"),
        ),
        discount=(
            text(".offer-discount"),
            text(".discount-tag"),
        ),
        link=_MARKETPLACE_LINK,
        listing_link=(
            attr(".offer-title a", "href"),
            attr("h2 a", "href"),
        ),
        image=(
            image("img.offer-image"),
            image("img.promotion-image"),
        ),
        popularity=(
            text(".offer-votes"),
            text(".vote-count"),
        ),
        category=(
            text(".offer-category"),
            text(".category-name"),
        ),
    ),
)

COMMUNITY_SOURCES = (PELANDO, PROMOBIT)
