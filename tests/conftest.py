"""Pytest configuration and shared fixtures."""

import random
from decimal import Decimal

import pytest

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import CandidateListing, NormalizedListing


class FakeSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def config() -> DiscoveryConfig:
    """Default discovery configuration."""
    return DiscoveryConfig()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def make_listing():
    """Factory for scored listings with sensible passing defaults."""

    def _make(
        listing_id: str = "B0C1234567",
        score: int = 50,
        category: str = "electronics",
        **overrides,
    ) -> NormalizedListing:
        fields = dict(
            listing_id=listing_id,
            title="Fone de Ouvido Bluetooth JBL Tune 520BT",
            price=Decimal("209.30"),
            original_price=Decimal("299.00"),
            discount=30,
            popularity=87,
            source="Pelando",
        )
        fields.update(overrides)
        return NormalizedListing(
            listing=CandidateListing(**fields),
            category=category,
            score=score,
        )

    return _make


# ============================================================================
# HTML FIXTURES
# ============================================================================

# Three Pelando cards: a valid electronics deal at 30% off, a card without a
# title, and a card whose only price is the struck-through one.
PELANDO_THREE_CARDS = """
<html><body>
<div class="feed">
  <div data-t="dealCard">
    <a data-t="dealTitle" href="/d/fone-bluetooth-jbl">Fone de Ouvido Bluetooth JBL Tune 520BT</a>
    <span data-t="dealPrice">R$ 209,30</span>
    <span data-t="originalPrice">R$ 299,00</span>
    <span data-t="voteCount">87</span>
    <span data-t="category">Eletrônicos</span>
    <a href="https://www.amazon.com.br/dp/B0C1234567?tag=pelando-20">Ir para a loja</a>
    <img src="https://m.media-amazon.com/images/I/fone.jpg">
  </div>
  <div data-t="dealCard">
    <span data-t="dealPrice">R$ 150,00</span>
    <span data-t="voteCount">12</span>
    <a href="https://www.amazon.com.br/dp/B0C7654321">Ver oferta</a>
  </div>
  <div data-t="dealCard">
    <a data-t="dealTitle" href="/d/smartwatch-amazfit">Smartwatch Amazfit Bip 5 Tela Grande</a>
    <span data-t="originalPrice">R$ 599,00</span>
    <span data-t="voteCount">40</span>
    <a href="https://www.amazon.com.br/dp/B0CSMART55">Ir para a loja</a>
  </div>
</div>
</body></html>
"""

# Amazon electronics bestseller page: one complete card and one card whose
# data-asin is not a valid item id.
AMAZON_BESTSELLERS = """
<html><body>
<div id="gridItemRoot">
  <div data-asin="B09XYZ1234" class="zg-item-immersion">
    <a class="a-link-normal" href="/Echo-Dot/dp/B09XYZ1234/ref=zg_bs_1">
      <img alt="Echo Dot 5a geracao Smart speaker com Alexa" src="https://m.media-amazon.com/images/I/echo.jpg">
      <div class="p13n-sc-truncate">Echo Dot 5a geracao Smart speaker com Alexa</div>
    </a>
    <i class="a-icon-star"><span class="a-icon-alt">4,7 de 5 estrelas</span></i>
    <a class="a-link-normal" href="/product-reviews/B09XYZ1234"><span class="a-size-small">12.345</span></a>
    <span class="p13n-sc-price">R$ 379,05</span>
    <span class="a-text-price"><span class="a-offscreen">R$ 449,00</span></span>
  </div>
  <div data-asin="INVALID" class="zg-item-immersion">
    <div class="p13n-sc-truncate">Cabo USB-C Trancado Dois Metros</div>
    <span class="p13n-sc-price">R$ 29,90</span>
  </div>
</div>
</body></html>
"""


def pelando_card(index: int, item_id: str, votes: int = 20) -> str:
    """One valid Pelando card with a distinct title and item id."""
    return f"""
  <div data-t="dealCard">
    <a data-t="dealTitle" href="/d/oferta-{index}">Monitor Gamer Modelo Numero {index:03d}</a>
    <span data-t="dealPrice">R$ 700,00</span>
    <span data-t="originalPrice">R$ 1.000,00</span>
    <span data-t="voteCount">{votes}</span>
    <a href="https://www.amazon.com.br/dp/{item_id}">Ir para a loja</a>
  </div>"""


def pelando_page(cards) -> str:
    return "<html><body>" + "".join(cards) + "</body></html>"


@pytest.fixture
def pelando_three_cards() -> str:
    return PELANDO_THREE_CARDS


@pytest.fixture
def amazon_bestsellers() -> str:
    return AMAZON_BESTSELLERS


@pytest.fixture
def pelando_html():
    """Build a Pelando page from (item_id, votes) pairs."""

    def _build(items) -> str:
        return pelando_page(
            pelando_card(index, item_id, votes) for index, (item_id, votes) in enumerate(items)
        )

    return _build
