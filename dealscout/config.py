"""Discovery configuration via Pydantic Settings."""

from typing import Dict, List

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Canonical categories in matching order. "other" is the catch-all.
CANONICAL_CATEGORIES = ("electronics", "home", "sports", "toys")

# Marketplace taxonomy labels (tried first)
CATEGORY_LABELS: Dict[str, List[str]] = {
    "electronics": [
        "Eletrônicos", "TV, Áudio e Cinema em Casa", "PC e Eletrônicos Portáteis",
        "Celulares", "Câmera e Fotografia", "Videogames e Consoles",
        "Acessórios para Eletrônicos", "Informática", "Games", "Computadores",
        "Tablets", "Fones de Ouvido", "Smart Home", "Wearables",
    ],
    "home": [
        "Casa", "Eletrodomésticos de Linha Branca", "Cozinha, Jardim e Piscina",
        "Móveis", "Ferramentas e Construção", "Eletrodomésticos", "Cozinha",
        "Decoração", "Organização", "Limpeza", "Iluminação",
    ],
    "sports": [
        "Esportes, Aventura e Lazer", "Esportes", "Academia", "Fitness", "Outdoor",
        "Camping", "Ciclismo", "Natação", "Corrida", "Musculação",
    ],
    "toys": [
        "Brinquedos e Jogos", "Brinquedos", "Jogos de Tabuleiro",
        "LEGO", "Bonecas", "Carrinhos", "Jogos Eletrônicos",
    ],
}

# Colloquial terms seen in community titles and tags (tried second)
CATEGORY_ALIASES: Dict[str, List[str]] = {
    "electronics": [
        "eletrônico", "eletronico", "tech", "tecnologia", "celular", "smartphone",
        "computador", "notebook", "tablet", "fone", "monitor", "ssd", "mouse",
        "teclado", "webcam", "câmera", "console", "playstation", "xbox",
        "switch", "gamer", "smart tv",
    ],
    "home": [
        "casa", "lar", "cozinha", "jardim", "móvel", "movel", "decoração",
        "decoracao", "eletrodoméstico", "eletrodomestico", "limpeza", "aspirador",
        "cafeteira", "liquidificador", "airfryer", "air fryer", "panela",
        "fogão", "geladeira", "micro-ondas", "ventilador", "ar condicionado",
    ],
    "sports": [
        "esporte", "academia", "fitness", "aventura", "outdoor", "camping",
        "ciclismo", "bike", "bicicleta", "corrida", "tênis", "whey",
        "suplemento", "haltere", "esteira",
    ],
    "toys": [
        "brinquedo", "jogos", "infantil", "criança", "lego", "boneca",
        "carrinho", "nerf", "barbie", "hot wheels",
    ],
}


class ScoringProfile(BaseModel):
    """Weight set for one family of sources.

    Sub-scores are normalized to 0-100 before weighting; bonuses are added
    after weighting and the total is capped at 100.
    """

    discount_weight: float = 0.35
    popularity_weight: float = 0.30
    rating_weight: float = 0.0
    category_weight: float = 0.20

    # 'upvotes' (community votes, log scale saturating at ~100)
    # or 'reviews' (review count, log scale saturating at review_saturation)
    popularity_signal: str = "upvotes"
    review_saturation: int = 5000

    discount_ceiling: float = 40.0  # discount that earns the full sub-score
    rating_floor: float = 3.0

    source_bonus: float = 0.0  # granted to high-intent sources (deals feeds)
    item_id_bonus: float = 0.0  # granted when the marketplace item id is known

    category_weights: Dict[str, float] = Field(
        default_factory=lambda: {
            "electronics": 100,
            "home": 80,
            "sports": 75,
            "toys": 70,
            "other": 50,
        }
    )

    @model_validator(mode="after")
    def check_weights(self) -> "ScoringProfile":
        total = (
            self.discount_weight
            + self.popularity_weight
            + self.rating_weight
            + self.category_weight
        )
        if total > 1.0 + 1e-9:
            raise ValueError(f"scoring weights must sum to <= 1.0, got {total:.2f}")
        if self.popularity_signal not in ("upvotes", "reviews"):
            raise ValueError(f"unknown popularity_signal: {self.popularity_signal}")
        return self


def _default_profiles() -> Dict[str, ScoringProfile]:
    return {
        "community": ScoringProfile(
            discount_weight=0.35,
            popularity_weight=0.30,
            category_weight=0.20,
            popularity_signal="upvotes",
            item_id_bonus=15,
        ),
        "marketplace": ScoringProfile(
            discount_weight=0.30,
            rating_weight=0.25,
            popularity_weight=0.20,
            category_weight=0.15,
            popularity_signal="reviews",
            source_bonus=10,
            category_weights={
                "electronics": 100,
                "home": 80,
                "sports": 75,
                "toys": 70,
                "other": 40,
            },
        ),
    }


class DiscoveryConfig(BaseSettings):
    """Settings for one discovery session, overridable from the environment.

    Environment variables use the DEALSCOUT_ prefix, e.g.
    DEALSCOUT_REQUEST_BUDGET=6. Dict and list fields accept JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEALSCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Request pacing
    REQUEST_BUDGET: int = 4  # hard ceiling on HTTP attempts per session
    DELAY_MIN_SECONDS: float = 3.0
    DELAY_MAX_SECONDS: float = 6.0

    # Retry / timeout
    MAX_RETRIES: int = 2  # total attempts per URL
    RETRY_BASE_DELAY: float = 2.0  # wait = base * attempt_number
    BLOCK_COOLDOWN_SECONDS: float = 4.0
    TIMEOUT_SECONDS: float = 20.0

    # Extraction
    MAX_CANDIDATES_PER_SOURCE: int = 30
    MIN_TITLE_LENGTH: int = 10
    MAX_TITLE_LENGTH: int = 250
    MARKETPLACE_HOSTS: List[str] = ["amazon", "amzn"]
    MARKETPLACE_BASE_URL: str = "https://www.amazon.com.br"

    # Quality filter (all bounds inclusive)
    MIN_PRICE: float = 20.0
    MAX_PRICE: float = 3000.0
    MIN_POPULARITY: int = 5
    MIN_DISCOUNT: int = 10
    MIN_RATING: float = 3.0  # only applied to listings that carry a rating

    # Blocking detection
    BLOCKING_KEYWORDS: List[str] = ["captcha", "robot", "automated"]

    # Categories and scoring
    CATEGORY_LABELS: Dict[str, List[str]] = Field(default_factory=lambda: dict(CATEGORY_LABELS))
    CATEGORY_ALIASES: Dict[str, List[str]] = Field(default_factory=lambda: dict(CATEGORY_ALIASES))
    SCORING_PROFILES: Dict[str, ScoringProfile] = Field(default_factory=_default_profiles)

    # Outbound links
    PARTNER_TAG: str = ""
    ACCEPT_LANGUAGE: str = "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7"

    # Logging
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def check_ranges(self) -> "DiscoveryConfig":
        if self.DELAY_MIN_SECONDS > self.DELAY_MAX_SECONDS:
            raise ValueError("DELAY_MIN_SECONDS must not exceed DELAY_MAX_SECONDS")
        if self.MIN_PRICE > self.MAX_PRICE:
            raise ValueError("MIN_PRICE must not exceed MAX_PRICE")
        if self.MAX_RETRIES < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        return self
