"""Built-in source definitions."""

from typing import Tuple

from dealscout.scrapers.base import SourceConfig

from .community import COMMUNITY_SOURCES, PELANDO, PROMOBIT
from .marketplace import MARKETPLACE_SOURCES

SOURCE_GROUPS = {
    "community": COMMUNITY_SOURCES,
    "marketplace": MARKETPLACE_SOURCES,
    "all": COMMUNITY_SOURCES + MARKETPLACE_SOURCES,
}


def get_sources(group: str = "community") -> Tuple[SourceConfig, ...]:
    """Return the source tuple for a group name.

    Raises:
        ValueError: If the group is unknown
    """
    try:
        return SOURCE_GROUPS[group]
    except KeyError:
        raise ValueError(
            f"Unknown source group: {group} (expected one of {', '.join(SOURCE_GROUPS)})"
        ) from None


__all__ = [
    "COMMUNITY_SOURCES",
    "MARKETPLACE_SOURCES",
    "PELANDO",
    "PROMOBIT",
    "SOURCE_GROUPS",
    "get_sources",
]
