"""Hand-off of ranked listings to a document store.

Listings are keyed by listing_id. New listings are written as full documents;
listings already in the store only get their price-related fields refreshed,
so editorial fields (posted flag, click counter) survive re-discovery.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import structlog

from dealscout.config import DiscoveryConfig
from dealscout.scrapers.base import NormalizedListing

logger = structlog.get_logger(__name__)

AFFILIATE_BASE_URL = "https://www.amazon.com.br"

# Fields refreshed on documents that already exist
PRICE_FIELDS = ("price", "original_price", "discount", "popularity", "score", "fetched_at")


class WriteBatch(Protocol):
    def set(self, doc_id: str, data: Dict[str, Any]) -> None: ...

    def update(self, doc_id: str, fields: Dict[str, Any]) -> None: ...

    def commit(self) -> None: ...


class DocumentStore(Protocol):
    def get(self, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def batch(self) -> WriteBatch: ...


class InMemoryWriteBatch:
    """Buffers writes until commit; nothing is applied if commit is never called."""

    def __init__(self, store: "InMemoryDocumentStore"):
        self._store = store
        self._ops: List[Tuple[str, str, Dict[str, Any]]] = []
        self.committed = False

    def set(self, doc_id: str, data: Dict[str, Any]) -> None:
        self._ops.append(("set", doc_id, dict(data)))

    def update(self, doc_id: str, fields: Dict[str, Any]) -> None:
        self._ops.append(("update", doc_id, dict(fields)))

    def commit(self) -> None:
        if self.committed:
            raise RuntimeError("batch already committed")

        staged = {doc_id: dict(doc) for doc_id, doc in self._store.documents.items()}
        for op, doc_id, data in self._ops:
            if op == "set":
                staged[doc_id] = data
            elif doc_id not in staged:
                raise KeyError(f"cannot update missing document: {doc_id}")
            else:
                staged[doc_id].update(data)

        self._store.documents = staged
        self._store.commits += 1
        self.committed = True


class InMemoryDocumentStore:
    """Dict-backed DocumentStore with atomic batch commits."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self.documents: Dict[str, Dict[str, Any]] = {
            doc_id: dict(doc) for doc_id, doc in (documents or {}).items()
        }
        self.commits = 0

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self.documents.get(doc_id)
        return dict(doc) if doc is not None else None

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)


@dataclass
class SyncStats:
    created: int = 0
    updated: int = 0
    skipped: int = 0


class ProductSyncService:
    """Writes discovered listings into a DocumentStore."""

    def __init__(
        self,
        store: DocumentStore,
        partner_tag: str = "",
        base_url: str = AFFILIATE_BASE_URL,
    ):
        """Initialize sync service.

        Args:
            store: Target document store
            partner_tag: Affiliate partner tag appended to marketplace links
            base_url: Marketplace origin used for canonical product links
        """
        self.store = store
        self.partner_tag = partner_tag
        self.base_url = base_url.rstrip("/")
        self.logger = logger.bind(service="product_sync")

    @classmethod
    def from_config(cls, store: DocumentStore, config: DiscoveryConfig) -> "ProductSyncService":
        return cls(store, partner_tag=config.PARTNER_TAG, base_url=config.MARKETPLACE_BASE_URL)

    def affiliate_link(self, entry: NormalizedListing) -> str:
        """Outbound link for a listing.

        Canonical marketplace product URL (with the partner tag when one is
        configured) when the item id is known, else the marketplace URL, else
        the listing page.
        """
        listing = entry.listing
        if listing.item_id:
            url = f"{self.base_url}/dp/{listing.item_id}"
            return f"{url}?tag={self.partner_tag}" if self.partner_tag else url
        return listing.marketplace_url or listing.listing_url

    def to_document(self, entry: NormalizedListing, fetched_at: datetime) -> Dict[str, Any]:
        listing = entry.listing
        return {
            "listing_id": listing.listing_id,
            "item_id": listing.item_id,
            "title": listing.title,
            "price": float(listing.price),
            "original_price": float(listing.original_price) if listing.original_price else None,
            "discount": listing.discount,
            "image_url": listing.image_url,
            "listing_url": listing.listing_url,
            "affiliate_link": self.affiliate_link(entry),
            "popularity": listing.popularity,
            "rating": listing.rating,
            "category": entry.category,
            "score": entry.score,
            "source": listing.source,
            "source_kind": listing.source_kind,
            "captured_at": listing.captured_at,
            "fetched_at": fetched_at,
            "posted": False,
            "clicks": 0,
        }

    def sync(
        self,
        listings: Iterable[NormalizedListing],
        update_existing: bool = True,
        now: Optional[datetime] = None,
    ) -> SyncStats:
        """Create or refresh one document per listing in a single batch.

        Args:
            listings: Ranked listings from a discovery session
            update_existing: Refresh price fields of known listings instead
                of skipping them
            now: Write timestamp; current UTC time when omitted

        Returns:
            SyncStats with created/updated/skipped counts

        Raises:
            Whatever the store raises; nothing is retried here
        """
        now = now or datetime.now(timezone.utc)
        stats = SyncStats()
        batch = self.store.batch()

        for entry in listings:
            doc_id = entry.listing_id
            existing = self.store.get(doc_id)

            if existing is None:
                batch.set(doc_id, self.to_document(entry, now))
                stats.created += 1
                self.logger.debug("listing_created", listing_id=doc_id, title=entry.title[:50])
                continue

            if not update_existing:
                stats.skipped += 1
                continue

            document = self.to_document(entry, now)
            batch.update(doc_id, {name: document[name] for name in PRICE_FIELDS})
            stats.updated += 1

        batch.commit()

        self.logger.info(
            "listings_synced",
            created=stats.created,
            updated=stats.updated,
            skipped=stats.skipped,
        )
        return stats
