"""
Product lookups used to enrich product cards with real data.

Two implementations share the same shape:
- lookup(names) -> List[ProductRecord]: one record per product name
- search(query, limit) -> List[ProductRecord]: best records for a free-text query

CatalogLookup searches an in-memory catalog (built-in sample data or a JSON
file); SearchLookup calls Google Custom Search.
"""

import re
import json
import requests
from pathlib import Path
from typing import List, Optional

from models import ProductRecord
from chat_logger import get_logger, sanitize_log_string
from app_config import (
    GOOGLE_SEARCH_API_KEY,
    GOOGLE_SEARCH_ENGINE_ID,
    GOOGLE_SEARCH_URL,
    SEARCH_TIMEOUT_SECONDS,
    PRODUCT_CATALOG_PATH,
)

logger = get_logger("concierge")

SEARCH_RESULT_LIMIT = 5

_WORD_RE = re.compile(r"[a-z0-9]+")

# ─────────────────────────────────────────────
# Built-in sample catalog
# ─────────────────────────────────────────────
DEFAULT_CATALOG = [
    ProductRecord(
        name="Classic White Tee",
        price="£45",
        description="A timeless essential crafted from premium cotton with a relaxed fit and subtle branding.",
        image="/assets/images/products/classic-white-tee.jpg",
        url="/products/classic-white-tee",
        category="Essentials",
    ),
    ProductRecord(
        name="Minimalist Hoodie",
        price="£85",
        description="Comfortable, versatile design for everyday wear, made from sustainable materials.",
        image="/assets/images/products/minimalist-hoodie.jpg",
        url="/products/minimalist-hoodie",
        category="Outerwear",
    ),
    ProductRecord(
        name="Signature Socks",
        price="£18",
        description="Bold typography meets comfort in our signature style.",
        image="/assets/images/products/signature-socks.jpg",
        url="/products/signature-socks",
        category="Accessories",
    ),
    ProductRecord(
        name="Relaxed Fit Tee",
        price="£50",
        description="Effortless style with a contemporary silhouette, perfect for layering.",
        image="/assets/images/products/relaxed-fit-tee.jpg",
        url="/products/relaxed-fit-tee",
        category="Essentials",
    ),
    ProductRecord(
        name="Monochrome Cap",
        price="£35",
        description="Clean, minimalist design with embroidered logo detail.",
        image="/assets/images/products/monochrome-cap.jpg",
        url="/products/monochrome-cap",
        category="Accessories",
    ),
]


def _names_match(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a == b or a in b or b in a


def _words(text: Optional[str]) -> set:
    return set(_WORD_RE.findall((text or "").lower()))


def _search_score(product: ProductRecord, terms: List[str]) -> int:
    # name hits count double
    name_words = _words(product.name)
    other_words = _words(product.category) | _words(product.description)
    return sum(2 if t in name_words else 1 if t in other_words else 0 for t in terms)


class CatalogLookup:
    """Looks product names up in a fixed list of records."""

    def __init__(self, products: Optional[List[ProductRecord]] = None):
        self.products = list(DEFAULT_CATALOG if products is None else products)

    @classmethod
    def from_json(cls, path) -> "CatalogLookup":
        """Load a catalog from a JSON array of product objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"Product catalog {path} must be a JSON array")
        products = [ProductRecord.from_dict(item) for item in raw if isinstance(item, dict)]
        logger.info(f"CatalogLookup: loaded catalog | path={path} | products={len(products)}")
        return cls(products)

    def lookup(self, names: List[str]) -> List[ProductRecord]:
        """
        Return the best catalog record for each name, in order. When fewer
        names match than were asked for, pad with other catalog products.
        """
        results: List[ProductRecord] = []
        for name in names:
            match = next((p for p in self.products if _names_match(p.name, name)), None)
            if match is not None:
                results.append(match)

        if len(results) < len(names):
            for product in self.products:
                if len(results) >= len(names):
                    break
                if product not in results:
                    results.append(product)

        return results

    def search(self, query: str, limit: int = SEARCH_RESULT_LIMIT) -> List[ProductRecord]:
        """
        Rank catalog products by how many query words appear in their name,
        category or description. Products matching nothing are left out.
        """
        terms = list(_words(query))
        scored = [(_search_score(p, terms), p) for p in self.products]
        ranked = sorted((s for s in scored if s[0] > 0), key=lambda s: -s[0])
        return [product for _, product in ranked[:limit]]


class SearchLookup:
    """Looks product names up with the Google Custom Search JSON API."""

    def __init__(
        self,
        api_key: str = GOOGLE_SEARCH_API_KEY,
        engine_id: str = GOOGLE_SEARCH_ENGINE_ID,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.engine_id = engine_id
        self.timeout = timeout
        self.session = requests.Session()

    def lookup(self, names: List[str]) -> List[ProductRecord]:
        results = []
        for name in names:
            hits = self.search(name, limit=1)
            if hits:
                results.append(hits[0])
        return results

    def search(self, query: str, limit: int = SEARCH_RESULT_LIMIT) -> List[ProductRecord]:
        """Return up to `limit` search hits; a failed request yields no hits."""
        search_query = query if "uk" in query.lower() else f"{query} uk"
        try:
            response = self.session.get(
                GOOGLE_SEARCH_URL,
                params={"key": self.api_key, "cx": self.engine_id, "q": search_query, "num": SEARCH_RESULT_LIMIT},
                timeout=self.timeout,
            )
            response.raise_for_status()
            items = response.json().get("items") or []
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(
                f"SearchLookup: search failed | query=\"{sanitize_log_string(search_query)}\" | error={e}"
            )
            return []

        return [self._record_from_item(item, query) for item in items[:limit]]

    @staticmethod
    def _record_from_item(item: dict, query: str) -> ProductRecord:
        images = (item.get("pagemap") or {}).get("cse_image") or [{}]
        return ProductRecord(
            name=item.get("title", query),
            description=item.get("snippet") or None,
            image=images[0].get("src") or None,
            url=item.get("link") or None,
        )


def get_product_lookup():
    """Pick the lookup implementation from configuration."""
    if GOOGLE_SEARCH_API_KEY and GOOGLE_SEARCH_ENGINE_ID:
        return SearchLookup()
    if PRODUCT_CATALOG_PATH:
        return CatalogLookup.from_json(PRODUCT_CATALOG_PATH)
    return CatalogLookup()
