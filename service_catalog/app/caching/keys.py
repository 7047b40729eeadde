"""
Cache key derivation for catalog queries.

Keys are built from the operation name followed by its parameters in a
fixed declared order. Free-text segments are percent-encoded so that a
``:`` inside a search term or category name cannot shift the layout.
"""

from typing import Any
from urllib.parse import quote

PRODUCTS = "products"
CATEGORIES = "categories"
STATISTICS = "statistics"

TOTAL_COUNT_KEY = "products:total:count"
CATEGORIES_KEY = "categories:all"
STATISTICS_KEY = "statistics:summary"


def encode_segment(value: Any) -> str:
    """Encode a single key segment."""
    return quote(str(value), safe="")


def build_key(namespace: str, *parts: Any) -> str:
    """Join a namespace and already-ordered parts with ``:``."""
    return ":".join([namespace, *(str(part) for part in parts)])


def listing_key(page: int, limit: int) -> str:
    return build_key(PRODUCTS, "page", page, "limit", limit)


def item_key(product_id: int) -> str:
    return build_key(PRODUCTS, "item", product_id)


def search_key(term: str, page: int, limit: int) -> str:
    return build_key(PRODUCTS, "search", encode_segment(term), "page", page, "limit", limit)


def search_count_key(term: str) -> str:
    return build_key(PRODUCTS, "search", encode_segment(term), "count")


def latest_key(page: int, limit: int) -> str:
    return build_key(PRODUCTS, "latest", "page", page, "limit", limit)


def category_key(category: str, limit: int) -> str:
    return build_key(PRODUCTS, "category", encode_segment(category), "limit", limit)
