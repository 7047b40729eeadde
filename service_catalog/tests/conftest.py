"""
Shared fixtures for Catalog service tests.

``FakeRedis`` stands in for a ``redis.asyncio`` client and ``FakeExecutor``
answers catalog queries from an in-memory product table, keyed by the
operation name each resolver call passes.
"""

import random
import re
from typing import Any, Dict, List, Optional, Sequence

import pytest

from service_catalog.app.caching.cache_client import RedisCacheClient
from service_catalog.app.catalog.resolver import CatalogResolver
from shared.config import get_config
from shared.metrics import MetricsCollector


class FakeRedis:
    """Dict-backed async Redis double with failure switches."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise ConnectionError("redis unavailable")
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        if self.fail_writes:
            raise ConnectionError("redis unavailable")
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def ping(self) -> bool:
        if self.fail_reads:
            raise ConnectionError("redis unavailable")
        return True

    async def aclose(self) -> None:
        self.closed = True


def make_products(count: int, categories: Sequence[str] = ("Electronics", "Books", "Garden")) -> List[Dict[str, Any]]:
    products = []
    for i in range(1, count + 1):
        products.append({
            "id": i,
            "index": i,
            "name": f"Product {i:03d}",
            "category": categories[(i - 1) % len(categories)],
            "brand": f"Brand {i % 4}",
            "price": round(9.99 + i, 2),
            "image_url": f"https://img.example.com/{i}.jpg",
            "stock": i % 7,
            "internal_id": f"SKU-{i:05d}",
            "availability": ("in_stock", "limited_stock", "out_of_stock")[i % 3],
            "search_vector": f"'product':1 '{i:03d}':2",
        })
    return products


_SELECT_LIST = re.compile(r"SELECT\s+(.*?)\s+FROM\s", re.DOTALL | re.IGNORECASE)
_IDENTIFIER = re.compile(r"\w+")


def selected_columns(query: str) -> Optional[List[str]]:
    """Plain column names in the SELECT list, or None for `*` and expressions."""
    match = _SELECT_LIST.search(query)
    if not match:
        return None
    columns = [column.strip() for column in match.group(1).split(",")]
    if not all(_IDENTIFIER.fullmatch(column) for column in columns):
        return None
    return columns


class FakeExecutor:
    """In-memory query executor that records every call."""

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None, categories: Optional[List[Dict[str, Any]]] = None):
        self.products = products if products is not None else make_products(30)
        self.categories = categories if categories is not None else [
            {"id": 2, "name": "Books", "created_at": "2024-01-02T00:00:00"},
            {"id": 1, "name": "Electronics", "created_at": "2024-01-01T00:00:00"},
            {"id": 3, "name": "Garden", "created_at": "2024-01-03T00:00:00"},
        ]
        self.calls: List[Dict[str, Any]] = []
        self.failures: Dict[str, Exception] = {}
        self.started = False
        self.healthy = True

    def operations(self) -> List[str]:
        return [call["operation"] for call in self.calls]

    async def start(self):
        self.started = True

    async def stop(self):
        self.started = False

    async def health_check(self) -> bool:
        return self.healthy

    async def execute(self, query: str, params: Sequence[Any] = (), *, operation: str = "query") -> List[Dict[str, Any]]:
        self.calls.append({"operation": operation, "query": query, "params": tuple(params)})
        if operation in self.failures:
            raise self.failures[operation]
        handler = getattr(self, f"_{operation}")
        columns = selected_columns(query)
        rows = handler(*params)
        if columns is None:
            return [dict(row) for row in rows]
        return [{column: row[column] for column in columns if column in row} for row in rows]

    def _by_index(self, reverse: bool = False) -> List[Dict[str, Any]]:
        return sorted(self.products, key=lambda p: p["index"], reverse=reverse)

    def _list_products(self, limit, offset):
        return self._by_index()[offset:offset + limit]

    def _list_products_count(self):
        return [{"total": len(self.products)}]

    _latest_products_count = _list_products_count

    def _latest_products(self, limit, offset):
        return self._by_index(reverse=True)[offset:offset + limit]

    def _get_product(self, index):
        return [p for p in self.products if p["index"] == index]

    def _matches(self, term):
        return sorted(
            (p for p in self.products if term.lower() in p["name"].lower()),
            key=lambda p: (p["name"], p["id"]),
        )

    def _search_products(self, term, pattern, limit, offset):
        return self._matches(term)[offset:offset + limit]

    def _search_products_count(self, term, pattern):
        return [{"total": len(self._matches(term))}]

    def _products_by_category(self, category, limit):
        rows = [p for p in self._by_index() if (p["category"] or "").lower() == category.lower()]
        return rows[:limit]

    def _category_random_fill(self, category, exclude_ids, limit):
        pool = [
            p for p in self.products
            if (p["category"] or "").lower() != category.lower() and p["id"] not in exclude_ids
        ]
        return random.sample(pool, min(limit, len(pool)))

    def _list_categories(self):
        return sorted(self.categories, key=lambda c: c["name"])

    def _catalog_statistics(self):
        prices = [p["price"] for p in self.products]
        availability = [p["availability"] for p in self.products]
        return [{
            "total_products": len(self.products),
            "unique_brands": len({p["brand"] for p in self.products}),
            "unique_categories": len({p["category"] for p in self.products}),
            "average_price": round(sum(prices) / len(prices), 2) if prices else None,
            "price_min": min(prices) if prices else None,
            "price_max": max(prices) if prices else None,
            "in_stock_count": availability.count("in_stock"),
            "limited_stock_count": availability.count("limited_stock"),
            "out_of_stock_count": availability.count("out_of_stock"),
        }]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return RedisCacheClient(client=fake_redis)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def metrics():
    return MetricsCollector("catalog-test")


@pytest.fixture
def resolver(executor, cache, metrics):
    return CatalogResolver(executor, cache, metrics=metrics)


@pytest.fixture
def catalog_config():
    return get_config("catalog", 3000, env="test")
