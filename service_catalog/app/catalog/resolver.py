"""
Cache-aside resolver for catalog reads.

Each public operation normalizes its parameters, derives a cache key, and
serves the envelope from Redis when present. On a miss it queries
PostgreSQL, assembles the envelope and writes it back with the TTL class of
the operation. Cache faults are logged and absorbed; database faults
propagate unchanged to the HTTP boundary.
"""

import json
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type

from shared.errors import NotFoundError
from shared.logging import get_logger

from ..caching import keys
from ..caching.cache_client import CacheStatus
from . import queries
from .models import (
    CatalogStatistics,
    CategoryList,
    CategoryProducts,
    Envelope,
    ProductDetail,
    ProductPage,
    Resolution,
)
from .params import (
    CATEGORY_RESULT_SIZE,
    LATEST_DEFAULT_LIMIT,
    LATEST_MAX_LIMIT,
    escape_like,
    normalize_category_name,
    normalize_pagination,
    normalize_product_id,
    normalize_search_term,
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CatalogResolver:
    """Resolves catalog queries through the cache, falling back to the store."""

    def __init__(
        self,
        executor,
        cache,
        *,
        ttl_default: int = 60,
        ttl_latest: int = 30,
        ttl_aggregate: int = 300,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.executor = executor
        self.cache = cache
        self.ttl_default = ttl_default
        self.ttl_latest = ttl_latest
        self.ttl_aggregate = ttl_aggregate
        self.metrics = metrics
        self.logger = get_logger("catalog.resolver")

    async def list_products(self, page: Any = None, limit: Any = None) -> Resolution:
        """Offset-paginated listing ordered by ``index``."""
        pagination = normalize_pagination(page, limit)

        async def compute() -> ProductPage:
            rows = await self.executor.execute(
                queries.LIST_PRODUCTS,
                (pagination.limit, pagination.offset),
                operation="list_products",
            )
            total = await self._cached_total(
                "list_products", keys.TOTAL_COUNT_KEY, queries.COUNT_PRODUCTS, ()
            )
            return ProductPage(products=rows, page=pagination.page, limit=pagination.limit, total=total)

        return await self._resolve(
            "list_products",
            keys.listing_key(pagination.page, pagination.limit),
            ProductPage,
            self.ttl_default,
            compute,
            params={"page": pagination.page, "limit": pagination.limit},
        )

    async def get_product(self, product_id: Any) -> Resolution:
        """Single product by its ``index``. Misses are never cached."""
        index = normalize_product_id(product_id)

        async def compute() -> ProductDetail:
            rows = await self.executor.execute(queries.GET_PRODUCT, (index,), operation="get_product")
            if not rows:
                self.logger.info("Product not found", product_id=index)
                raise NotFoundError("Product", index)
            return ProductDetail(product=rows[0])

        return await self._resolve(
            "get_product",
            keys.item_key(index),
            ProductDetail,
            self.ttl_default,
            compute,
            params={"id": index},
        )

    async def search_products(self, search: Optional[str], page: Any = None, limit: Any = None) -> Resolution:
        """Full-text or substring search ranked by relevance."""
        term = normalize_search_term(search)
        pagination = normalize_pagination(page, limit)
        pattern = f"%{escape_like(term)}%"

        async def compute() -> ProductPage:
            rows = await self.executor.execute(
                queries.SEARCH_PRODUCTS,
                (term, pattern, pagination.limit, pagination.offset),
                operation="search_products",
            )
            total = await self._cached_total(
                "search_products", keys.search_count_key(term), queries.COUNT_SEARCH, (term, pattern)
            )
            return ProductPage(
                products=rows,
                page=pagination.page,
                limit=pagination.limit,
                total=total,
                search_term=term,
            )

        return await self._resolve(
            "search_products",
            keys.search_key(term, pagination.page, pagination.limit),
            ProductPage,
            self.ttl_default,
            compute,
            params={"search": term, "page": pagination.page, "limit": pagination.limit},
        )

    async def latest_products(self, page: Any = None, limit: Any = None) -> Resolution:
        """Newest products first."""
        pagination = normalize_pagination(
            page, limit, default_limit=LATEST_DEFAULT_LIMIT, max_limit=LATEST_MAX_LIMIT
        )

        async def compute() -> ProductPage:
            rows = await self.executor.execute(
                queries.LATEST_PRODUCTS,
                (pagination.limit, pagination.offset),
                operation="latest_products",
            )
            total = await self._cached_total(
                "latest_products", keys.TOTAL_COUNT_KEY, queries.COUNT_PRODUCTS, ()
            )
            return ProductPage(products=rows, page=pagination.page, limit=pagination.limit, total=total)

        return await self._resolve(
            "latest_products",
            keys.latest_key(pagination.page, pagination.limit),
            ProductPage,
            self.ttl_latest,
            compute,
            params={"page": pagination.page, "limit": pagination.limit},
        )

    async def products_by_category(self, category_name: Optional[str]) -> Resolution:
        """
        Up to five products from a category.

        When the category has fewer matches, the remainder is filled with
        randomly chosen products from other categories in a single query.
        """
        category = normalize_category_name(category_name)

        async def compute() -> CategoryProducts:
            matches = await self.executor.execute(
                queries.PRODUCTS_BY_CATEGORY,
                (category, CATEGORY_RESULT_SIZE),
                operation="products_by_category",
            )
            fill: List[Dict[str, Any]] = []
            needed = CATEGORY_RESULT_SIZE - len(matches)
            if needed > 0:
                self.logger.info(
                    "Filling category result with random products",
                    category=category,
                    category_matches=len(matches),
                    needed=needed,
                )
                exclude_ids = [row["id"] for row in matches if row.get("id") is not None]
                fill = await self.executor.execute(
                    queries.RANDOM_FILL,
                    (category, exclude_ids, needed),
                    operation="category_random_fill",
                )

            products = matches + fill
            if not products:
                raise NotFoundError("Category", category)
            return CategoryProducts(
                products=products,
                category=category,
                category_matches=len(matches),
                random_products=len(fill),
            )

        return await self._resolve(
            "products_by_category",
            keys.category_key(category, CATEGORY_RESULT_SIZE),
            CategoryProducts,
            self.ttl_default,
            compute,
            params={"category": category},
        )

    async def list_categories(self) -> Resolution:
        """All categories ordered by name."""

        async def compute() -> CategoryList:
            rows = await self.executor.execute(queries.LIST_CATEGORIES, (), operation="list_categories")
            return CategoryList(categories=rows)

        return await self._resolve(
            "list_categories", keys.CATEGORIES_KEY, CategoryList, self.ttl_aggregate, compute
        )

    async def statistics(self) -> Resolution:
        """Aggregate catalog statistics."""

        async def compute() -> CatalogStatistics:
            rows = await self.executor.execute(queries.CATALOG_STATISTICS, (), operation="catalog_statistics")
            return CatalogStatistics(values=rows[0] if rows else {})

        return await self._resolve(
            "catalog_statistics", keys.STATISTICS_KEY, CatalogStatistics, self.ttl_aggregate, compute
        )

    async def _resolve(
        self,
        operation: str,
        key: str,
        envelope_type: Type[Envelope],
        ttl: int,
        compute: Callable[[], Awaitable[Envelope]],
        params: Optional[Dict[str, Any]] = None,
    ) -> Resolution:
        params = params or {}
        cached = await self._read_envelope(operation, key, envelope_type)
        if cached is not None:
            self.logger.info("Cache hit", operation=operation, cache_key=key, **params)
            return Resolution(cached, Resolution.HIT)

        self.logger.info("Cache miss, querying database", operation=operation, cache_key=key, **params)
        envelope = await compute()
        await self._write(operation, key, envelope.serialize(), ttl)
        return Resolution(envelope, Resolution.MISS)

    async def _read_envelope(self, operation: str, key: str, envelope_type: Type[Envelope]) -> Optional[Envelope]:
        result = await self.cache.get(key)

        if result.status is CacheStatus.ERROR:
            self.logger.warning("Cache read failed, using database", operation=operation, cache_key=key, error=result.error)
            self._record_lookup(operation, "error")
            return None
        if result.status is not CacheStatus.HIT:
            self._record_lookup(operation, "miss")
            return None

        try:
            envelope = envelope_type.deserialize(result.value)
        except (ValueError, TypeError, KeyError) as e:
            self.logger.warning("Discarding corrupt cache entry", operation=operation, cache_key=key, error=str(e))
            self._record_lookup(operation, "corrupt")
            return None

        self._record_lookup(operation, "hit")
        return envelope

    async def _cached_total(self, operation: str, key: str, query: str, params: Sequence[Any]) -> int:
        """Total row count, cached under its own key with the aggregate TTL."""
        count_operation = f"{operation}_count"
        result = await self.cache.get(key)
        if result.status is CacheStatus.HIT:
            try:
                total = int(json.loads(result.value))
            except (ValueError, TypeError) as e:
                self._record_lookup(count_operation, "corrupt")
                self.logger.warning("Discarding corrupt count entry", cache_key=key, error=str(e))
            else:
                self._record_lookup(count_operation, "hit")
                return total
        elif result.status is CacheStatus.ERROR:
            self._record_lookup(count_operation, "error")
            self.logger.warning("Count cache read failed, using database", cache_key=key, error=result.error)
        else:
            self._record_lookup(count_operation, "miss")

        rows = await self.executor.execute(query, params, operation=count_operation)
        total = int(rows[0]["total"]) if rows else 0
        await self._write(count_operation, key, json.dumps(total), self.ttl_aggregate)
        return total

    async def _write(self, operation: str, key: str, payload: str, ttl: int) -> None:
        result = await self.cache.set(key, payload, ttl)
        if result.failed:
            self.logger.warning("Cache write failed", operation=operation, cache_key=key, error=result.error)
        if self.metrics:
            self.metrics.increment_counter("cache_writes_total", operation=operation, result=result.status.value)

    def _record_lookup(self, operation: str, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_lookups_total", operation=operation, result=result)
