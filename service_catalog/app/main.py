"""
Catalog Service

Read-only product catalog API over PostgreSQL with a Redis cache-aside
layer and request admission control.
"""

import time
from typing import Any, Dict, Optional

from fastapi import Query, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.metrics import MetricsCollector

from .adapters import PostgresQueryExecutor
from .admission import AdmissionController, AdmissionMiddleware
from .caching import RedisCacheClient
from .catalog import CatalogResolver, Resolution

SERVICE_NAME = "catalog"
SERVICE_PORT = 3000


class CatalogService(BaseService):
    """Product catalog service implementation."""

    def __init__(
        self,
        *,
        config: Optional[ServiceConfig] = None,
        executor: Optional[PostgresQueryExecutor] = None,
        cache: Optional[RedisCacheClient] = None,
        admission: Optional[AdmissionController] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        config = config or get_config(SERVICE_NAME, SERVICE_PORT)
        metrics = metrics or MetricsCollector(SERVICE_NAME)

        # The admission controller must exist before middleware is installed.
        self.admission = admission or AdmissionController(
            max_concurrent=config.max_concurrent_requests,
            queue_timeout=config.queue_timeout_seconds,
            enabled=config.enable_request_queue,
            metrics=metrics,
        )

        super().__init__(SERVICE_NAME, config.port, config=config, metrics=metrics)

        self.executor = executor or PostgresQueryExecutor(
            self.config.postgres_dsn,
            min_size=self.config.db_pool_min,
            max_size=self.config.db_pool_max,
            command_timeout=self.config.db_command_timeout,
            metrics=self.metrics,
        )
        self.cache = cache or RedisCacheClient(
            self.config.redis_url,
            connect_timeout=self.config.redis_connect_timeout,
            command_timeout=self.config.redis_command_timeout,
        )
        self.resolver = CatalogResolver(
            self.executor,
            self.cache,
            ttl_default=self.config.cache_ttl_default,
            ttl_latest=self.config.cache_ttl_latest,
            ttl_aggregate=self.config.cache_ttl_aggregate,
            metrics=self.metrics,
        )

        self._setup_health_routes()
        self._setup_catalog_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    async def on_startup(self):
        await self.executor.start()
        self.logger.info(
            "Catalog service started",
            request_queue=self.admission.enabled,
            max_concurrent=self.admission.max_concurrent,
        )

    async def on_shutdown(self):
        self.admission.shutdown()
        await self.cache.close()
        await self.executor.stop()
        self.logger.info("Catalog service stopped")

    def _setup_middleware(self):
        # Added first so the request timing middleware wraps it and also
        # decorates 503 admission rejections.
        self.app.add_middleware(AdmissionMiddleware, controller=self.admission)
        super()._setup_middleware()

    @staticmethod
    def _respond(resolution: Resolution, response: Response) -> Dict[str, Any]:
        response.headers["X-Cache"] = resolution.cache_status
        return resolution.body

    async def _check_dependencies(self) -> Dict[str, Dict[str, Any]]:
        """Check PostgreSQL and Redis, timing each check."""
        checks: Dict[str, Dict[str, Any]] = {}
        for name, check in (("database", self.executor.health_check), ("redis", self.cache.ping)):
            start = time.perf_counter()
            healthy = await check()
            checks[name] = {
                "status": "ok" if healthy else "error",
                "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
            }
            if not healthy:
                checks[name]["error"] = f"{name} health check failed"
        return checks

    def _setup_health_routes(self):
        """Dependency-aware health endpoints."""

        @self.app.get("/health/detailed")
        async def health_detailed():
            checks = await self._check_dependencies()
            status = "ok" if all(check["status"] == "ok" for check in checks.values()) else "degraded"
            self.metrics.record_health_check(status)
            return {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": self._get_uptime(),
                "environment": self.config.env,
                "checks": {"application": {"status": "ok"}, **checks},
                "admission": self.admission.snapshot(),
            }

        @self.app.get("/health/ready")
        async def health_ready():
            checks = await self._check_dependencies()
            failing = [name for name, check in checks.items() if check["status"] != "ok"]
            if failing or self.admission.closed:
                self.metrics.record_health_check("not_ready")
                return JSONResponse(
                    status_code=503,
                    content={"status": "not ready", "failing": failing, "closed": self.admission.closed},
                )
            self.metrics.record_health_check("ready")
            return {"status": "ready"}

    def _setup_catalog_routes(self):
        """Catalog read endpoints."""

        # Literal sub-paths are registered before /api/products/{product_id}.
        @self.app.get("/api/products/search")
        async def search_products(
            response: Response,
            search: Optional[str] = Query(None),
            page: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
        ):
            """Search products by name and description."""
            resolution = await self.resolver.search_products(search, page, limit)
            return self._respond(resolution, response)

        @self.app.get("/api/products/latest")
        async def latest_products(
            response: Response,
            page: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
        ):
            """Newest products first."""
            resolution = await self.resolver.latest_products(page, limit)
            return self._respond(resolution, response)

        @self.app.get("/api/products/category/{category_name}")
        async def products_by_category(category_name: str, response: Response):
            """Up to five products from a category, topped up at random."""
            resolution = await self.resolver.products_by_category(category_name)
            return self._respond(resolution, response)

        @self.app.get("/api/products/{product_id}")
        async def get_product(product_id: str, response: Response):
            """Single product by index."""
            resolution = await self.resolver.get_product(product_id)
            return self._respond(resolution, response)

        @self.app.get("/api/products")
        async def list_products(
            response: Response,
            page: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
        ):
            """Paginated product listing."""
            resolution = await self.resolver.list_products(page, limit)
            return self._respond(resolution, response)

        @self.app.get("/api/categories")
        async def list_categories(response: Response):
            """All categories ordered by name."""
            resolution = await self.resolver.list_categories()
            return self._respond(resolution, response)

        @self.app.get("/api/statistics/download")
        async def download_statistics():
            """Catalog statistics as a CSV attachment."""
            resolution = await self.resolver.statistics()
            return Response(
                content=resolution.envelope.to_csv(),
                media_type="text/csv",
                headers={
                    "Content-Disposition": 'attachment; filename="product_statistics.csv"',
                    "X-Cache": resolution.cache_status,
                },
            )


def create_app(**overrides):
    """Create FastAPI application."""
    service = CatalogService(**overrides)
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
