"""
Catalog Service package for the Product Catalog Access service.

The catalog serves read-only product data, enforcing:
- Cache-aside reads: Redis in front of PostgreSQL, TTL-bounded staleness
- Input normalization before any cache or store access
- Admission control: bounded concurrency with an optional FIFO queue

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: PostgreSQL query executor.
- app.caching: Result-type Redis client and cache keys.
- app.catalog: Parameters, envelopes, SQL and the resolver.
- app.admission: Admission controller and HTTP middleware.
"""
