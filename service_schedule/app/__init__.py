"""
Schedule Service package for Sportify.

The service aggregates game schedules from upstream sports providers and
re-serves them in one schema, with:
- Read-through file caching with date-aware freshness and stale fallback
- Per-key single-flight so concurrent misses share one upstream call
- Per-client rate limiting on the combined schedule route

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.caching: Entry store, freshness policy, cache-aside engine.
- app.adapters: HTTP clients for ESPN and balldontlie.
- app.normalization: Upstream payload -> unified game schema.
- app.ratelimit: Fixed-window request limiter.
"""
