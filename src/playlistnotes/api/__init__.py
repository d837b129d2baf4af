"""HTTP API (FastAPI routers, dependencies, exception handlers)."""
