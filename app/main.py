"""
ASGI entry point for Budget Tracker

Run locally with the in-memory store (the default):
    uvicorn app.main:app --reload

Run against Cosmos DB:
    USE_IN_MEMORY_DB=false COSMOS_DB_ENDPOINT=... COSMOS_DB_KEY=... \
        uvicorn app.main:app

The storage backend is chosen once, when the app starts.
"""

import uvicorn

from budget_tracker.api import create_app
from budget_tracker.config import get_settings, validate_all_settings


app = create_app()


def main():
    """Start the API server after checking configuration."""
    settings = get_settings()
    if not settings.app.use_in_memory_db:
        checks = validate_all_settings()
        if not checks["cosmos"]:
            raise SystemExit(f"Cosmos DB is not configured: {checks['cosmos_error']}")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app.debug_mode,
    )


if __name__ == "__main__":
    main()
