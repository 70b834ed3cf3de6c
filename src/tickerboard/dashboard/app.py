"""FastAPI dashboard application factory with JSON API and WebSocket hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from tickerboard.dashboard.routes import actions, api, ws
from tickerboard.dashboard.routes.ws import DashboardHub


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application. Route handlers expect
        ``connectivity_monitor``, ``market_data`` and ``watchlist`` on
        ``app.state``; the lifespan (or a test) puts them there.
    """
    app = FastAPI(
        title="Ticker Watchlist Dashboard",
        lifespan=lifespan,
    )

    app.state.hub = DashboardHub()

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/api")
    app.include_router(ws.router)

    return app
