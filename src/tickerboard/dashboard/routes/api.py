"""JSON read endpoints: connection status, catalog, prices, history and trends.

Market data endpoints never fail on upstream problems: an unavailable value
is returned as ``null`` with status 200.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tickerboard.models import Market

log = structlog.get_logger(__name__)

router = APIRouter()


def _parse_market(raw: str | None) -> Market | None:
    if raw is None:
        return None
    try:
        return Market(raw.lower())
    except ValueError:
        return None


def _resolve_market(request: Request, symbol: str, raw: str | None) -> Market | None:
    """Explicit ?market= wins; otherwise use the catalog listing, defaulting to spot."""
    if raw is not None:
        return _parse_market(raw)
    listing = request.app.state.market_data.lookup(symbol)
    return listing.market if listing is not None else Market.SPOT


def _bad_market(raw: str | None) -> JSONResponse:
    return JSONResponse(
        content={"error": f"Unknown market: {raw}. Use 'spot' or 'futures'."},
        status_code=400,
    )


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Current connection snapshot."""
    monitor = request.app.state.connectivity_monitor
    return JSONResponse(content=monitor.state.to_dict())


@router.get("/catalog")
async def get_catalog(request: Request, query: str | None = None) -> JSONResponse:
    """Instrument catalog, or up to 10 symbol suggestions when ``query`` is given."""
    market_data = request.app.state.market_data
    if query is not None:
        entries = market_data.search_catalog(query)
    else:
        entries = list(market_data.catalog.values())
    return JSONResponse(content=[entry.to_dict() for entry in entries])


@router.get("/price/{symbol}")
async def get_price(request: Request, symbol: str, market: str | None = None) -> JSONResponse:
    """Latest price for a symbol (``price`` is null when unavailable)."""
    symbol = symbol.upper()
    resolved = _resolve_market(request, symbol, market)
    if resolved is None:
        return _bad_market(market)

    price = await request.app.state.market_data.get_current_price(symbol, resolved)
    return JSONResponse(content={
        "symbol": symbol,
        "market": resolved.value,
        "price": str(price) if price is not None else None,
    })


@router.get("/history/{symbol}")
async def get_history(
    request: Request,
    symbol: str,
    market: str | None = None,
    days: int | None = None,
) -> JSONResponse:
    """Candle window for a symbol (``candles`` is null when unavailable)."""
    symbol = symbol.upper()
    resolved = _resolve_market(request, symbol, market)
    if resolved is None:
        return _bad_market(market)
    if days is not None and days < 1:
        return JSONResponse(content={"error": "days must be at least 1"}, status_code=400)

    candles = await request.app.state.market_data.get_price_history(symbol, resolved, days)
    return JSONResponse(content={
        "symbol": symbol,
        "market": resolved.value,
        "candles": [c.to_dict() for c in candles] if candles is not None else None,
    })


@router.get("/trend/{symbol}")
async def get_trend(request: Request, symbol: str, market: str | None = None) -> JSONResponse:
    """Trend classification for a symbol (``trend`` is null when unavailable)."""
    symbol = symbol.upper()
    resolved = _resolve_market(request, symbol, market)
    if resolved is None:
        return _bad_market(market)

    trend = await request.app.state.market_data.analyze_trend(symbol, resolved)
    return JSONResponse(content={
        "symbol": symbol,
        "market": resolved.value,
        "trend": trend.to_dict() if trend is not None else None,
    })


@router.get("/watchlist")
async def get_watchlist(request: Request) -> JSONResponse:
    """All four buckets with their records in display order."""
    return JSONResponse(content=request.app.state.watchlist.to_dict())


@router.get("/watchlist/stats")
async def get_watchlist_stats(request: Request) -> JSONResponse:
    """Ticker counts per bucket and in total."""
    return JSONResponse(content=request.app.state.watchlist.stats())
