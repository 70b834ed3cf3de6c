"""Watchlist mutation endpoints: add, remove, reorder, rate, comment and manual price.

Bodies are JSON. Validation problems answer 400, unknown tickers 404 and
duplicates 409, each as ``{"error": "..."}``.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tickerboard.exceptions import (
    DuplicateTickerError,
    TickerNotFoundError,
    WatchlistError,
)
from tickerboard.models import ListType
from tickerboard.watchlist.manager import quantize_change, quantize_price

log = structlog.get_logger(__name__)

router = APIRouter()


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def _watchlist_error(exc: WatchlistError) -> JSONResponse:
    if isinstance(exc, TickerNotFoundError):
        return _error(str(exc), 404)
    if isinstance(exc, DuplicateTickerError):
        return _error(str(exc), 409)
    return _error(str(exc))


def _parse_list_type(raw: str) -> ListType | None:
    try:
        return ListType(raw)
    except ValueError:
        return None


def _unknown_list(raw: str) -> JSONResponse:
    choices = ", ".join(list_type.value for list_type in ListType)
    return _error(f"Unknown list: {raw}. Use one of: {choices}", 404)


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _parse_decimal(raw: Any, quantize: Callable[[Decimal], Decimal]) -> Decimal | None:
    """Parse a finite number that the watchlist can round; None otherwise."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    try:
        quantize(value)
    except ValueError:
        return None
    return value


@router.post("/watchlist/{list_type}")
async def add_ticker(request: Request, list_type: str) -> JSONResponse:
    """Add a ticker. Body: ``{"symbol": "btc"}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    if body is None or not isinstance(body.get("symbol"), str):
        return _error("Body must be a JSON object with a 'symbol' string")

    try:
        record = await request.app.state.watchlist.add(resolved, body["symbol"])
    except WatchlistError as exc:
        return _watchlist_error(exc)
    return JSONResponse(content=record.to_dict(), status_code=201)


@router.delete("/watchlist/{list_type}/{symbol}")
async def remove_ticker(request: Request, list_type: str, symbol: str) -> JSONResponse:
    """Remove one ticker from a list."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    try:
        await request.app.state.watchlist.remove(resolved, symbol.upper())
    except WatchlistError as exc:
        return _watchlist_error(exc)
    return JSONResponse(content={"removed": symbol.upper()})


@router.delete("/watchlist/{list_type}")
async def clear_list(request: Request, list_type: str) -> JSONResponse:
    """Remove every ticker from a list."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    removed = await request.app.state.watchlist.clear(resolved)
    log.info("list_cleared_via_dashboard", list_type=resolved.value)
    return JSONResponse(content={"removed": removed})


@router.post("/watchlist/{list_type}/{symbol}/move")
async def move_ticker(request: Request, list_type: str, symbol: str) -> JSONResponse:
    """Move a ticker one slot. Body: ``{"direction": "up" | "down"}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    direction = body.get("direction") if body is not None else None
    if direction not in ("up", "down"):
        return _error("Body must contain 'direction': 'up' or 'down'")

    try:
        order = await request.app.state.watchlist.move(resolved, symbol.upper(), direction)
    except WatchlistError as exc:
        return _watchlist_error(exc)
    return JSONResponse(content={"order": order})


@router.put("/watchlist/{list_type}/order")
async def reorder_list(request: Request, list_type: str) -> JSONResponse:
    """Apply a full display order. Body: ``{"symbols": [...]}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    symbols = body.get("symbols") if body is not None else None
    if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
        return _error("Body must contain 'symbols': a list of strings")

    try:
        order = await request.app.state.watchlist.reorder(resolved, symbols)
    except ValueError as exc:
        return _error(str(exc))
    return JSONResponse(content={"order": order})


@router.post("/watchlist/{list_type}/{symbol}/rating")
async def rate_ticker(request: Request, list_type: str, symbol: str) -> JSONResponse:
    """Toggle a star rating. Body: ``{"rating": 1-3}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    rating = body.get("rating") if body is not None else None
    if not isinstance(rating, int) or isinstance(rating, bool):
        return _error("Body must contain an integer 'rating'")

    try:
        stars = await request.app.state.watchlist.rate(resolved, symbol.upper(), rating)
    except WatchlistError as exc:
        return _watchlist_error(exc)
    return JSONResponse(content={"star_rating": stars})


@router.put("/watchlist/{list_type}/{symbol}/comment")
async def set_comment(request: Request, list_type: str, symbol: str) -> JSONResponse:
    """Replace a ticker's comment. Body: ``{"comment": "..."}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    comment = body.get("comment") if body is not None else None
    if not isinstance(comment, str):
        return _error("Body must contain a 'comment' string")

    try:
        await request.app.state.watchlist.set_comment(resolved, symbol.upper(), comment)
    except WatchlistError as exc:
        return _watchlist_error(exc)
    record = request.app.state.watchlist.get(resolved, symbol.upper())
    return JSONResponse(content=record.to_dict())


@router.put("/watchlist/{list_type}/{symbol}/price")
async def set_manual_price(request: Request, list_type: str, symbol: str) -> JSONResponse:
    """Enter a price manually. Body: ``{"price": "1.23", "change": "-0.5"}``."""
    resolved = _parse_list_type(list_type)
    if resolved is None:
        return _unknown_list(list_type)
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body")

    price = _parse_decimal(body.get("price"), quantize_price)
    if price is None:
        return _error("'price' must be a number")
    change = _parse_decimal(body.get("change"), quantize_change) or Decimal("0")

    try:
        record = await request.app.state.watchlist.set_manual_price(
            resolved, symbol.upper(), price, change
        )
    except WatchlistError as exc:
        return _watchlist_error(exc)
    return JSONResponse(content=record.to_dict())
