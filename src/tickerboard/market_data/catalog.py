"""Instrument catalog parsing and the built-in fallback list.

A symbol appears at most once in a catalog. When the same symbol is listed
on both markets the later entry wins; catalogs are always merged spot first,
then futures, so futures take precedence.
"""

from collections.abc import Iterable

from tickerboard.exceptions import MalformedPayloadError
from tickerboard.models import InstrumentCatalogEntry, Market

TRADING_STATUS = "TRADING"

# Well-known pairs used when neither exchangeInfo request succeeds. The list
# keeps both market listings of some symbols; merging collapses them to the
# futures listing.
_FALLBACK_LISTINGS: list[tuple[str, str, Market]] = [
    ("BTCUSDT", "Bitcoin", Market.SPOT),
    ("ETHUSDT", "Ethereum", Market.SPOT),
    ("BNBUSDT", "Binance Coin", Market.SPOT),
    ("SOLUSDT", "Solana", Market.SPOT),
    ("XRPUSDT", "Ripple", Market.SPOT),
    ("ADAUSDT", "Cardano", Market.SPOT),
    ("DOGEUSDT", "Dogecoin", Market.SPOT),
    ("DOTUSDT", "Polkadot", Market.SPOT),
    ("SHIBUSDT", "Shiba Inu", Market.SPOT),
    ("MATICUSDT", "Polygon", Market.SPOT),
    ("BTCUSDT", "Bitcoin Futures", Market.FUTURES),
    ("ETHUSDT", "Ethereum Futures", Market.FUTURES),
    ("SOLUSDT", "Solana Futures", Market.FUTURES),
    ("XRPUSDT", "Ripple Futures", Market.FUTURES),
    ("ADAUSDT", "Cardano Futures", Market.FUTURES),
    ("LINKUSDT", "Chainlink", Market.SPOT),
    ("AVAXUSDT", "Avalanche", Market.SPOT),
    ("LTCUSDT", "Litecoin", Market.SPOT),
    ("ATOMUSDT", "Cosmos", Market.SPOT),
    ("UNIUSDT", "Uniswap", Market.SPOT),
    ("LINKUSDT", "Chainlink Futures", Market.FUTURES),
    ("AVAXUSDT", "Avalanche Futures", Market.FUTURES),
    ("LTCUSDT", "Litecoin Futures", Market.FUTURES),
    ("ATOMUSDT", "Cosmos Futures", Market.FUTURES),
    ("UNIUSDT", "Uniswap Futures", Market.FUTURES),
]


def merge_entries(
    catalog: dict[str, InstrumentCatalogEntry],
    entries: Iterable[InstrumentCatalogEntry],
) -> dict[str, InstrumentCatalogEntry]:
    """Merge entries into a catalog in place; later entries overwrite earlier ones."""
    for entry in entries:
        catalog[entry.symbol] = entry
    return catalog


def fallback_catalog() -> dict[str, InstrumentCatalogEntry]:
    """Return a fresh copy of the built-in catalog."""
    return merge_entries(
        {},
        (
            InstrumentCatalogEntry(symbol=symbol, display_name=name, market=market)
            for symbol, name, market in _FALLBACK_LISTINGS
        ),
    )


def parse_exchange_info(
    payload: dict,
    market: Market,
    quote_asset: str = "USDT",
) -> list[InstrumentCatalogEntry]:
    """Extract trading instruments quoted in ``quote_asset`` from an exchangeInfo payload.

    Individual descriptors missing ``symbol``, ``status`` or ``baseAsset`` are
    skipped.

    Raises:
        MalformedPayloadError: if the payload has no ``symbols`` list.
    """
    descriptors = payload.get("symbols") if isinstance(payload, dict) else None
    if not isinstance(descriptors, list):
        raise MalformedPayloadError(f"exchangeInfo ({market.value}) has no symbols list")

    entries = []
    for descriptor in descriptors:
        if not isinstance(descriptor, dict):
            continue
        symbol = descriptor.get("symbol")
        base_asset = descriptor.get("baseAsset")
        if not isinstance(symbol, str) or not isinstance(base_asset, str):
            continue
        if descriptor.get("status") != TRADING_STATUS or not symbol.endswith(quote_asset):
            continue
        entries.append(
            InstrumentCatalogEntry(symbol=symbol, display_name=base_asset, market=market)
        )
    return entries
