"""Price trend classification against the mean close of a candle window.

Band-threshold classifier: the latest close is compared with the simple
average of every close in the window (not a rolling sub-window). Inside the
+/- band around the mean the trend is NEUTRAL with zero confidence; outside
it, confidence is the relative deviation scaled by ``confidence_scale`` and
clamped to 100. With the defaults a 10% deviation already saturates.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from tickerboard.models import Candle, TrendDirection, TrendResult

_MAX_CONFIDENCE = 100


def mean_close(closes: Sequence[Decimal]) -> Decimal:
    """Arithmetic mean of closing prices. Caller guarantees a non-empty input."""
    return sum(closes, Decimal("0")) / Decimal(len(closes))


def _confidence(deviation: Decimal, mean: Decimal, scale: Decimal) -> int:
    # Half-up rounding: 78.5 scores 79, not 78
    scaled = (deviation / mean * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(_MAX_CONFIDENCE, int(scaled))


def classify_trend(
    closes: Sequence[Decimal],
    band: Decimal = Decimal("0.05"),
    confidence_scale: Decimal = Decimal("1000"),
) -> TrendResult | None:
    """Classify the trend of a close series, oldest first.

    Args:
        closes: Closing prices ordered oldest-first.
        band: Half-width of the neutral dead zone as a fraction of the mean.
        confidence_scale: Multiplier applied to the relative deviation.

    Returns:
        TrendResult, or None when fewer than 2 closes are available or the
        mean is not positive.
    """
    if len(closes) < 2:
        return None

    mean = mean_close(closes)
    if mean <= 0:
        return None
    latest = closes[-1]

    if latest > mean * (Decimal("1") + band):
        return TrendResult(
            direction=TrendDirection.UP,
            confidence=_confidence(latest - mean, mean, confidence_scale),
        )
    if latest < mean * (Decimal("1") - band):
        return TrendResult(
            direction=TrendDirection.DOWN,
            confidence=_confidence(mean - latest, mean, confidence_scale),
        )
    return TrendResult(direction=TrendDirection.NEUTRAL, confidence=0)


def classify_candles(
    candles: Sequence[Candle],
    band: Decimal = Decimal("0.05"),
    confidence_scale: Decimal = Decimal("1000"),
) -> TrendResult | None:
    """Convenience wrapper: classify the close series of a candle window."""
    return classify_trend([c.close for c in candles], band, confidence_scale)
