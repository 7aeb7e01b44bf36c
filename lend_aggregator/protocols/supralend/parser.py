"""Pure parsing functions for quote and view-call data — no I/O."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from ...errors import EmptyResultError, NormalizationError
from ...models import ObligationData, PoolMetrics, Quote

QUOTE_FIELDS = ("average", "median", "high", "low", "timestamp")


def get_decimals(token_symbol: str, token_decimals: dict[str, int]) -> int:
    """Look up an asset's decimal exponent. Unknown assets are an error."""
    try:
        return token_decimals[token_symbol]
    except KeyError:
        raise NormalizationError(
            f"No decimal exponent configured for {token_symbol}"
        ) from None


def to_decimal(raw: Any) -> Decimal:
    """Convert a raw remote value (int, numeric string) to ``Decimal``."""
    if isinstance(raw, bool) or raw is None:
        raise NormalizationError(f"Not a number: {raw!r}")
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise NormalizationError(f"Not a number: {raw!r}") from None
    if not value.is_finite():
        raise NormalizationError(f"Not a finite number: {raw!r}")
    return value


def normalize_amount(raw: Any, decimals: int) -> Decimal:
    """Scale a raw integer on-chain amount down by ``10**decimals`` exactly."""
    sign, digits, exponent = to_decimal(raw).as_tuple()
    return Decimal((sign, digits, exponent - decimals))


def normalize_ratio(raw: Any, divisor: int) -> Decimal:
    """Divide a raw ratio by a fixed divisor (e.g. 100 for basis points)."""
    return to_decimal(raw) / Decimal(divisor)


def _require_fields(result: Sequence[Any], count: int, what: str) -> None:
    if not result:
        raise EmptyResultError(f"Empty {what} result")
    if len(result) < count:
        raise NormalizationError(
            f"Expected {count} fields in {what} result, got {len(result)}"
        )


def parse_pool_metrics(
    result: Sequence[Any], decimals: int, ratio_decimals: int
) -> PoolMetrics:
    """Parse a ``(deposits, borrows, ltv, bw)`` view-call result.

    Amounts use the asset's decimals; ``ltv``/``bw`` are fixed-point ratios
    with ``ratio_decimals`` digits.
    """
    _require_fields(result, 4, "pool metrics")
    deposits, borrows, ltv, bw = result[:4]
    return PoolMetrics(
        deposits=normalize_amount(deposits, decimals),
        borrows=normalize_amount(borrows, decimals),
        ltv=normalize_amount(ltv, ratio_decimals),
        bw=normalize_amount(bw, ratio_decimals),
    )


def parse_obligation(
    result: Sequence[Any], decimals: int, ratio_divisor: int
) -> ObligationData:
    """Parse a ``(collateral, debt, ltv, liquidation_threshold)`` result.

    Ratios come in basis points, not the 18-digit fixed point of pool metrics.
    """
    _require_fields(result, 4, "obligation")
    collateral, debt, ltv, threshold = result[:4]
    return ObligationData(
        collateral_amount=normalize_amount(collateral, decimals),
        debt_amount=normalize_amount(debt, decimals),
        ltv=normalize_ratio(ltv, ratio_divisor),
        liquidation_threshold=normalize_ratio(threshold, ratio_divisor),
    )


def parse_balance(result: Sequence[Any], decimals: int) -> Decimal:
    _require_fields(result, 1, "balance")
    return normalize_amount(result[0], decimals)


def combine_pool_metrics(first: PoolMetrics, second: PoolMetrics) -> PoolMetrics:
    """Merge two coin types sharing a symbol: sum amounts, keep first ratios."""
    return PoolMetrics(
        deposits=first.deposits + second.deposits,
        borrows=first.borrows + second.borrows,
        ltv=first.ltv,
        bw=first.bw,
    )


def combine_obligations(first: ObligationData, second: ObligationData) -> ObligationData:
    return ObligationData(
        collateral_amount=first.collateral_amount + second.collateral_amount,
        debt_amount=first.debt_amount + second.debt_amount,
        ltv=first.ltv,
        liquidation_threshold=first.liquidation_threshold,
    )


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any) -> datetime:
    """Parse a feed timestamp: epoch milliseconds or ISO-8601 text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise NormalizationError(f"Bad timestamp: {value!r}") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise NormalizationError(f"Bad timestamp: {value!r}")


def parse_quote(entry: dict[str, Any]) -> Quote:
    """Build a ``Quote`` from one price-graph entry."""
    missing = [f for f in QUOTE_FIELDS if entry.get(f) is None]
    if missing:
        raise NormalizationError(f"Quote entry missing fields: {', '.join(missing)}")
    return Quote(
        timestamp=parse_timestamp(entry["timestamp"]),
        average=str(entry["average"]),
        median=str(entry["median"]),
        high=str(entry["high"]),
        low=str(entry["low"]),
    )


def select_latest(quotes: Sequence[Quote]) -> Quote:
    """Return the quote with the greatest timestamp (first one on ties)."""
    if not quotes:
        raise EmptyResultError("No quotes to select from")
    latest = quotes[0]
    for quote in quotes[1:]:
        if quote.timestamp > latest.timestamp:
            latest = quote
    return latest


def select_previous(quotes: Sequence[Quote], latest: Quote) -> Quote | None:
    """Return the quote with the greatest timestamp strictly before ``latest``."""
    previous: Quote | None = None
    for quote in quotes:
        if quote.timestamp < latest.timestamp and (
            previous is None or quote.timestamp > previous.timestamp
        ):
            previous = quote
    return previous


def percent_change(latest: str, previous: str | None) -> float:
    """Percent change from ``previous`` to ``latest``, rounded to 2 places.

    No previous observation (or a zero one) gives 0.
    """
    if previous is None:
        return 0.0
    prev = to_decimal(previous)
    if prev == 0:
        return 0.0
    change = (to_decimal(latest) - prev) / prev * 100
    return float(round(change, 2))
