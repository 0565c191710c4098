"""
Canonical symbol helpers.

A canonical symbol is a lowercase ``base-quote`` pair such as ``btc-usdt``.
Adapters translate between this form and their exchange's native notation;
this module holds the pieces of that translation every adapter shares:
splitting and joining, the listing filter, and the default-symbol choice the
dashboard makes after an exchange switch.
"""

from typing import Iterable, Optional, Sequence, Tuple

# Quote assets the dashboard lists, per exchange family
USD_STABLE_QUOTES: Tuple[str, ...] = ("USDT", "USDC")
USD_QUOTES: Tuple[str, ...] = ("USDT", "USD", "USDC")

# Assets pegged to the US dollar. A pair of two of these is never listed.
STABLECOINS = frozenset(
    {"USDT", "USDC", "USD", "TUSD", "BUSD", "DAI", "USDP", "GUSD", "PAX", "FDUSD"}
)

# Native-symbol markers of leveraged, dark-pool or other variant instruments
VARIANT_MARKERS: Tuple[str, ...] = ("_",)


def make_symbol(base: str, quote: str) -> str:
    """Join base and quote assets into a canonical symbol."""
    return f"{base.lower()}-{quote.lower()}"


def split_symbol(symbol: str) -> Tuple[str, str]:
    """
    Split a canonical symbol into (base, quote).

    Raises:
        ValueError: If the symbol is not of the form ``base-quote``.
    """
    base, sep, quote = symbol.partition("-")
    if not sep or not base or not quote or "-" in quote:
        raise ValueError(f"Not a canonical symbol: {symbol!r}")
    return base, quote


def is_canonical(symbol: str) -> bool:
    """True if ``symbol`` is a lowercase ``base-quote`` pair."""
    try:
        split_symbol(symbol)
    except ValueError:
        return False
    return symbol == symbol.lower()


def is_listed_pair(
    base: str,
    quote: str,
    native: str,
    accepted_quotes: Sequence[str],
    variant_markers: Sequence[str] = VARIANT_MARKERS,
) -> bool:
    """
    Shared listing filter applied by every adapter's fetch_all_symbols.

    A pair is listed when its quote asset is accepted, it is not a
    stablecoin-to-stablecoin pair, and its native symbol carries none of the
    variant markers.

    Args:
        base: Base asset (any case).
        quote: Quote asset (any case).
        native: Exchange-native symbol.
        accepted_quotes: Uppercase quote assets this exchange lists.
        variant_markers: Substrings identifying non-standard instruments.
    """
    base_upper = base.upper()
    quote_upper = quote.upper()
    if quote_upper not in accepted_quotes:
        return False
    if base_upper in STABLECOINS and quote_upper in STABLECOINS:
        return False
    return not any(marker in native for marker in variant_markers)


def choose_symbol(symbols: Iterable[str], previous: Optional[str] = None) -> Optional[str]:
    """
    Pick the symbol to show after the symbol list of an exchange loads.

    Order of preference:
        1. ``previous`` itself
        2. ``<previous base>-usdc``, then ``<previous base>-usd``
        3. ``btc-usdt``, then ``btc-usd``
        4. any ``btc-*`` pair, then any ``*-usdt`` pair
        5. the first symbol

    Returns:
        Optional[str]: Chosen symbol, or None if ``symbols`` is empty.

    Example:
        >>> choose_symbol(["eth-usd", "sol-usd"], previous="eth-usdt")
        'eth-usd'
    """
    available = list(symbols)
    if not available:
        return None
    listed = set(available)

    if previous:
        base = previous.split("-")[0]
        for candidate in (previous, f"{base}-usdc", f"{base}-usd"):
            if candidate in listed:
                return candidate

    for candidate in ("btc-usdt", "btc-usd"):
        if candidate in listed:
            return candidate

    for symbol in available:
        if symbol.startswith("btc-"):
            return symbol
    for symbol in available:
        if symbol.endswith("-usdt"):
            return symbol
    return available[0]
