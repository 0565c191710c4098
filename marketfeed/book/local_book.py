"""
Local order book maintained from an initial snapshot plus level deltas.

Exchanges with delta-based book channels (OKX ``books``, Kraken ``book``)
send one full snapshot after subscribing and then incremental level changes.
LocalOrderBook applies them and hands out immutable, truncated copies.

Update semantics for a (price, size) level:
    - size == 0: remove the level at price (no-op if absent)
    - size > 0:  replace the size at price, or insert a new level
    - size < 0 or price <= 0: the whole batch is rejected with ValueError

After every batch the touched side is re-sorted (bids descending, asks
ascending). Deltas can insert at any price, so the order is re-established
on every batch.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Literal, Sequence, Tuple

import structlog

from marketfeed.models.numbers import to_decimal
from marketfeed.models.orderbook import OrderBookSnapshot, PriceLevel

logger = structlog.get_logger(__name__)

Side = Literal["bids", "asks"]


def _parse_rows(rows: Iterable[Sequence]) -> List[Tuple[Decimal, Decimal]]:
    """
    Parse raw [price, size, ...] rows.

    Raises:
        ValueError: If a row is unparseable, a price is not positive or a
            size is negative.
    """
    parsed = []
    for row in rows:
        price, size = to_decimal(row[0]), to_decimal(row[1])
        if price <= 0:
            raise ValueError(f"Book price must be positive, got {price}")
        if size < 0:
            raise ValueError(f"Book size must not be negative, got {size}")
        parsed.append((price, size))
    return parsed


class BookSide:
    """One side of a local order book, keyed by price."""

    __slots__ = ("descending", "_sizes", "_prices")

    def __init__(self, descending: bool) -> None:
        self.descending = descending
        self._sizes: Dict[Decimal, Decimal] = {}
        self._prices: List[Decimal] = []

    def __len__(self) -> int:
        return len(self._prices)

    def replace(self, rows: Iterable[Sequence]) -> None:
        """Replace every level with ``rows``, dropping zero sizes."""
        self._sizes = {price: size for price, size in _parse_rows(rows) if size > 0}
        self._resort()

    def apply(self, rows: Iterable[Sequence]) -> None:
        """Apply level updates, then re-sort."""
        parsed = _parse_rows(rows)
        for price, size in parsed:
            if size == 0:
                self._sizes.pop(price, None)
            else:
                self._sizes[price] = size
        self._resort()

    def _resort(self) -> None:
        self._prices = sorted(self._sizes, reverse=self.descending)

    def levels(self, depth: int) -> List[PriceLevel]:
        """Best ``depth`` levels as new PriceLevel objects."""
        return [
            PriceLevel(price=price, size=self._sizes[price])
            for price in self._prices[:depth]
        ]


class LocalOrderBook:
    """
    In-memory order book for one stream session.

    Owned exclusively by the session that created it; consumers only ever
    see copies produced by snapshot().

    Attributes:
        depth: Number of levels per side included in emitted snapshots.

    Example:
        >>> book = LocalOrderBook(depth=20)
        >>> book.apply_snapshot(bids=[["100", "1"], ["99", "2"]], asks=[["101", "1"]])
        >>> book.apply_updates("bids", [["100", "0"], ["98", "5"]])
        >>> [lvl.price for lvl in book.snapshot().bids]
        [Decimal('99'), Decimal('98')]
    """

    def __init__(self, depth: int = 20) -> None:
        self.depth = depth
        self._bids = BookSide(descending=True)
        self._asks = BookSide(descending=False)

    def apply_snapshot(self, bids: Iterable[Sequence], asks: Iterable[Sequence]) -> None:
        """
        Replace the whole book.

        Args:
            bids: Raw bid rows ([price, size, ...]).
            asks: Raw ask rows ([price, size, ...]).

        Raises:
            ValueError: If a row cannot be parsed. The book is unchanged.
        """
        bids_side = BookSide(descending=True)
        asks_side = BookSide(descending=False)
        bids_side.replace(bids)
        asks_side.replace(asks)
        self._bids, self._asks = bids_side, asks_side

        logger.debug(
            "local_book_snapshot_applied",
            bids_count=len(self._bids),
            asks_count=len(self._asks),
        )

    def apply_updates(self, side: Side, levels: Iterable[Sequence]) -> None:
        """
        Apply a batch of level updates to one side.

        Args:
            side: "bids" or "asks".
            levels: Raw rows ([price, size, ...]); size 0 removes the level.

        Raises:
            ValueError: If ``side`` is invalid or a row cannot be parsed. The
                batch is parsed before any change, so a bad row leaves the
                book unchanged.
        """
        if side == "bids":
            self._bids.apply(levels)
        elif side == "asks":
            self._asks.apply(levels)
        else:
            raise ValueError(f"side must be 'bids' or 'asks', got '{side}'")

    def snapshot(self) -> OrderBookSnapshot:
        """Return an immutable copy truncated to ``depth`` levels per side."""
        return OrderBookSnapshot(
            bids=self._bids.levels(self.depth),
            asks=self._asks.levels(self.depth),
        )

    def clear(self) -> None:
        """Drop all levels."""
        self._bids = BookSide(descending=True)
        self._asks = BookSide(descending=False)

    def __len__(self) -> int:
        return len(self._bids) + len(self._asks)
