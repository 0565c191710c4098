"""
Order book data models.

All financial values use Decimal for precision to avoid floating-point errors.

Models:
    PriceLevel: Single (price, size) level in an order book
    OrderBookSnapshot: Normalized order book emitted by every adapter
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, computed_field, model_validator

from marketfeed.models.numbers import to_decimal


class PriceLevel(BaseModel):
    """
    Single price level in an order book.

    A size of zero is only meaningful inside an update stream, where it means
    "remove this level". Snapshots never contain zero-size levels.

    Attributes:
        price: Price at this level in quote currency (e.g., USDT).
        size: Quantity resting at this level in base currency (e.g., BTC).

    Example:
        >>> level = PriceLevel(price=Decimal("50000.00"), size=Decimal("1.5"))
        >>> level.notional
        Decimal('75000.000')
    """

    model_config = {"frozen": True, "extra": "ignore"}

    price: Decimal = Field(
        ...,
        description="Price at this level in quote currency",
        ge=Decimal("0"),
    )
    size: Decimal = Field(
        ...,
        description="Quantity at this level in base currency",
        ge=Decimal("0"),
    )

    @computed_field  # type: ignore[misc]
    @property
    def notional(self) -> Decimal:
        """Quote value resting at this level (price * size)."""
        return self.price * self.size

    def as_tuple(self) -> Tuple[Decimal, Decimal]:
        """Return the level as a (price, size) tuple."""
        return (self.price, self.size)


class OrderBookSnapshot(BaseModel):
    """
    Normalized order book from any exchange.

    This is the unified internal schema. Each adapter converts raw exchange
    data (REST snapshots or its locally maintained streaming book) into this
    format. Instances are immutable and never share containers with the
    maintainer that produced them.

    Attributes:
        bids: Bid levels, strictly descending by price (best first).
        asks: Ask levels, strictly ascending by price (best first).

    Example:
        >>> book = OrderBookSnapshot.from_pairs(
        ...     bids=[("100", "1"), ("99", "2")],
        ...     asks=[("101", "1")],
        ... )
        >>> book.spread
        Decimal('1')
    """

    model_config = {"frozen": True, "extra": "ignore"}

    bids: List[PriceLevel] = Field(
        default_factory=list,
        description="Bid levels, sorted best (highest) to worst",
    )
    asks: List[PriceLevel] = Field(
        default_factory=list,
        description="Ask levels, sorted best (lowest) to worst",
    )

    @model_validator(mode="after")
    def validate_order_book(self) -> "OrderBookSnapshot":
        """
        Validate order book invariants.

        Ensures:
            - Bids are strictly descending (no duplicate prices)
            - Asks are strictly ascending (no duplicate prices)
            - No level carries a zero size
        """
        for i in range(len(self.bids) - 1):
            if self.bids[i].price <= self.bids[i + 1].price:
                raise ValueError(
                    f"Bids must be strictly descending: {self.bids[i].price} <= {self.bids[i + 1].price}"
                )

        for i in range(len(self.asks) - 1):
            if self.asks[i].price >= self.asks[i + 1].price:
                raise ValueError(
                    f"Asks must be strictly ascending: {self.asks[i].price} >= {self.asks[i + 1].price}"
                )

        for level in (*self.bids, *self.asks):
            if level.size == 0:
                raise ValueError(f"Snapshot level at {level.price} has zero size")

        return self

    @classmethod
    def empty(cls) -> "OrderBookSnapshot":
        """Return a book with no levels on either side."""
        return cls(bids=[], asks=[])

    @classmethod
    def from_pairs(
        cls,
        bids: Iterable[Sequence],
        asks: Iterable[Sequence],
        depth: Optional[int] = None,
    ) -> "OrderBookSnapshot":
        """
        Build a snapshot from raw [price, size, ...] rows.

        Rows may be in any order and may carry extra trailing fields (order
        counts, timestamps). Zero-size rows are dropped, both sides are sorted
        and, when ``depth`` is given, truncated to that many levels.

        Args:
            bids: Iterable of bid rows.
            asks: Iterable of ask rows.
            depth: Optional maximum number of levels per side.

        Returns:
            OrderBookSnapshot: Sorted, validated snapshot.

        Raises:
            ValueError: If a price or size cannot be parsed.
        """
        bid_levels = _parse_side(bids, descending=True)
        ask_levels = _parse_side(asks, descending=False)
        if depth is not None:
            bid_levels = bid_levels[:depth]
            ask_levels = ask_levels[:depth]
        return cls(bids=bid_levels, asks=ask_levels)

    @computed_field  # type: ignore[misc]
    @property
    def best_bid(self) -> Optional[Decimal]:
        """Best (highest) bid price, or None if there are no bids."""
        return self.bids[0].price if self.bids else None

    @computed_field  # type: ignore[misc]
    @property
    def best_ask(self) -> Optional[Decimal]:
        """Best (lowest) ask price, or None if there are no asks."""
        return self.asks[0].price if self.asks else None

    @computed_field  # type: ignore[misc]
    @property
    def mid_price(self) -> Optional[Decimal]:
        """Average of best bid and best ask, or None if either side is empty."""
        if self.best_bid is not None and self.best_ask is not None:
            return (self.best_bid + self.best_ask) / Decimal("2")
        return None

    @computed_field  # type: ignore[misc]
    @property
    def spread(self) -> Optional[Decimal]:
        """Absolute spread (best_ask - best_bid), or None if either side is empty."""
        if self.best_bid is not None and self.best_ask is not None:
            return self.best_ask - self.best_bid
        return None

    @property
    def is_empty(self) -> bool:
        """True if neither side has any level."""
        return not self.bids and not self.asks


def _parse_side(rows: Iterable[Sequence], descending: bool) -> List[PriceLevel]:
    """Parse, de-duplicate and sort one side of raw rows (last row wins)."""
    sizes = {}
    for row in rows:
        price = to_decimal(row[0])
        size = to_decimal(row[1])
        if size > 0:
            sizes[price] = size
        else:
            sizes.pop(price, None)
    return [
        PriceLevel(price=price, size=sizes[price])
        for price in sorted(sizes, reverse=descending)
    ]
