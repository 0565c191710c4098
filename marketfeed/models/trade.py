"""
Trade data models.

Models:
    TradeSide: Enum for the taker (aggressor) side of a trade
    Trade: Single matched trade from the public tape
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class TradeSide(str, Enum):
    """
    Enumeration for trade side.

    Attributes:
        BUY: Buyer was the aggressor (taker bought)
        SELL: Seller was the aggressor (taker sold)
    """

    BUY = "buy"
    SELL = "sell"


class Trade(BaseModel):
    """
    Individual trade from the public tape.

    ``is_buyer_maker`` follows the Binance convention used across all
    adapters: True means the resting order was a buy, so the taker sold and
    the trade counts as negative flow.

    Attributes:
        price: Execution price.
        quantity: Executed quantity in base currency.
        time_ms: Execution time in Unix milliseconds.
        is_buyer_maker: True if the maker side was the buyer.

    Example:
        >>> trade = Trade(
        ...     price=Decimal("100"), quantity=Decimal("1"),
        ...     time_ms=1700000000000, is_buyer_maker=True,
        ... )
        >>> trade.signed_quote_volume
        Decimal('-100')
    """

    model_config = {"frozen": True, "extra": "forbid"}

    price: Decimal = Field(..., description="Execution price", gt=Decimal("0"))
    quantity: Decimal = Field(..., description="Executed base quantity", ge=Decimal("0"))
    time_ms: int = Field(..., description="Execution time (Unix ms)", ge=0)
    is_buyer_maker: bool = Field(..., description="True if the resting order was a buy")

    @property
    def side(self) -> TradeSide:
        """Taker side of the trade."""
        return TradeSide.SELL if self.is_buyer_maker else TradeSide.BUY

    @property
    def quote_volume(self) -> Decimal:
        """Trade value in quote currency."""
        return self.price * self.quantity

    @property
    def signed_quote_volume(self) -> Decimal:
        """Quote volume, positive for taker buys and negative for taker sells."""
        if self.is_buyer_maker:
            return -self.quote_volume
        return self.quote_volume
