"""Test cumulative trade flow."""

from decimal import Decimal

from marketfeed.metrics import CumulativeDelta
from marketfeed.models import Trade


def trade(price: str, quantity: str, time_ms: int, is_buyer_maker: bool) -> Trade:
    return Trade(
        price=Decimal(price),
        quantity=Decimal(quantity),
        time_ms=time_ms,
        is_buyer_maker=is_buyer_maker,
    )


class TestCumulativeDelta:
    """Test signed accumulation and windowed averaging."""

    def test_buy_then_sell(self) -> None:
        """Test +100 for a taker buy, then -99 for a taker sell."""
        # Given: An empty flow tracker
        flow = CumulativeDelta()

        # When: A taker buy of 100 then a taker sell of 99
        first = flow.add(trade("100", "1", 1_000, is_buyer_maker=False))
        second = flow.add(trade("99", "1", 2_000, is_buyer_maker=True))

        # Then: The running delta is 100, then 1
        assert first.delta == Decimal("100")
        assert second.delta == Decimal("1")
        assert second.time == 2.0

    def test_average_over_window(self) -> None:
        """Test that only points inside the window are averaged."""
        flow = CumulativeDelta()
        flow.add(trade("10", "1", 0, is_buyer_maker=False))
        flow.add(trade("10", "1", 400_000, is_buyer_maker=False))
        flow.add(trade("10", "1", 500_000, is_buyer_maker=False))

        average = flow.average_since(300, now=600.0)

        assert average == Decimal("25")

    def test_average_empty_window(self) -> None:
        flow = CumulativeDelta()
        flow.add(trade("10", "1", 0, is_buyer_maker=False))

        assert flow.average_since(300, now=10_000.0) is None

    def test_points_bounded_but_total_kept(self) -> None:
        """Test that old points drop while the running total continues."""
        flow = CumulativeDelta(max_points=2)
        for i in range(3):
            flow.add(trade("1", "1", i * 1000, is_buyer_maker=False))

        assert len(flow.points()) == 2
        assert flow.delta == Decimal("3")

    def test_reset(self) -> None:
        flow = CumulativeDelta()
        flow.add(trade("1", "1", 0, is_buyer_maker=True))

        flow.reset()

        assert flow.delta == Decimal("0")
        assert flow.points() == []
