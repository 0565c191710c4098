"""Test local order book maintenance from snapshots and deltas."""

import random
from decimal import Decimal

import pytest

from marketfeed.book import LocalOrderBook


def levels(side):
    return [(level.price, level.size) for level in side]


class TestLocalOrderBook:
    """Test snapshot and update semantics."""

    def test_update_removes_and_inserts(self) -> None:
        """Test removal of a level and insertion below the touch."""
        # Given: A book with two bids
        book = LocalOrderBook(depth=20)
        book.apply_snapshot(bids=[["100", "1"], ["99", "2"]], asks=[["101", "1"]])

        # When: Removing 100 and adding 98
        book.apply_updates("bids", [["100", "0"], ["98", "5"]])

        # Then: Bids stay strictly descending
        assert levels(book.snapshot().bids) == [
            (Decimal("99"), Decimal("2")),
            (Decimal("98"), Decimal("5")),
        ]

    def test_removing_absent_level_is_noop(self) -> None:
        """Test that a zero size for an unknown price changes nothing."""
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[["101", "1"]])
        before = book.snapshot()

        book.apply_updates("asks", [["150", "0"]])

        assert book.snapshot() == before

    def test_update_replaces_existing_size(self) -> None:
        book = LocalOrderBook()
        book.apply_snapshot(bids=[], asks=[["101", "1"], ["102", "3"]])

        book.apply_updates("asks", [["102", "0.5"]])

        assert levels(book.snapshot().asks) == [
            (Decimal("101"), Decimal("1")),
            (Decimal("102"), Decimal("0.5")),
        ]

    def test_update_inserts_new_best_ask(self) -> None:
        """Test that an insert anywhere keeps asks ascending."""
        book = LocalOrderBook()
        book.apply_snapshot(bids=[], asks=[["101", "1"], ["103", "1"]])

        book.apply_updates("asks", [["102", "2"], ["100.5", "1"]])

        assert [price for price, _ in levels(book.snapshot().asks)] == [
            Decimal("100.5"),
            Decimal("101"),
            Decimal("102"),
            Decimal("103"),
        ]

    def test_snapshot_replaces_everything(self) -> None:
        """Test that a new snapshot discards previous levels."""
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[["101", "1"]])

        book.apply_snapshot(bids=[["90", "1"], ["91", "0"]], asks=[])

        snapshot = book.snapshot()
        assert levels(snapshot.bids) == [(Decimal("90"), Decimal("1"))]
        assert snapshot.asks == []

    def test_snapshot_truncates_to_depth(self) -> None:
        book = LocalOrderBook(depth=2)
        book.apply_snapshot(bids=[["100", "1"], ["99", "1"], ["98", "1"]], asks=[])

        assert len(book.snapshot().bids) == 2
        assert len(book) == 3

    def test_emitted_copies_are_independent(self) -> None:
        """Test that later updates do not alter an emitted snapshot."""
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[])
        first = book.snapshot()

        book.apply_updates("bids", [["100", "0"]])

        assert levels(first.bids) == [(Decimal("100"), Decimal("1"))]
        assert book.snapshot().bids == []

    def test_bad_row_leaves_book_unchanged(self) -> None:
        """Test that a malformed batch is rejected as a whole."""
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[])
        before = book.snapshot()

        with pytest.raises(ValueError):
            book.apply_updates("bids", [["99", "1"], ["oops", "1"]])

        assert book.snapshot() == before

    @pytest.mark.parametrize(
        "rows",
        [
            [["99", "1"], ["98", "-1"]],
            [["99", "1"], ["-5", "1"]],
            [["0", "1"]],
        ],
    )
    def test_negative_or_zero_price_rows_rejected(self, rows) -> None:
        """Test that invalid levels are rejected before any change."""
        # Given: A book with one bid
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[["101", "1"]])
        before = book.snapshot()

        # When: A batch contains a negative size or a non-positive price
        with pytest.raises(ValueError):
            book.apply_updates("bids", rows)

        # Then: The book is unchanged and still produces valid snapshots
        assert book.snapshot() == before
        book.apply_updates("bids", [["99", "2"]])
        assert levels(book.snapshot().bids) == [
            (Decimal("100"), Decimal("1")),
            (Decimal("99"), Decimal("2")),
        ]

    def test_negative_size_in_snapshot_rejected(self) -> None:
        book = LocalOrderBook()
        book.apply_snapshot(bids=[["100", "1"]], asks=[])
        before = book.snapshot()

        with pytest.raises(ValueError, match="negative"):
            book.apply_snapshot(bids=[["100", "-1"]], asks=[])

        assert book.snapshot() == before

    def test_invalid_side_rejected(self) -> None:
        book = LocalOrderBook()

        with pytest.raises(ValueError, match="side"):
            book.apply_updates("middle", [])  # type: ignore[arg-type]


def random_batch(rng: random.Random, size: int):
    """Rows on a small price grid so inserts, replaces and removals collide."""
    return [
        [str(Decimal(rng.randint(90, 110)) / 2), str(rng.choice([0, 0, 1, 2, 5]))]
        for _ in range(size)
    ]


class TestLocalOrderBookOrdering:
    """Test ordering over generated update sequences."""

    @pytest.mark.parametrize("seed", range(20))
    def test_sides_stay_sorted_and_unique(self, seed: int) -> None:
        """Test strict ordering and agreement with a plain price map."""
        # Given: A seeded book and a reference map of the expected levels
        rng = random.Random(seed)
        book = LocalOrderBook(depth=1000)
        bids_rows, asks_rows = random_batch(rng, 15), random_batch(rng, 15)
        book.apply_snapshot(bids=bids_rows, asks=asks_rows)
        expected = {
            "bids": {Decimal(p): Decimal(s) for p, s in bids_rows if Decimal(s) > 0},
            "asks": {Decimal(p): Decimal(s) for p, s in asks_rows if Decimal(s) > 0},
        }

        for _ in range(50):
            # When: A random batch lands on a random side
            side = rng.choice(["bids", "asks"])
            batch = random_batch(rng, rng.randint(0, 6))
            book.apply_updates(side, batch)
            for price, size in batch:
                if Decimal(size) == 0:
                    expected[side].pop(Decimal(price), None)
                else:
                    expected[side][Decimal(price)] = Decimal(size)

            # Then: Bids descend, asks ascend, no price repeats
            snapshot = book.snapshot()
            bid_prices = [level.price for level in snapshot.bids]
            ask_prices = [level.price for level in snapshot.asks]
            assert all(a > b for a, b in zip(bid_prices, bid_prices[1:]))
            assert all(a < b for a, b in zip(ask_prices, ask_prices[1:]))
            assert levels(snapshot.bids) == sorted(expected["bids"].items(), reverse=True)
            assert levels(snapshot.asks) == sorted(expected["asks"].items())
