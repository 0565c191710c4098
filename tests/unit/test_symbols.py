"""Test canonical symbol helpers."""

import pytest

from marketfeed.symbols import (
    USD_QUOTES,
    USD_STABLE_QUOTES,
    choose_symbol,
    is_canonical,
    is_listed_pair,
    make_symbol,
    split_symbol,
)


class TestSymbolFormat:
    """Test splitting and joining canonical symbols."""

    def test_make_and_split(self) -> None:
        """Test that make_symbol lowercases and split_symbol inverts it."""
        symbol = make_symbol("BTC", "USDT")

        assert symbol == "btc-usdt"
        assert split_symbol(symbol) == ("btc", "usdt")

    @pytest.mark.parametrize("bad", ["btcusdt", "-usdt", "btc-", "a-b-c"])
    def test_split_rejects_malformed(self, bad: str) -> None:
        """Test that non base-quote strings are rejected."""
        with pytest.raises(ValueError):
            split_symbol(bad)

    def test_is_canonical(self) -> None:
        """Test the canonical form check."""
        assert is_canonical("eth-usd")
        assert not is_canonical("ETH-USD")
        assert not is_canonical("ETHUSD")


class TestListingFilter:
    """Test the shared listing filter."""

    def test_accepted_quote_listed(self) -> None:
        assert is_listed_pair("BTC", "USDT", "BTCUSDT", USD_STABLE_QUOTES)

    def test_unaccepted_quote_rejected(self) -> None:
        assert not is_listed_pair("BTC", "USD", "BTC-USD", USD_STABLE_QUOTES)
        assert is_listed_pair("BTC", "USD", "BTC-USD", USD_QUOTES)

    def test_stablecoin_pair_rejected(self) -> None:
        """Test that stablecoin-to-stablecoin pairs are never listed."""
        assert not is_listed_pair("USDC", "USDT", "USDCUSDT", USD_STABLE_QUOTES)
        assert not is_listed_pair("DAI", "USD", "DAI-USD", USD_QUOTES)

    def test_variant_marker_rejected(self) -> None:
        """Test that variant instruments are excluded."""
        assert not is_listed_pair("BTC", "USDT", "BTC_USDT", USD_STABLE_QUOTES)
        assert not is_listed_pair("XBT", "USD", "XBT/USD.d", USD_QUOTES, (".d",))


class TestChooseSymbol:
    """Test the default-symbol fallback chain."""

    def test_previous_kept_when_listed(self) -> None:
        assert choose_symbol(["btc-usdt", "eth-usdt"], previous="eth-usdt") == "eth-usdt"

    def test_same_base_alternative_quote(self) -> None:
        """Test that the previous base is kept with a USD-like quote."""
        assert choose_symbol(["btc-usd", "eth-usd"], previous="eth-usdt") == "eth-usd"
        assert choose_symbol(["eth-usdc", "eth-usd"], previous="eth-usdt") == "eth-usdc"

    def test_falls_back_to_btc(self) -> None:
        assert choose_symbol(["ada-usd", "btc-usd"], previous="sol-usdt") == "btc-usd"
        assert choose_symbol(["ada-usdc", "btc-usdc"]) == "btc-usdc"

    def test_falls_back_to_usdt_then_first(self) -> None:
        assert choose_symbol(["ada-usdc", "sol-usdt"]) == "sol-usdt"
        assert choose_symbol(["ada-usdc", "sol-usdc"]) == "ada-usdc"

    def test_empty_list(self) -> None:
        assert choose_symbol([]) is None
