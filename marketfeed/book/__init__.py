"""Local order book maintenance for delta-based book streams."""

from marketfeed.book.local_book import BookSide, LocalOrderBook

__all__ = ["BookSide", "LocalOrderBook"]
