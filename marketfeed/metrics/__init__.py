"""
Consumer-side calculators for streamed market data.

Components:
    candles: CandleSeries merging live klines into fetched history
    flow: CumulativeDelta over the trade tape
"""

from marketfeed.metrics.candles import CandleSeries
from marketfeed.metrics.flow import CumulativeDelta, FlowPoint

__all__: list[str] = [
    "CandleSeries",
    "CumulativeDelta",
    "FlowPoint",
]
