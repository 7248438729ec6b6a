"""Football Trader.

Tracks Betfair Exchange match odds for football fixtures and analyses the
recorded price history for hedge trading opportunities.
"""

__version__ = "0.1.0"
