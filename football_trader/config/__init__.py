"""Configuration for Football Trader."""

from football_trader.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
