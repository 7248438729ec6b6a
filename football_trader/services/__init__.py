"""Service layer for Football Trader."""
