"""Notification ingestion plugin for a personal timeline host."""

__version__ = "0.1.0"
