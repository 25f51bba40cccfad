"""Demonax server data ingestion tools."""

__version__ = "0.4.0"
