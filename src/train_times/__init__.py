"""GTFS schedule ingestion and departure queries."""

__version__ = "0.1.0"
