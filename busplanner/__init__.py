"""Bus route planning over GeoJSON transit data, with an HTTP API and a MessagePack converter."""

__version__ = "0.1.0"