"""Command line interface for the kite-ports registry."""

__version__ = "0.1.0"
