"""Shared utilities for kite-ports (paths, file IO, environment, configuration)."""
