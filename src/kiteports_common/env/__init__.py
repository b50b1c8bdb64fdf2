"""Environment variable access helpers."""

from . import reader

__all__ = ["reader"]
