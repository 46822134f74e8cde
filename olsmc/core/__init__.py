# olsmc/core/__init__.py
"""Core computational modules for olsmc."""
from . import design, linalg, noise

__all__ = ["design", "linalg", "noise"]
