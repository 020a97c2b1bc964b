# src/__init__.py — v1
"""shalens: keeps declared sha256 checksums in package definition files in sync with their URLs."""

from shalens.version import __version__

__all__ = ["__version__"]
