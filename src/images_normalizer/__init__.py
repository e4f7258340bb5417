"""Batch aspect-ratio crop, resize and re-encode for image directories."""

__version__ = "0.1.0"
