"""Quantitative MRI signal models, sequence descriptions and array-based processing."""

__version__ = "0.1.0"