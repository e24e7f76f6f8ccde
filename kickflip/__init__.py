"""Kickflip -- Seattle event discovery over a tiered retrieval pipeline."""

__version__ = "0.1.0"
