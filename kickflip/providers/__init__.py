"""Concrete adapters for the interfaces in ``kickflip.interfaces``."""
