"""EcoSort source verification and caching."""

__version__ = "0.1.0"
