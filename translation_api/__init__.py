"""Multi-locale translation store with a cached per-locale export."""

__version__ = "1.0.0"
