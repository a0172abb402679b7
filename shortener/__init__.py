"""URL shortener with asynchronous click analytics."""

__version__ = "1.0.0"
