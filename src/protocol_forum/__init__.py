"""Client-side core for the protocol discussion platform."""

__version__ = "0.1.0"
