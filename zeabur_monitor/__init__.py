"""Multi-account Zeabur usage monitor."""

__version__ = "0.1.0"
