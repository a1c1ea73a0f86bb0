"""bbsync - mirror Bilibili favorites, collections and multi-part videos into a local library."""

__version__ = "0.1.0"
