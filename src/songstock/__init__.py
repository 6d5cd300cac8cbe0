"""SongStock - music catalog, provider management and order backend."""

__version__ = "0.1.0"
