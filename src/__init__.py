"""sitevault - draft/publish content pipeline for a hosted marketing site."""

__version__ = "0.1.0"
