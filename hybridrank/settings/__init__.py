"""Application settings loading."""

from .app import AppSettings, EmbeddingProviderName, get_settings


__all__ = ["AppSettings", "EmbeddingProviderName", "get_settings"]
