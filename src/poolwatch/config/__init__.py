"""Configuration module for PoolWatch.

Usage:
    from poolwatch.config import get_settings

    settings = get_settings()  # Cached singleton
    print(settings.token_symbol_filter)
"""

from poolwatch.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
