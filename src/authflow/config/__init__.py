"""Configurações centralizadas do authflow.

Uso típico:
    from authflow.config import get_settings
"""

from authflow.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
