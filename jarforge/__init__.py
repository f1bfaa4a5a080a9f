"""jarforge - Deterministic jar and uberjar assembly.

Packages compiled class output and its dependency closure into reproducible
archive artifacts.
"""

__version__ = "0.1.0"
__author__ = "jarforge Contributors"

from jarforge.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
