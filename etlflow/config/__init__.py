"""
Pipeline configuration: the persistent definition store and runtime settings.
"""

from .settings import Settings
from .store import ConfigStore

__all__ = ["ConfigStore", "Settings"]
