"""Configuration for the OrgTree access core"""

from orgtree.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
