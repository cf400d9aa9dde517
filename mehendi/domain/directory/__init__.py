"""Directory domain - read-only lookups of users and designs"""

from .repository import DesignCatalog, UserDirectory

__all__ = ["DesignCatalog", "UserDirectory"]
