"""Fetchers for Gerrit entities consumed by the attention categorizer."""

from . import accounts, changes

__all__ = [
    "accounts",
    "changes",
]
