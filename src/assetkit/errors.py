"""Exceptions raised by assetkit."""

from __future__ import annotations


class AssetkitError(RuntimeError):
    """Raised when assetkit encounters an unrecoverable state."""


class ResourceNotFoundError(AssetkitError):
    """Raised when a named resource cannot be located in a namespace."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Couldn't find {name}")
        self.name = name
