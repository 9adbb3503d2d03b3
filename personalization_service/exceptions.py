"""
Exceptions raised by storage backends.

The personalization core catches these itself; callers of the public
operations never see them.
"""


class PersonalizationError(Exception):
    """Base class for personalization service errors."""


class StorageError(PersonalizationError):
    """A key-value store could not complete a read or write."""


class StorageQuotaExceeded(StorageError):
    """A write would exceed the store's size budget."""
