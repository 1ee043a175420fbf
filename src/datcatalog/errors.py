"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

errors.py
Exception and warning types raised by the catalog engine.
A missing item field is never an error; these cover the store and integrity checks.
"""


class CatalogError(RuntimeError):
    """Base class for catalog engine failures."""


class StoreUnavailableError(CatalogError):
    """The persistence collaborator is closed or its backend failed."""


class StatisticsMismatchWarning(UserWarning):
    """Incremental statistics disagreed with a full recount of the stored items."""
