"""Error taxonomy for the budget core.

DataNotFound        jurisdiction, year or department absent; callers map it
                    to a 404 and never retry.
DataValidationError persisted data is malformed (negative expense amounts,
                    cyclic parent references, duplicate ids, undecodable
                    records).  Fatal for that (jurisdiction, year); never
                    repaired in place.

Zero-denominator shares are defined (0.0), not errors.
"""

from __future__ import annotations


class BudgetDataError(Exception):
    """Base class for all errors raised by the budget core."""


class DataNotFound(BudgetDataError, LookupError):
    """Requested jurisdiction, fiscal year or department does not exist."""

    def __init__(self, message: str, *, slug: str | None = None,
                 year: str | None = None) -> None:
        super().__init__(message)
        self.slug = slug
        self.year = year


NotFound = DataNotFound


class DataValidationError(BudgetDataError, ValueError):
    """Persisted budget data violates a structural invariant."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
