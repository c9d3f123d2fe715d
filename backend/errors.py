"""
Exceptions raised by the insights pipeline.

`main.py` maps them to HTTP responses:
- `InvalidRequestError` -> 400
- `EventFetchError` -> 500
- `InsightPersistError` -> logged (or 500 when `settings.strict_persist`)
"""


class InsightsError(Exception):
    """Base class for pipeline failures."""


class InvalidRequestError(InsightsError, ValueError):
    """The caller sent something we refuse before touching the store."""


class EventFetchError(InsightsError):
    """Reading the user's events failed. Nothing was computed."""


class InsightPersistError(InsightsError):
    """Replacing the stored insights failed. The computed list is still valid."""
