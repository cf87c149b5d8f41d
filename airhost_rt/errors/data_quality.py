"""
Data quality error classifications for collaborator data sources.

These exceptions describe a data source that is unavailable or returned
unusable data. They are always handled locally: the affected
sub-aggregation or pricing factor falls back to a neutral value.
"""

from typing import Optional, Dict, Any


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class TransientDataError(DataQualityError):
    """A sub-aggregation or factor source could not produce data right now."""

    def __init__(self, message: str, source: Optional[str] = None,
                 fallback: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source
        self.fallback = fallback


class DataSourceUnavailableError(TransientDataError):
    """The collaborator call itself failed (timeout, connection refused)."""


class MalformedSourceDataError(TransientDataError):
    """The collaborator answered with data in an unexpected shape."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format
