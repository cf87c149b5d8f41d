"""
Error classification for the realtime broadcast and pricing subsystems.

This module provides a structured exception hierarchy separating errors the
client must be told about, data-source degradations that are replaced with
neutral defaults, and failures that abort a request.
"""

from .client_errors import (
    ClientError,
    AuthError,
    MessageValidationError,
    ValidationError,
)
from .data_quality import (
    DataQualityError,
    TransientDataError,
    DataSourceUnavailableError,
    MalformedSourceDataError,
)
from .system_failures import (
    SystemFailureError,
    FatalPricingError,
    DeliveryError,
    ConfigurationError,
)

__all__ = [
    # Client-facing errors
    "ClientError",
    "AuthError",
    "MessageValidationError",
    "ValidationError",
    # Data Quality Errors
    "DataQualityError",
    "TransientDataError",
    "DataSourceUnavailableError",
    "MalformedSourceDataError",
    # System Failures
    "SystemFailureError",
    "FatalPricingError",
    "DeliveryError",
    "ConfigurationError",
]
