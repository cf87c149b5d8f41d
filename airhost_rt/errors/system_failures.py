"""
System failure error classifications.

These exceptions abort the current operation. A pricing request cannot
proceed without a reference price, and a failed send ends the life of that
one connection.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for failures that abort the current operation."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class FatalPricingError(SystemFailureError):
    """The base price lookup failed, so no recommendation can be produced."""

    def __init__(self, message: str, property_id: Optional[str] = None,
                 date: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.property_id = property_id
        self.date = date


class DeliveryError(SystemFailureError):
    """Sending a frame to one connection failed."""

    def __init__(self, message: str, connection_id: Optional[str] = None,
                 topic: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.connection_id = connection_id
        self.topic = topic


class ConfigurationError(SystemFailureError):
    """Configuration could not be loaded or failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
