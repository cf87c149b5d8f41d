"""
Client-facing error classifications.

These exceptions are reported back to the offending connection as a
protocol message. The connection always stays open so the client can retry.
"""

from typing import Optional, Dict, Any


class ClientError(Exception):
    """Base class for errors signalled back to a single client."""

    message_type = "error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = True

    def to_message(self) -> Dict[str, Any]:
        """Render the error as a server-to-client protocol message."""
        return {"type": self.message_type, "message": self.message}


class AuthError(ClientError):
    """Missing or invalid credential token."""

    message_type = "auth_error"

    def __init__(self, message: str = "Authentication failed",
                 reason: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.reason = reason


class MessageValidationError(ClientError):
    """Malformed message, unknown message kind or missing required field."""

    def __init__(self, message: str, field: Optional[str] = None,
                 raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.raw_data = raw_data


ValidationError = MessageValidationError
