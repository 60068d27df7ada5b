"""
acclink exception hierarchy.

All acclink exceptions inherit from AccLinkException for easy catching.
Transport errors also inherit from the matching builtin (ConnectionError,
IOError) so callers that only know the standard library still catch them.
"""
from typing import Optional


class AccLinkException(Exception):
    """Base exception for all acclink errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self):
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} (context: {ctx_str})"
        return base


# Transport layer exceptions
class TransportException(AccLinkException):
    """Base for channel errors."""
    pass


class ChannelConnectionError(TransportException, ConnectionError):
    """The endpoint could not be reached, or the stream is closed."""
    pass


class ChannelIOError(TransportException, IOError):
    """A read or write failed after the connection was established."""
    pass


class ChannelStateError(TransportException, RuntimeError):
    """The channel was used in a state that does not allow the operation."""
    pass


# Codec exceptions
class CodecException(AccLinkException):
    """Base for message encoding/decoding errors."""
    pass


class MessageEncodeError(CodecException, ValueError):
    """A TaskMessage could not be represented on the wire."""
    pass


class MessageDecodeError(CodecException, ValueError):
    """Received bytes do not parse as a TaskMessage."""
    pass


class ConfigurationError(AccLinkException):
    """Invalid configuration."""
    pass
