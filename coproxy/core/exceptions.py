# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Exception Hierarchy

Two tiers: framing errors are fatal and stop the server process,
command errors are reported to the caller as the verb's failure payload.

Exception Hierarchy:
    CoproxyError (base)
    ├── ConfigError
    ├── FramingError                (fatal)
    │   ├── MessageTooShortError
    │   ├── UnknownCommandError
    │   ├── ArityError
    │   └── LineTooLongError
    └── CommandError                (recoverable)
        ├── CodecError
        ├── PortError
        ├── ResourceError
        │   ├── InvalidResourceIdError
        │   └── ResourceNotFoundError
        ├── SendError
        └── ReceiveError
"""

from typing import Any, Dict, Optional

# ============================================================================
# Base Exceptions
# ============================================================================


class CoproxyError(Exception):
    """Base exception for all coproxy errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging"""
        result = {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

        if self.cause:
            result["cause"] = {
                "type": self.cause.__class__.__name__,
                "message": str(self.cause),
            }

        return result

    def __str__(self):
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigError(CoproxyError):
    """Configuration-related errors"""


# ============================================================================
# Framing Errors (fatal)
# ============================================================================


class FramingError(CoproxyError):
    """Malformed control traffic; never caught by the server loop"""

    def __init__(self, message: str, line: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line = line

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["line"] = self.line
        return result


class MessageTooShortError(FramingError):
    """Line has no correlation id"""


class UnknownCommandError(FramingError):
    """Verb is not registered"""

    def __init__(self, message: str, verb: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.verb = verb

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["verb"] = self.verb
        return result


class ArityError(FramingError):
    """Known verb called with the wrong number of arguments"""

    def __init__(
        self,
        message: str,
        verb: Optional[str] = None,
        expected: Optional[int] = None,
        received: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.verb = verb
        self.expected = expected
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "verb": self.verb,
                "expected": self.expected,
                "received": self.received,
            }
        )
        return result


class LineTooLongError(FramingError):
    """Input line exceeds the configured maximum size"""


# ============================================================================
# Command Errors (recoverable)
# ============================================================================


class CommandError(CoproxyError):
    """Failure inside a command effect; reported as the failure payload"""


class CodecError(CommandError):
    """Payload is not valid base64"""


class PortError(CommandError):
    """Port argument is not an integer or does not fit a native integer"""

    def __init__(self, message: str, port: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.port = port

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["port"] = self.port
        return result


class ResourceError(CommandError):
    """Resource registry errors"""

    def __init__(self, message: str, resource_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.resource_id = resource_id

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["resource_id"] = self.resource_id
        return result


class InvalidResourceIdError(ResourceError):
    """Resource id token is not a valid id"""


class ResourceNotFoundError(ResourceError):
    """No live resource under this id"""


class SendError(CommandError):
    """Socket reported a negative number of sent bytes"""


class ReceiveError(CommandError):
    """Receive returned an unusable number of bytes"""

    def __init__(self, message: str, received: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["received"] = self.received
        return result
