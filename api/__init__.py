"""REST client and error taxonomy for the gateway console"""

from .client import ConsoleAPIClient
from .errors import (
    ConsoleError,
    SessionExpiredError,
    AuthenticationError,
    RemoteOperationError,
    ValidationError,
    FlowInProgressError,
    FlowStateError,
    FlowExpiredError,
)

__all__ = [
    "ConsoleAPIClient",
    "ConsoleError",
    "SessionExpiredError",
    "AuthenticationError",
    "RemoteOperationError",
    "ValidationError",
    "FlowInProgressError",
    "FlowStateError",
    "FlowExpiredError",
]
