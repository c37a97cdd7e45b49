"""Error types raised by the console runtime"""

from typing import Optional


class ConsoleError(Exception):
    """Base class for console runtime errors"""


class SessionExpiredError(ConsoleError):
    """The backend answered HTTP 401: the session must be torn down"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
        self.message = message


class AuthenticationError(ConsoleError):
    """Login was rejected"""

    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)
        self.message = message


class RemoteOperationError(ConsoleError):
    """A backend call failed; ``message`` is shown to the operator verbatim"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ConsoleError):
    """A value was rejected locally, before any network call"""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class FlowInProgressError(ConsoleError):
    """A device authorization flow is already running"""


class FlowStateError(ConsoleError):
    """The device authorization flow is not in a state that allows the operation"""


class FlowExpiredError(ConsoleError):
    """The device code expired before the flow was completed"""
