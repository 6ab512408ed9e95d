"""
Exceptions raised by the Campfire client.
"""
from typing import Any


class CampfireError(Exception):
    """Base exception for Campfire client errors"""


class AuthResolutionError(CampfireError):
    """The API token could not be resolved from the supplied credentials"""


class HTTPRequestError(CampfireError):
    """The service answered with a non-2xx status"""

    def __init__(self, message: str, status_code: int = 0, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationFailure(HTTPRequestError):
    """The service rejected our credentials (401)"""


class CampfireConnectionError(CampfireError):
    """The request never got an answer from the service"""


class UserFetchError(CampfireError):
    """A single user record could not be fetched"""

    def __init__(self, message: str, user_id: Any = None):
        super().__init__(message)
        self.user_id = user_id


class MalformedTimestampError(CampfireError):
    """A timestamp on the wire could not be parsed"""

    def __init__(self, value: Any):
        super().__init__(f"Unparsable timestamp: {value!r}")
        self.value = value


class ListenFailed(CampfireError):
    """The live stream ended with a terminal failure"""

    def __init__(self, message: str, payload: Any = None, retries: int | None = None):
        super().__init__(message)
        self.payload = payload
        self.retries = retries


class StreamStateError(CampfireError):
    """The stream is not in a state that allows the requested transition"""
