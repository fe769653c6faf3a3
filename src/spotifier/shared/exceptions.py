"""
Exceptions Module - Error taxonomy for the SPOT client.
=======================================================

Every failure the client reports derives from :class:`SpotifierError`.
Nothing in the core retries; callers decide whether to re-authenticate,
re-fetch or give up.
"""

from typing import Optional


class SpotifierError(Exception):
    """Base class for all client errors."""


class TransportError(SpotifierError):
    """Network or HTTP-layer failure while dispatching a request."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class TokenNotFound(SpotifierError):
    """The SSO login page did not contain the ``execution`` token."""

    def __init__(self, message: str = "Could not find the login execution token on the page"):
        super().__init__(message)


class AuthenticationFailed(SpotifierError):
    """Credentials rejected, or the SSO did not redirect back to the portal."""

    def __init__(
        self,
        message: str = "Authentication failed. Please check your credentials.",
        body: str = "",
        final_url: Optional[str] = None,
    ):
        super().__init__(message)
        self.body = body
        self.final_url = final_url


class SessionExpired(SpotifierError):
    """A content fetch was redirected away from the requested page."""

    def __init__(self, requested_path: str = "", final_url: Optional[str] = None):
        super().__init__("The SPOT session appears to have expired")
        self.requested_path = requested_path
        self.final_url = final_url


class ParsingError(SpotifierError):
    """Markup was found but could not be interpreted."""


class ElementNotFound(ParsingError):
    """A required element is missing from the page."""

    def __init__(self, element: str):
        super().__init__(f"Could not find required element on the page: {element}")
        self.element = element


class InvalidPeriod(SpotifierError):
    """The portal rejected a period change."""


class TaskSubmissionFailed(SpotifierError):
    """The portal answered a submission with neither success nor redirect."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TaskDeletionFailed(SpotifierError):
    """The portal answered a deletion with neither success nor redirect."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
