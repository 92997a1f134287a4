"""
Failure taxonomy shared by the gateway, the sync pipeline and the bootstrap.

``FetchError`` and its subclasses are transient: the polling loop reports them
as :class:`~insta_relay.events.ClientFault` events and keeps going.
``AuthenticationError`` is fatal to login and always reaches the caller.
"""


class InstaRelayError(Exception):
    """Base class for errors raised by this package."""


class FetchError(InstaRelayError):
    """A lookup against the private API failed (network, 5xx, unexpected body)."""


class NotFoundError(FetchError):
    """The requested user or thread does not exist or is not visible."""


class RateLimitedError(FetchError):
    """Instagram asked the client to wait before retrying."""

    def __init__(self, message: str = "Please wait a few minutes before you try again.") -> None:
        super().__init__(message)


class AuthenticationError(InstaRelayError):
    """Credentials were refused or the account is locked behind a challenge."""


__all__ = [
    "AuthenticationError",
    "FetchError",
    "InstaRelayError",
    "NotFoundError",
    "RateLimitedError",
]
