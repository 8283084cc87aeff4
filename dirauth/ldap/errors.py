"""
Exceptions raised by the directory connector.

Every error carries a human readable ``message``. Bind passwords never end up
in a message; usernames and URLs do, so failures can be traced.
"""

from __future__ import annotations

from typing import Optional


class LDAPError(Exception):
    """Base exception for directory connector operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(LDAPError):
    """Invalid or missing configuration, including group filter templates."""


class LDAPConnectionError(LDAPError):
    """No LDAP endpoint could be reached.

    ``errors`` keeps one ``(url, exception)`` pair per failed endpoint.
    """

    def __init__(self, message: str, errors: Optional[list[tuple[str, Exception]]] = None):
        self.errors = list(errors or [])
        if self.errors:
            lines = [f"{len(self.errors)} error(s) occurred:"]
            lines.extend(f"\t* {exc}" for _, exc in self.errors)
            message = f"{message}: " + "\n".join(lines)
        super().__init__(message)


class AuthenticationError(LDAPError):
    """A bind was rejected by the directory."""

    def __init__(self, message: str, username: Optional[str] = None):
        self.username = username
        super().__init__(message)


class ServiceBindError(AuthenticationError):
    """The service account (BindDN/BindPassword) could not bind."""


class InvalidCredentialsError(AuthenticationError):
    """The user was found but the supplied password was rejected."""


class UserLookupError(LDAPError):
    """A username resolved to zero or to several directory entries."""

    def __init__(self, message: str, username: Optional[str] = None):
        self.username = username
        super().__init__(message)


class SearchError(LDAPError):
    """The directory search itself failed."""


class ParseError(LDAPError):
    """A raw directory value could not be decoded."""


class SIDParseError(ParseError):
    def __init__(self, message: str, data: bytes):
        self.data = bytes(data)
        super().__init__(f"SID {self.data!r} convert failed {message}")


class BackendError(LDAPError):
    """Raised by backend connection implementations.

    The connector translates it into one of the errors above.
    """
