"""
Directory-service authentication connector.

Resolves usernames to directory entries, verifies passwords by binding as the
entry and collects the user's group names with a templated group filter.
"""

__version__ = "1.0.0"

from .ldap import Client, Connection, LDAPConfig
from .ldap.errors import (
    LDAPError,
    ConfigurationError,
    LDAPConnectionError,
    AuthenticationError,
    ServiceBindError,
    InvalidCredentialsError,
    UserLookupError,
    SearchError,
    ParseError,
    SIDParseError,
)
from .utils import parse_cn, sid_to_string

__all__ = [
    "Client",
    "Connection",
    "LDAPConfig",
    "LDAPError",
    "ConfigurationError",
    "LDAPConnectionError",
    "AuthenticationError",
    "ServiceBindError",
    "InvalidCredentialsError",
    "UserLookupError",
    "SearchError",
    "ParseError",
    "SIDParseError",
    "parse_cn",
    "sid_to_string",
]
