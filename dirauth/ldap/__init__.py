"""LDAP connector package.

Public API:
    - LDAPConfig
    - Client
    - Connection
    - BackendConnection / Dialer (for alternative backends and tests)
"""

from .models import LDAPConfig, DirectoryEntry, DEFAULT_GROUP_FILTER
from .backend import BackendConnection, Dialer, Ldap3Backend, Ldap3Dialer
from .client import Client, Connection

__all__ = [
    "LDAPConfig",
    "DirectoryEntry",
    "DEFAULT_GROUP_FILTER",
    "BackendConnection",
    "Dialer",
    "Ldap3Backend",
    "Ldap3Dialer",
    "Client",
    "Connection",
]
