from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..ldap import Client, LDAPConfig
from ..ldap.errors import (
    AuthenticationError,
    ConfigurationError,
    LDAPConnectionError,
    LDAPError,
    ServiceBindError,
    UserLookupError,
)

log = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password."


@dataclass
class AuthResult:
    """Outcome of a directory login."""
    success: bool
    user_data: dict | None = None
    error_message: str = ""


def authenticate(username: str, password: str, cfg: LDAPConfig, client: Optional[Client] = None) -> AuthResult:
    """Check a login against the directory and collect the user's groups.

    Args:
        username: Login name as typed by the user
        password: Password
        cfg: Connector configuration (ignored when ``client`` is given)
        client: Existing client to reuse

    Returns:
        AuthResult: ``user_data`` holds ``username``, ``auth`` and ``groups``
    """
    username = (username or "").strip()
    if not username or not password:
        return AuthResult(success=False, error_message="Username and password required.")

    try:
        client = client or Client(cfg)
    except ConfigurationError as e:
        log.error("LDAP is not configured: %s", e.message)
        return AuthResult(success=False, error_message="LDAP is not configured.")

    try:
        with client.connect() as conn:
            conn.check_auth(username, password)
            groups = conn.get_ldap_groups(username)
    except ServiceBindError as e:
        log.error("LDAP service account rejected: %s", e.message)
        return AuthResult(success=False, error_message="Directory service unavailable.")
    except (UserLookupError, AuthenticationError) as e:
        log.info("LDAP login failed for %s: %s", username, e.message)
        return AuthResult(success=False, error_message=INVALID_CREDENTIALS)
    except LDAPConnectionError as e:
        log.warning("LDAP login for %s: %s", username, e.message)
        return AuthResult(success=False, error_message="Directory service unavailable.")
    except LDAPError as e:
        log.error("LDAP login for %s failed: %s", username, e.message)
        return AuthResult(success=False, error_message="Directory error, see server log.")

    user_data = {
        "username": username,
        "auth": "ldap",
        "groups": sorted(groups, key=str.lower),
    }
    return AuthResult(success=True, user_data=user_data)
