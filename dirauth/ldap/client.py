from __future__ import annotations

import dataclasses
import logging
import ssl
import threading
from typing import Any, Optional

from ldap3 import Tls

from ..utils.dn import is_parsable_dn, parse_cn
from .backend import BackendConnection, Dialer, Ldap3Dialer
from .errors import (
    BackendError,
    ConfigurationError,
    InvalidCredentialsError,
    LDAPConnectionError,
    SearchError,
    ServiceBindError,
    UserLookupError,
)
from .filters import render_group_filter
from .models import DEFAULT_GROUP_FILTER, DEFAULT_USER_ATTR, DirectoryEntry, LDAPConfig
from .utils import escape_ldap_filter_value

log = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    ("group_dn", "GroupDN"),
    ("user_dn", "UserDN"),
    ("bind_dn", "BindDN"),
    ("bind_password", "BindPassword"),
)


class Client:
    """Validated LDAP configuration plus a way to open sessions.

    The client holds no session state, so one instance can be shared by any
    number of threads; each of them gets its own ``Connection``.
    """

    @staticmethod
    def _normalize_pem(pem: str) -> str:
        """Normalize PEM text (strip outer whitespace and normalize line endings)."""
        data = (pem or "").strip()
        return data.replace("\r\n", "\n").replace("\r", "\n")

    def __init__(self, cfg: LDAPConfig, dialer: Optional[Dialer] = None) -> None:
        for attr, label in _REQUIRED_FIELDS:
            if not getattr(cfg, attr):
                raise ConfigurationError(f"Cannot create LDAP client with empty {label}")

        defaults: dict[str, Any] = {}
        if not cfg.group_filter:
            defaults["group_filter"] = DEFAULT_GROUP_FILTER
        if not cfg.user_attr:
            defaults["user_attr"] = DEFAULT_USER_ATTR
        self.cfg = dataclasses.replace(cfg, **defaults) if defaults else cfg

        self.dialer = dialer or Ldap3Dialer(connect_timeout=self.cfg.timeout or None)

    def tls_settings(self) -> Tls:
        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_NONE if self.cfg.insecure else ssl.CERT_REQUIRED,
        }
        ca_pem = self._normalize_pem(self.cfg.custom_ca)
        if ca_pem:
            if "-----BEGIN CERTIFICATE-----" not in ca_pem or "-----END CERTIFICATE-----" not in ca_pem:
                raise ConfigurationError("error adding custom CA, check format")
            tls_kwargs["ca_certs_data"] = ca_pem + "\n"
        return Tls(**tls_kwargs)

    def _dial(self, url: str, tls: Tls) -> BackendConnection:
        try:
            conn = self.dialer.dial_url(url, tls)
        except BackendError as e:
            raise LDAPConnectionError(f"cannot dial ldap url: {url}: {e}") from e

        if self.cfg.start_tls:
            try:
                conn.start_tls(tls)
            except BackendError as e:
                conn.close()
                raise LDAPConnectionError(f"cannot start tls for ldap url: {url}: {e}") from e

        if self.cfg.timeout > 0:
            conn.set_timeout(self.cfg.timeout)
        return conn

    def connect(self) -> "Connection":
        """Open a session on the first reachable URL, in configured order."""
        if not self.cfg.urls:
            raise LDAPConnectionError("no LDAP urls configured")

        tls = self.tls_settings()
        errors: list[tuple[str, Exception]] = []
        for url in self.cfg.urls:
            try:
                backend = self._dial(url, tls)
            except LDAPConnectionError as e:
                log.warning("LDAP endpoint unavailable: %s", e.message)
                errors.append((url, e))
                continue
            log.debug("Connected to LDAP url %s", url)
            return Connection(backend, self)

        raise LDAPConnectionError("cannot connect to any LDAP url", errors)


class Connection:
    """A single directory session.

    All operations on one connection are serialized; open several
    connections for parallel work. Binding as a user in ``check_auth`` changes
    the identity of the session until the next service bind.
    """

    def __init__(self, conn: BackendConnection, client: Client) -> None:
        self.conn = conn
        self.client = client
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self.conn.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise LDAPConnectionError("LDAP connection is closed")

    def _service_bind(self, username: str) -> None:
        cfg = self.client.cfg
        try:
            self.conn.bind(cfg.bind_dn, cfg.bind_password)
        except BackendError as e:
            raise ServiceBindError(f"LDAP bind failed for service account {cfg.bind_dn}: {e}", username) from e

    def _search(self, base_dn: str, search_filter: str, attributes: Optional[list[str]] = None) -> list[DirectoryEntry]:
        try:
            return self.conn.search(base_dn, search_filter, attributes=attributes, size_limit=0)
        except BackendError as e:
            raise SearchError(f"LDAP search in {base_dn} failed: {e}") from e

    def _user_filter(self, username: str) -> str:
        cfg = self.client.cfg
        safe_username = escape_ldap_filter_value(username)
        if cfg.upn_domain:
            return f"(userPrincipalName={safe_username}@{cfg.upn_domain})"
        return f"({cfg.user_attr}={safe_username})"

    def _username_to_dn(self, username: str) -> str:
        self._service_bind(username)

        flt = self._user_filter(username)
        try:
            entries = self._search(self.client.cfg.user_dn, flt)
        except SearchError as e:
            raise SearchError(f"LDAP search for binddn failed for user {username}: {e.message}") from e

        if len(entries) != 1:
            log.info("User search for %s returned %d entries", username, len(entries))
            raise UserLookupError(f"No or multiple results for binddn search: {username}", username)
        return entries[0].dn

    def check_auth(self, username: str, password: str) -> None:
        """Verify ``password`` for ``username`` by binding as the user's entry.

        Raises ``UserLookupError`` when the user cannot be resolved,
        ``ServiceBindError`` when the service account is rejected and
        ``InvalidCredentialsError`` when the user's own bind fails.
        """
        with self._lock:
            self._ensure_open()
            user_dn = self._username_to_dn(username)
            try:
                self.conn.bind(user_dn, password)
            except BackendError as e:
                log.info("LDAP bind rejected for %s", username)
                raise InvalidCredentialsError(f"invalid credentials for binding user: {username}", username) from e

    def _group_entries(self, user_dn: str, username: str) -> list[DirectoryEntry]:
        cfg = self.client.cfg
        flt = render_group_filter(cfg.group_filter, user_dn, username)
        log.debug("Group search in %s with filter %s", cfg.group_dn, flt)
        return self._search(cfg.group_dn, flt, attributes=[cfg.group_attr])

    def get_ldap_groups(self, username: str) -> list[str]:
        """Names of the groups ``username`` belongs to, without duplicates.

        Group values are reduced to their CN, so ``cn=admins,ou=groups,...``
        and ``admins`` count as the same group. Order is not significant.
        """
        with self._lock:
            self._ensure_open()
            self._service_bind(username)
            user_dn = self._username_to_dn(username)
            entries = self._group_entries(user_dn, username)

            group_attr = self.client.cfg.group_attr
            groups: dict[str, None] = {}
            for e in entries:
                if not is_parsable_dn(e.dn):
                    log.debug("Skipping group entry with unparsable DN: %r", e.dn)
                    continue
                for value in e.get_attribute_values(group_attr):
                    groups[parse_cn(value)] = None

            return list(groups)
