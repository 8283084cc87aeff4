"""
Backend connection capability.

The connector only needs a handful of operations from a live directory
session. They are described by ``BackendConnection``; ``Ldap3Backend`` is the
production implementation on top of ``ldap3`` and tests plug in an in-memory
double through a custom ``Dialer``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from ldap3 import ANONYMOUS, AUTO_BIND_NONE, NO_ATTRIBUTES, NONE, SIMPLE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from .errors import BackendError
from .models import DirectoryEntry

log = logging.getLogger(__name__)


class BackendConnection(ABC):
    """One live directory session."""

    @abstractmethod
    def bind(self, dn: str, password: str) -> None:
        """Simple bind; raises ``BackendError`` when rejected."""
        pass

    @abstractmethod
    def unauthenticated_bind(self, dn: str) -> None:
        """RFC 4513 unauthenticated bind: ``dn`` with an empty password."""
        pass

    @abstractmethod
    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Optional[Iterable[str]] = None,
        size_limit: int = 0,
    ) -> list[DirectoryEntry]:
        """Subtree search below ``base_dn``. ``size_limit=0`` means unbounded."""
        pass

    @abstractmethod
    def start_tls(self, tls: Any) -> None:
        pass

    @abstractmethod
    def set_timeout(self, seconds: float) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class Dialer(ABC):
    """Opens backend sessions from LDAP URLs."""

    @abstractmethod
    def dial_url(self, url: str, tls: Any) -> BackendConnection:
        pass


def _result_text(conn: Connection) -> str:
    res = dict(conn.result or {})
    desc = str(res.get("description") or "unknown error")
    msg = str(res.get("message") or "")
    return f"{desc} ({msg})" if msg and msg != desc else desc


def _to_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class Ldap3Backend(BackendConnection):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def bind(self, dn: str, password: str) -> None:
        # An empty password would turn into an unauthenticated bind on many servers.
        if not password:
            raise BackendError("empty password not allowed by the client")
        self.conn.authentication = SIMPLE
        self.conn.user = dn
        self.conn.password = password
        try:
            ok = self.conn.bind()
        except LDAPException as e:
            raise BackendError(f"bind failed: {e}") from e
        if not ok:
            raise BackendError(f"bind failed: {_result_text(self.conn)}")

    def unauthenticated_bind(self, dn: str) -> None:
        # ldap3 sends ANONYMOUS binds as the configured name with an empty password.
        self.conn.authentication = ANONYMOUS
        self.conn.user = dn
        self.conn.password = None
        try:
            ok = self.conn.bind()
        except LDAPException as e:
            raise BackendError(f"unauthenticated bind failed: {e}") from e
        if not ok:
            raise BackendError(f"unauthenticated bind failed: {_result_text(self.conn)}")

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Optional[Iterable[str]] = None,
        size_limit: int = 0,
    ) -> list[DirectoryEntry]:
        attrs = [a for a in (attributes or []) if a] or [NO_ATTRIBUTES]
        try:
            self.conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=attrs,
                size_limit=size_limit,
            )
        except LDAPException as e:
            raise BackendError(f"search failed: {e}") from e

        # search() is False for an empty result too; the result code tells them apart.
        code = (self.conn.result or {}).get("result", 0)
        if code != 0:
            raise BackendError(f"search failed: {_result_text(self.conn)}")

        entries: list[DirectoryEntry] = []
        for item in self.conn.response or []:
            if item.get("type") != "searchResEntry":
                continue
            raw = item.get("raw_attributes") or {}
            entries.append(
                DirectoryEntry(
                    dn=str(item.get("dn") or ""),
                    attributes={k: [_to_text(v) for v in vals] for k, vals in raw.items()},
                    raw_attributes={k: [bytes(v) for v in vals] for k, vals in raw.items()},
                )
            )
        return entries

    def start_tls(self, tls: Any) -> None:
        if tls is not None:
            self.conn.server.tls = tls
        try:
            ok = self.conn.start_tls()
        except LDAPException as e:
            raise BackendError(f"start tls failed: {e}") from e
        if not ok:
            raise BackendError(f"start tls failed: {_result_text(self.conn)}")

    def set_timeout(self, seconds: float) -> None:
        self.conn.receive_timeout = seconds
        sock = getattr(self.conn, "socket", None)
        if sock is not None:
            sock.settimeout(seconds)

    def close(self) -> None:
        try:
            self.conn.unbind()
        except LDAPException:
            log.debug("LDAP unbind failed", exc_info=True)


class Ldap3Dialer(Dialer):
    def __init__(self, connect_timeout: Optional[float] = None) -> None:
        self.connect_timeout = connect_timeout

    def dial_url(self, url: str, tls: Any) -> BackendConnection:
        try:
            server = Server(url, tls=tls, get_info=NONE, connect_timeout=self.connect_timeout)
            conn = Connection(server, auto_bind=AUTO_BIND_NONE, read_only=True)
            conn.open()
        except LDAPException as e:
            raise BackendError(str(e)) from e
        return Ldap3Backend(conn)
