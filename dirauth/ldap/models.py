from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


DEFAULT_USER_ATTR = "cn"
DEFAULT_GROUP_FILTER = "(|(memberUid={{.Username}})(member={{.UserDN}})(uniqueMember={{.UserDN}}))"


@dataclass(frozen=True)
class LDAPConfig:
    urls: tuple[str, ...] = ()

    insecure: bool = False
    custom_ca: str = ""
    start_tls: bool = False
    # seconds; 0 leaves the backend default
    timeout: float = 0.0

    # Service account used for user and group searches
    bind_dn: str = ""
    bind_password: str = field(default="", repr=False)

    # Base DN of the user search and the attribute matched against the username
    user_dn: str = ""
    user_attr: str = ""
    upn_domain: str = ""

    # Base DN of the group search, filter template and attribute holding group names
    group_dn: str = ""
    group_filter: str = ""
    group_attr: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable of URLs but store an immutable tuple.
        object.__setattr__(self, "urls", tuple(self.urls or ()))


@dataclass
class DirectoryEntry:
    dn: str
    attributes: dict[str, list[str]] = field(default_factory=dict)
    raw_attributes: dict[str, list[bytes]] = field(default_factory=dict)

    def _lookup(self, values: dict, name: str) -> Optional[list]:
        if name in values:
            return values[name]
        wanted = (name or "").lower()
        for key, val in values.items():
            if key.lower() == wanted:
                return val
        return None

    def get_attribute_values(self, name: str) -> list[str]:
        """Attribute values as text; attribute names are case-insensitive."""
        return list(self._lookup(self.attributes, name) or [])

    def get_raw_attribute_values(self, name: str) -> list[bytes]:
        return list(self._lookup(self.raw_attributes, name) or [])
