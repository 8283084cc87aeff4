from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from .ldap.models import LDAPConfig
from .ldap.utils import split_urls


class LDAPEnvSettings(BaseSettings):
    urls: str = Field("", alias="LDAP_URLS")  # ';' / ',' / whitespace separated

    insecure: bool = Field(False, alias="LDAP_INSECURE")
    custom_ca: str = Field("", alias="LDAP_CUSTOM_CA")
    start_tls: bool = Field(False, alias="LDAP_START_TLS")
    timeout: float = Field(0.0, ge=0, alias="LDAP_TIMEOUT")  # seconds

    bind_dn: str = Field("", alias="LDAP_BIND_DN")
    bind_password: str = Field("", alias="LDAP_BIND_PASSWORD", repr=False)

    user_dn: str = Field("", alias="LDAP_USER_DN")
    user_attr: str = Field("", alias="LDAP_USER_ATTR")
    upn_domain: str = Field("", alias="LDAP_UPN_DOMAIN")

    group_dn: str = Field("", alias="LDAP_GROUP_DN")
    group_filter: str = Field("", alias="LDAP_GROUP_FILTER")
    group_attr: str = Field("", alias="LDAP_GROUP_ATTR")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        populate_by_name = True

    def to_config(self) -> LDAPConfig:
        return LDAPConfig(
            urls=tuple(split_urls(self.urls)),
            insecure=self.insecure,
            custom_ca=self.custom_ca,
            start_tls=self.start_tls,
            timeout=float(self.timeout),
            bind_dn=self.bind_dn.strip(),
            bind_password=self.bind_password,
            user_dn=self.user_dn.strip(),
            user_attr=self.user_attr.strip(),
            upn_domain=self.upn_domain.strip(),
            group_dn=self.group_dn.strip(),
            group_filter=self.group_filter.strip(),
            group_attr=self.group_attr.strip(),
        )


@lru_cache(maxsize=1)
def get_env() -> LDAPEnvSettings:
    return LDAPEnvSettings()


def ldap_cfg_from_env() -> LDAPConfig:
    """Build the connector configuration from ``LDAP_*`` environment variables."""
    return get_env().to_config()
