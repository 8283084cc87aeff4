"""
Group search filter templates.

Templates are configured in the ``{{.UserDN}}`` / ``{{.Username}}`` form, e.g.
``(&(objectClass=group)(member:1.2.840.113556.1.4.1941:={{.UserDN}}))``.
They are converted to Jinja2 expressions, compiled once per template string
and rendered with values that were filter-escaped beforehand.
"""

from __future__ import annotations

import re
from functools import lru_cache

from jinja2 import Environment, StrictUndefined, Template, TemplateError

from .errors import ConfigurationError
from .utils import escape_ldap_filter_value

_DOT_PLACEHOLDER = re.compile(r"\{\{-?\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*-?\}\}")

_env = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)


def _to_jinja(template: str) -> str:
    return _DOT_PLACEHOLDER.sub(r"{{ \1 }}", template)


@lru_cache(maxsize=64)
def compile_group_filter(template: str) -> Template:
    try:
        return _env.from_string(_to_jinja(template))
    except TemplateError as e:
        raise ConfigurationError(f"cannot create group filter template for LDAP search: {e}") from e


def render_group_filter(template: str, user_dn: str, username: str) -> str:
    """Render the group filter with the escaped ``UserDN`` and ``Username``."""
    tpl = compile_group_filter(template)
    context = {
        "UserDN": escape_ldap_filter_value(user_dn),
        "Username": escape_ldap_filter_value(username),
    }
    try:
        return tpl.render(**context)
    except TemplateError as e:
        raise ConfigurationError(f"cannot execute group filter template for LDAP search: {e}") from e
