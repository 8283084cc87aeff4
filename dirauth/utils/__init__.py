"""Side-effect free parsers for raw directory values.

Keep this package dependency-light to avoid circular imports.
"""

from .dn import parse_cn, is_parsable_dn  # noqa: F401
from .sid import sid_to_string  # noqa: F401
