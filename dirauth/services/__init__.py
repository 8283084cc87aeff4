"""Service layer for host applications.

    from dirauth.services import authenticate, AuthResult
"""

from .auth import AuthResult, authenticate

__all__ = [
    "AuthResult",
    "authenticate",
]
