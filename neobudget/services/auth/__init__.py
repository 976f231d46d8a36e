"""Authentication collaborator interface."""

from neobudget.services.auth.interface import AuthError, AuthFailure, Authenticator

__all__ = [
    "AuthError",
    "AuthFailure",
    "Authenticator",
]
