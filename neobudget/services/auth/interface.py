"""
Credential verification collaborator.

Password hashing and account lookup are implemented elsewhere; the core
only needs to turn credentials into a user key or a typed failure.
AuthError is never retried automatically.
"""

from abc import ABC, abstractmethod
from enum import Enum


class AuthFailure(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"


class AuthError(Exception):
    """Authentication failed."""

    def __init__(self, reason: AuthFailure, message: str = ""):
        self.reason = reason
        super().__init__(message or reason.value)


class Authenticator(ABC):

    @abstractmethod
    async def authenticate(self, email: str, secret: str) -> str:
        """
        Verify credentials.

        Returns:
            The user key under which the profile is stored

        Raises:
            AuthError: invalid credentials or unknown user
        """
        pass
