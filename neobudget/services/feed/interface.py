"""
Bank-aggregation feed collaborator.

The claim handshake and the HTTP transport live behind this interface.
Implementations must bound every request with a timeout and raise
FetchError with a descriptive message when it fails.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from neobudget.models.feed import FeedAccountSet


class ClaimFailure(str, Enum):
    MALFORMED_TOKEN = "malformed_token"
    CLAIM_REJECTED = "claim_rejected"


class FeedError(Exception):
    """Base exception for feed collaborator errors."""
    pass


class ClaimError(FeedError):
    """A setup token could not be exchanged for an access credential."""

    def __init__(self, reason: ClaimFailure, message: str):
        self.reason = reason
        super().__init__(message)


class FeedNotConnectedError(FeedError):
    """No access credential is stored for this user."""
    pass


class FetchError(FeedError):
    """One windowed fetch failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class FeedClient(ABC):
    """Abstract interface for a SimpleFIN-like account feed."""

    @abstractmethod
    async def claim(self, setup_token: str) -> str:
        """
        Exchange a setup token (or claim URL) for an access credential.

        Raises:
            ClaimError: malformed token or rejected claim
        """
        pass

    @abstractmethod
    async def fetch_window(
        self,
        access_credential: str,
        start_epoch: int,
        end_epoch: int,
        include_pending: bool = False,
    ) -> FeedAccountSet:
        """
        Fetch accounts and their transactions in `[start_epoch, end_epoch)`.

        Raises:
            FetchError: transport failure, timeout or non-success response
        """
        pass
