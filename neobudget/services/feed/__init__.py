"""Feed collaborator interface and token helpers."""

from neobudget.services.feed.interface import (
    ClaimError,
    ClaimFailure,
    FeedClient,
    FeedError,
    FeedNotConnectedError,
    FetchError,
)
from neobudget.services.feed.tokens import (
    AccessParts,
    parse_claim_url,
    split_access_url,
    validate_access_url,
)

__all__ = [
    "AccessParts",
    "ClaimError",
    "ClaimFailure",
    "FeedClient",
    "FeedError",
    "FeedNotConnectedError",
    "FetchError",
    "parse_claim_url",
    "split_access_url",
    "validate_access_url",
]
