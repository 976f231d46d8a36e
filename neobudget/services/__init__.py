"""Services package: collaborator interfaces and storage backends."""

from neobudget.services.auth import AuthError, AuthFailure, Authenticator
from neobudget.services.extraction import (
    ExtractionError,
    ExtractionFailure,
    StatementExtractor,
)
from neobudget.services.feed import (
    AccessParts,
    ClaimError,
    ClaimFailure,
    FeedClient,
    FeedError,
    FeedNotConnectedError,
    FetchError,
    parse_claim_url,
    split_access_url,
    validate_access_url,
)
from neobudget.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    InMemoryAuditStorage,
    InMemoryProfileStorage,
    JsonFileProfileStorage,
    JsonLinesAuditStorage,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthFailure",
    "Authenticator",
    # Extraction
    "ExtractionError",
    "ExtractionFailure",
    "StatementExtractor",
    # Feed
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
    # Storage
    "AuditStorageInterface",
    "ConnectionError",
    "InMemoryAuditStorage",
    "InMemoryProfileStorage",
    "JsonFileProfileStorage",
    "JsonLinesAuditStorage",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
]
