"""Shape checks for SimpleFIN setup tokens and access URLs."""

import base64
import binascii
from typing import NamedTuple
from urllib.parse import urlsplit, urlunsplit

from neobudget.services.feed.interface import ClaimError, ClaimFailure

CLAIM_PATH_MARKER = "/simplefin/claim/"


class AccessParts(NamedTuple):
    base_url: str
    username: str
    password: str


def _is_http_url(text: str) -> bool:
    return text.startswith("http://") or text.startswith("https://")


def parse_claim_url(token_or_url: str) -> str:
    """
    Resolve a setup token to its claim URL.

    The token is either the claim URL itself or its base64 encoding; either
    way the URL must contain `/simplefin/claim/`.

    Raises:
        ClaimError: with reason MALFORMED_TOKEN
    """
    raw = (token_or_url or "").strip()
    if not raw:
        raise ClaimError(ClaimFailure.MALFORMED_TOKEN, "Missing setup token / claim URL")

    if _is_http_url(raw):
        candidate = raw
    else:
        try:
            candidate = base64.b64decode(raw, validate=True).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError, ValueError):
            raise ClaimError(ClaimFailure.MALFORMED_TOKEN, "Token is not valid base64 and is not a URL")

    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ClaimError(ClaimFailure.MALFORMED_TOKEN, "Decoded token is not a valid URL")
    if CLAIM_PATH_MARKER not in parts.path:
        raise ClaimError(ClaimFailure.MALFORMED_TOKEN, "URL does not look like a SimpleFIN claim URL")
    return candidate


def validate_access_url(access_url: str) -> str:
    """Check a claim response body looks like an access URL with credentials."""
    text = (access_url or "").strip()
    if not _is_http_url(text):
        raise ClaimError(ClaimFailure.CLAIM_REJECTED, "Claim did not return a valid access URL")
    try:
        split_access_url(text)
    except ValueError as e:
        raise ClaimError(ClaimFailure.CLAIM_REJECTED, str(e))
    return text


def split_access_url(access_url: str) -> AccessParts:
    """
    Split an access URL into a credential-free base URL and basic-auth parts.

    Raises ValueError when the URL is invalid or carries no credentials.
    """
    try:
        parts = urlsplit(access_url)
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        raise ValueError("Stored Access URL is invalid")
    if parts.scheme not in ("http", "https") or not hostname:
        raise ValueError("Stored Access URL is invalid")
    if not parts.username or not parts.password:
        raise ValueError("Access URL is missing Basic Auth credentials")

    host = f"{hostname}:{port}" if port else hostname
    base_url = urlunsplit((parts.scheme, host, parts.path.rstrip("/"), "", ""))
    return AccessParts(base_url=base_url, username=parts.username, password=parts.password)
