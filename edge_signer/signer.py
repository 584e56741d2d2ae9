# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SigV4 signature computation and Authorization header assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from edge_signer.canonical import CanonicalRequest
from edge_signer.clock import parse_amz_date
from edge_signer.errors import ClockError, ConfigurationError
from edge_signer.hashing import hmac_sha256
from edge_signer.keys import derive_signing_key
from edge_signer.types import Credentials, SigningScope


logger = logging.getLogger(__name__)

#: Algorithm identifier for HMAC-SHA256 request signing.
ALGORITHM = "AWS4-HMAC-SHA256"


@dataclass(frozen=True)
class SigningResult:
    """Result of signing a canonical request.

    Attributes:
        authorization: Full Authorization header value.
        signed_headers: Lowercase names covered by the signature.
        signature: Hex-encoded signature.
        string_to_sign: The exact string that was signed.
    """

    authorization: str
    signed_headers: frozenset[str]
    signature: str
    string_to_sign: str


def build_string_to_sign(
    timestamp: str, scope: SigningScope, canonical_request: CanonicalRequest
) -> str:
    """Build the SigV4 string to sign.

    Args:
        timestamp: ISO8601 basic timestamp (the X-Amz-Date value).
        scope: Credential scope.
        canonical_request: The canonical request.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            timestamp,
            str(scope),
            canonical_request.hash,
        ]
    )


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Return the hex HMAC-SHA256 of the string to sign."""
    return hmac_sha256(signing_key, string_to_sign).hex()


def build_authorization(
    access_key_id: str,
    scope: SigningScope,
    signed_headers_list: str,
    signature: str,
) -> str:
    """Assemble the Authorization header value."""
    return (
        f"{ALGORITHM} "
        f"Credential={access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers_list}, "
        f"Signature={signature}"
    )


def _validate_credentials(credentials: Credentials) -> None:
    if not credentials.access_key_id:
        raise ConfigurationError("Access key ID is empty")
    if not credentials.secret_access_key:
        raise ConfigurationError("Secret access key is empty")


def _validate_timestamp(timestamp: str, scope: SigningScope) -> None:
    parse_amz_date(timestamp)
    if not timestamp.startswith(scope.date):
        raise ClockError(
            f"Timestamp {timestamp} does not match scope date {scope.date}"
        )


def sign(
    canonical_request: CanonicalRequest,
    scope: SigningScope,
    credentials: Credentials,
    timestamp: str,
) -> SigningResult:
    """Sign a canonical request.

    Args:
        canonical_request: Canonical request to sign.
        scope: Credential scope (date must match ``timestamp``).
        credentials: Signing credentials.
        timestamp: ISO8601 basic timestamp sent as X-Amz-Date.

    Returns:
        SigningResult with the Authorization header value.

    Raises:
        ConfigurationError: If the access key ID or secret is empty.
        ClockError: If the timestamp is malformed or disagrees with the
            scope date.
    """
    _validate_credentials(credentials)
    _validate_timestamp(timestamp, scope)

    string_to_sign = build_string_to_sign(timestamp, scope, canonical_request)
    signing_key = derive_signing_key(credentials.secret_access_key, scope)
    signature = compute_signature(signing_key, string_to_sign)

    logger.debug(
        "Signed request: scope=%s signed_headers=%s creq_hash=%s",
        scope,
        canonical_request.signed_headers_list,
        canonical_request.hash,
    )

    return SigningResult(
        authorization=build_authorization(
            credentials.access_key_id,
            scope,
            canonical_request.signed_headers_list,
            signature,
        ),
        signed_headers=frozenset(canonical_request.signed_headers),
        signature=signature,
        string_to_sign=string_to_sign,
    )
