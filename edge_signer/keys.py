# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SigV4 signing key derivation."""

from __future__ import annotations

from edge_signer.hashing import hmac_sha256
from edge_signer.types import SigningScope


#: Prefix prepended to the secret before the first HMAC step.
SECRET_PREFIX = "AWS4"


def derive_signing_key(secret: str | bytes, scope: SigningScope) -> bytes:
    """Derive the SigV4 signing key.

    Each HMAC output keys the next step; raw bytes flow through the
    whole chain.  Nothing is cached here.

    Args:
        secret: Secret access key.
        scope: Credential scope providing date, region, service and
            terminator.

    Returns:
        Derived signing key bytes.
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    k_date = hmac_sha256(SECRET_PREFIX.encode("utf-8") + secret, scope.date)
    k_region = hmac_sha256(k_date, scope.region)
    k_service = hmac_sha256(k_region, scope.service)
    return hmac_sha256(k_service, scope.terminator)
