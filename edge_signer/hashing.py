# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SHA-256 digest and HMAC-SHA256 primitives used by the signing engine.

Both are stateless functions over bytes.  The canonicalizer, key deriver
and signer all go through this module so a single digest algorithm is
used end to end.
"""

from __future__ import annotations

import hashlib
import hmac


def digest(data: bytes) -> bytes:
    """Return the raw SHA-256 digest of ``data``."""
    return hashlib.sha256(data).digest()


def hex_digest(data: str | bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``.

    Strings are encoded as UTF-8 first.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """HMAC-SHA256 helper."""
    if isinstance(msg, str):
        msg = msg.encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).digest()

