# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Canonical request construction for SigV4.

Turns a RequestDescriptor into the exact string the signature is
computed over.  Canonicalization mistakes do not fail loudly: they
produce a signature the backend rejects.  Each step is therefore a
separate function with its own tests.
"""

from __future__ import annotations

import base64
import binascii
import re
import urllib.parse
from collections.abc import Iterable
from dataclasses import dataclass

from edge_signer.errors import CanonicalizationError
from edge_signer.hashing import digest, hex_digest
from edge_signer.types import RequestDescriptor


# ---------------------------------------------------------------------------
# URI encoding (RFC 3986 unreserved set)
# ---------------------------------------------------------------------------


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """URI-encode a value using SigV4 rules.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other UTF-8 byte is percent-encoded as %XX (uppercase hex)
    - Forward slashes (/) are optionally preserved

    Args:
        value: String to encode.
        encode_slash: If True, encode '/'; if False, preserve '/'.

    Returns:
        URI-encoded string.

    Raises:
        CanonicalizationError: If the value is not encodable as UTF-8.
    """
    try:
        return urllib.parse.quote(value, safe="" if encode_slash else "/")
    except UnicodeEncodeError as e:
        raise CanonicalizationError(f"Cannot URI-encode {value!r}: {e}") from e


# ---------------------------------------------------------------------------
# Path and query
# ---------------------------------------------------------------------------


def canonical_uri(path: str) -> str:
    """Build canonical URI from request path.

    Empty and ``.`` segments are dropped and ``..`` removes the previous
    segment.  A trailing slash survives normalization.  The normalized
    path is then encoded as-is, so existing escapes are encoded again
    (``%3A`` -> ``%253A``), as SigV4 requires for non-S3 services.

    Args:
        path: Request path, possibly already percent-encoded.

    Returns:
        URI-encoded canonical path.
    """
    if not path:
        return "/"

    segments: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
        else:
            segments.append(segment)

    normalized = "/" + "/".join(segments)
    if segments and path.endswith("/"):
        normalized += "/"
    return uri_encode(normalized, encode_slash=False)


def parse_query(raw: str) -> tuple[tuple[str, str], ...]:
    """Split a raw query string into decoded (key, value) pairs.

    ``+`` decodes to a space, blank values are kept and a key without
    ``=`` gets an empty value.  Order is preserved.

    Args:
        raw: Query string without the leading ``?``.

    Returns:
        Decoded pairs in received order.

    Raises:
        CanonicalizationError: If an escape does not decode as UTF-8.
    """
    if not raw:
        return ()
    try:
        pairs = urllib.parse.parse_qsl(
            raw, keep_blank_values=True, errors="strict"
        )
    except (UnicodeDecodeError, ValueError) as e:
        raise CanonicalizationError(
            f"Unparseable query string {raw!r}: {e}"
        ) from e
    return tuple(pairs)


def canonical_query_string(query: Iterable[tuple[str, str]]) -> str:
    """Build canonical query string.

    Args:
        query: Decoded (key, value) pairs.

    Returns:
        Canonical query string (encoded, sorted by key then value).
    """
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in query)
    return "&".join(f"{k}={v}" for k, v in encoded)


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


#: Headers never signed, whatever the configured exclusions.  Hops may
#: add, drop or rewrite them on the way to the backend.
UNSIGNABLE_HEADERS = frozenset(
    {
        "authorization",
        "cache-control",
        "connection",
        "expect",
        "from",
        "keep-alive",
        "max-forwards",
        "pragma",
        "referer",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "user-agent",
        "x-amzn-trace-id",
    }
)

UNSIGNABLE_HEADER_PREFIXES = ("proxy-", "sec-")

# Whitespace as matched by ECMAScript \s; \x1c-\x1f and \x85 are not in it.
_WHITESPACE_RE = re.compile(
    r"[\t\n\v\f\r \u00a0\u1680\u2000-\u200a"
    r"\u2028\u2029\u202f\u205f\u3000\ufeff]+"
)


def is_unsignable(name: str) -> bool:
    """Return True for headers that are never part of a signature."""
    name = name.lower()
    return name in UNSIGNABLE_HEADERS or name.startswith(
        UNSIGNABLE_HEADER_PREFIXES
    )


def canonical_header_value(values: Iterable[str]) -> str:
    """Trim each value, collapse whitespace runs and join with commas."""
    return ",".join(
        _WHITESPACE_RE.sub(" ", value).strip(" ") for value in values
    )


def signable_headers(
    request: RequestDescriptor, excluded_headers: Iterable[str] = ()
) -> dict[str, str]:
    """Select and normalize the headers that take part in signing.

    Args:
        request: Request to sign.
        excluded_headers: Header names (any casing) left out of signing.

    Returns:
        Lowercase name -> canonical value, sorted by name.  Both the
        canonical headers block and the signed headers list are built
        from this mapping.
    """
    excluded = {name.lower() for name in excluded_headers}
    selected = {
        name.lower(): canonical_header_value(f.value for f in fields)
        for name, fields in request.headers.items()
        if name.lower() not in excluded and not is_unsignable(name)
    }
    return dict(sorted(selected.items()))


def canonical_headers_string(headers: dict[str, str]) -> str:
    """Build canonical headers string.

    Args:
        headers: Output of signable_headers().

    Returns:
        Canonical headers string (each line: "name:value" + newline).
    """
    return "".join(f"{name}:{value}\n" for name, value in headers.items())


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


def decode_body(request: RequestDescriptor) -> bytes:
    """Decode the request body according to its transfer encoding.

    Raises:
        CanonicalizationError: If the encoding is unknown or the body
            is not valid base64.
    """
    if request.body_encoding == "text":
        return request.body
    if request.body_encoding == "base64":
        try:
            return base64.b64decode(request.body, validate=True)
        except binascii.Error as e:
            raise CanonicalizationError(f"Invalid base64 body: {e}") from e
    raise CanonicalizationError(
        f"Unsupported body encoding: {request.body_encoding!r}"
    )


def payload_hash(request: RequestDescriptor) -> str:
    """Hex SHA-256 of the decoded body (hash of b"" when empty)."""
    return digest(decode_body(request)).hex()


# ---------------------------------------------------------------------------
# Canonical request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CanonicalRequest:
    """Canonical form of a request.

    Attributes:
        method: HTTP method, copied verbatim.
        uri: Canonical URI.
        query: Canonical query string.
        headers: Canonical headers block (ends with a newline).
        signed_headers: Sorted lowercase names present in ``headers``.
        payload_hash: Hex SHA-256 of the decoded body.
    """

    method: str
    uri: str
    query: str
    headers: str
    signed_headers: tuple[str, ...]
    payload_hash: str

    @property
    def signed_headers_list(self) -> str:
        """Semicolon-separated signed header names."""
        return ";".join(self.signed_headers)

    @property
    def hash(self) -> str:
        """Hex SHA-256 of the canonical request string."""
        return hex_digest(str(self))

    def __str__(self) -> str:
        return "\n".join(
            [
                self.method,
                self.uri,
                self.query,
                self.headers,
                self.signed_headers_list,
                self.payload_hash,
            ]
        )


def canonicalize(
    request: RequestDescriptor, excluded_headers: Iterable[str] = ()
) -> CanonicalRequest:
    """Build the canonical request for ``request``.

    Args:
        request: Request to sign.
        excluded_headers: Header names left out of signing in addition
            to UNSIGNABLE_HEADERS, usually the forwarding header.

    Returns:
        CanonicalRequest.

    Raises:
        CanonicalizationError: If the request cannot be normalized or
            has no signable Host header.
    """
    headers = signable_headers(request, excluded_headers)
    if "host" not in headers:
        raise CanonicalizationError("Host header is missing or excluded")

    return CanonicalRequest(
        method=request.method,
        uri=canonical_uri(request.path),
        query=canonical_query_string(request.query),
        headers=canonical_headers_string(headers),
        signed_headers=tuple(headers),
        payload_hash=payload_hash(request),
    )
