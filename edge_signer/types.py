# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Type definitions for the signing engine.

Provides the request representation shared by every stage
(HeaderField, RequestDescriptor) and the signing inputs (Credentials,
SigningScope).  All types are immutable; transformations return new
instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace


#: Final element of every credential scope.
SCOPE_TERMINATOR = "aws4_request"


@dataclass(frozen=True)
class HeaderField:
    """A single header occurrence.

    Attributes:
        name: Header name exactly as received (original casing).
        value: Raw header value.
    """

    name: str
    value: str


@dataclass(frozen=True)
class RequestDescriptor:
    """Normalized view of an HTTP request.

    Attributes:
        method: HTTP method, expected uppercase.
        host: Target host name.
        path: Request path, already percent-normalized.
        query: Query parameters as (key, value) pairs in received order.
        headers: Lowercase header name -> occurrences in received order.
        body: Body bytes as received (possibly base64 text).
        body_encoding: ``"text"`` or ``"base64"``; only used to decode
            the body before hashing.
    """

    method: str
    host: str
    path: str
    query: tuple[tuple[str, str], ...] = ()
    headers: Mapping[str, tuple[HeaderField, ...]] = field(
        default_factory=dict
    )
    body: bytes = b""
    body_encoding: str = "text"

    @classmethod
    def create(
        cls,
        *,
        method: str,
        host: str,
        path: str,
        query: Iterable[tuple[str, str]] = (),
        headers: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        body: bytes = b"",
        body_encoding: str = "text",
    ) -> RequestDescriptor:
        """Build a descriptor from plain name/value header pairs.

        Repeated names (in any casing) are grouped under one lowercase
        key, preserving order and the casing of each occurrence.
        """
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        grouped: dict[str, list[HeaderField]] = {}
        for name, value in pairs:
            field_ = HeaderField(name, value)
            grouped.setdefault(name.lower(), []).append(field_)
        return cls(
            method=method,
            host=host,
            path=path,
            query=tuple(query),
            headers={k: tuple(v) for k, v in grouped.items()},
            body=body,
            body_encoding=body_encoding,
        )

    def header_values(self, name: str) -> tuple[str, ...]:
        """Return all values of a header (case-insensitive lookup)."""
        return tuple(f.value for f in self.headers.get(name.lower(), ()))

    def get_header(self, name: str) -> str | None:
        """Return the first value of a header, or None if absent."""
        values = self.header_values(name)
        return values[0] if values else None

    def with_headers(
        self, headers: Mapping[str, tuple[HeaderField, ...]]
    ) -> RequestDescriptor:
        """Return a copy with the header mapping replaced."""
        return replace(self, headers=dict(headers))


@dataclass(frozen=True)
class Credentials:
    """Signing credentials.

    The secret key and session token are excluded from ``repr`` so the
    object can be logged safely.

    Attributes:
        access_key_id: Access key ID placed in the credential scope.
        secret_access_key: Secret used to derive the signing key.
        session_token: Optional STS session token.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class SigningScope:
    """Credential scope binding a derived key to date, region and service.

    Attributes:
        date: UTC date (YYYYMMDD).
        region: Signing region.
        service: Signing service name.
        terminator: Fixed scope terminator.
    """

    date: str
    region: str
    service: str
    terminator: str = SCOPE_TERMINATOR

    def __str__(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/{self.terminator}"
