# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Apply signing headers to a request.

Only the three headers owned by the signer are touched.  Every other
header keeps its values, order and original name casing, and the body
is passed through as received.
"""

from __future__ import annotations

from edge_signer.types import HeaderField, RequestDescriptor


AUTHORIZATION_HEADER = "Authorization"
AMZ_DATE_HEADER = "X-Amz-Date"
SECURITY_TOKEN_HEADER = "X-Amz-Security-Token"


def merge(
    original: RequestDescriptor,
    authorization: str | None,
    timestamp: str,
    session_token: str | None = None,
) -> RequestDescriptor:
    """Return ``original`` with signing headers applied.

    Args:
        original: Request to augment.  Not modified.
        authorization: Authorization header value.  None leaves any
            existing Authorization header as it is, which is how the
            request is stamped before signing.
        timestamp: X-Amz-Date value, replacing any existing one.
        session_token: Session token.  When empty or None, any inbound
            X-Amz-Security-Token is removed instead of being forwarded.

    Returns:
        New RequestDescriptor.
    """
    headers = dict(original.headers)

    if authorization is not None:
        headers[AUTHORIZATION_HEADER.lower()] = (
            HeaderField(AUTHORIZATION_HEADER, authorization),
        )

    headers[AMZ_DATE_HEADER.lower()] = (
        HeaderField(AMZ_DATE_HEADER, timestamp),
    )

    if session_token:
        headers[SECURITY_TOKEN_HEADER.lower()] = (
            HeaderField(SECURITY_TOKEN_HEADER, session_token),
        )
    else:
        headers.pop(SECURITY_TOKEN_HEADER.lower(), None)

    return original.with_headers(headers)
