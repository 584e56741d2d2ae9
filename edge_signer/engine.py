# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Request signing entry point.

Wires canonicalization, signing and merging into one call::

    request --stamp X-Amz-Date/token--> canonicalize --> sign --> merge

The timestamp is captured once and reused for the credential scope, the
string to sign and the ``X-Amz-Date`` header.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from edge_signer.canonical import CanonicalRequest, canonicalize
from edge_signer.clock import SigningTime, capture_signing_time
from edge_signer.config import SignerConfig
from edge_signer.merge import merge
from edge_signer.signer import SigningResult, sign
from edge_signer.types import RequestDescriptor, SigningScope


logger = logging.getLogger(__name__)

# us-east-1, eu-central-1, ap-southeast-2, us-gov-west-1, cn-north-1, ...
_REGION_LABEL_RE = re.compile(
    r"^(af|ap|ca|cn|eu|il|me|mx|sa|us)(-gov|-iso[a-z]?)?-[a-z]+-\d+$"
)


def resolve_region(host: str, config: SignerConfig) -> str:
    """Pick the signing region for a target host.

    With ``region_from_host`` enabled, the first host label shaped like
    a region wins (``abc.lambda-url.eu-west-1.on.aws`` -> ``eu-west-1``).
    Otherwise, or when no label matches, the configured region is used.
    """
    if config.region_from_host:
        hostname = host.split(":", 1)[0].lower()
        for label in hostname.split("."):
            if _REGION_LABEL_RE.match(label):
                return label
    return config.region


def _prepare(
    request: RequestDescriptor,
    config: SignerConfig,
    now: datetime | None,
) -> tuple[RequestDescriptor, SigningScope, SigningTime]:
    signing_time = capture_signing_time(now)
    scope = SigningScope(
        date=signing_time.date_stamp,
        region=resolve_region(request.host, config),
        service=config.service,
    )
    stamped = merge(
        request,
        authorization=None,
        timestamp=signing_time.amz_date,
        session_token=config.credentials.session_token,
    )
    return stamped, scope, signing_time


def build_canonical_request(
    request: RequestDescriptor,
    config: SignerConfig,
    *,
    now: datetime | None = None,
) -> tuple[CanonicalRequest, SigningResult]:
    """Canonicalize and sign without merging, for diagnostics.

    Returns:
        Tuple of (canonical request, signing result).
    """
    stamped, scope, signing_time = _prepare(request, config, now)
    creq = canonicalize(stamped, config.excluded_headers)
    result = sign(creq, scope, config.credentials, signing_time.amz_date)
    return creq, result


def sign_request(
    request: RequestDescriptor,
    config: SignerConfig,
    *,
    now: datetime | None = None,
) -> RequestDescriptor:
    """Return ``request`` augmented with valid SigV4 headers.

    Args:
        request: Inbound request.
        config: Signer configuration (credentials, region, service,
            excluded headers).
        now: Fixed signing instant; the clock is read when omitted.

    Returns:
        Signed request: Authorization and X-Amz-Date set, and
        X-Amz-Security-Token present only with a session token.

    Raises:
        SigningError: On any failure; the request must not be forwarded.
    """
    stamped, scope, signing_time = _prepare(request, config, now)
    creq = canonicalize(stamped, config.excluded_headers)
    result = sign(creq, scope, config.credentials, signing_time.amz_date)

    logger.debug(
        "Signed %s %s for %s", request.method, request.path, scope
    )

    return merge(
        stamped,
        authorization=result.authorization,
        timestamp=signing_time.amz_date,
        session_token=config.credentials.session_token,
    )
