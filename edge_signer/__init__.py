# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SigV4 request signing for edge proxies.

Rewrites an inbound request into one signed with AWS Signature Version 4
(HMAC-SHA256) so a SigV4-protected backend accepts it.  The engine is a
set of pure functions; ``edge_signer.cloudfront.handler`` adapts it to
Lambda@Edge origin-request events.
"""

from edge_signer.canonical import CanonicalRequest, canonicalize
from edge_signer.config import SignerConfig, load_config
from edge_signer.engine import sign_request
from edge_signer.errors import (
    CanonicalizationError,
    ClockError,
    ConfigurationError,
    SigningError,
)
from edge_signer.keys import derive_signing_key
from edge_signer.merge import merge
from edge_signer.signer import SigningResult, sign
from edge_signer.types import (
    Credentials,
    HeaderField,
    RequestDescriptor,
    SigningScope,
)


__all__ = [
    "CanonicalRequest",
    "CanonicalizationError",
    "ClockError",
    "ConfigurationError",
    "Credentials",
    "HeaderField",
    "RequestDescriptor",
    "SignerConfig",
    "SigningError",
    "SigningResult",
    "SigningScope",
    "canonicalize",
    "derive_signing_key",
    "load_config",
    "merge",
    "sign",
    "sign_request",
]
