# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""CloudFront origin-request adapter and Lambda@Edge entry point.

CloudFront passes the request as a plain dict::

    {
        "method": "GET",
        "uri": "/prod/items",
        "querystring": "a=1&b=2",
        "headers": {"host": [{"key": "Host", "value": "..."}], ...},
        "body": {"data": "...", "encoding": "base64", ...},
        ...
    }

The adapter converts it into a RequestDescriptor, and writes the signed
headers back into a copy of the original dict.  Fields it does not
understand are passed through untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from edge_signer.canonical import parse_query
from edge_signer.config import SignerConfig, load_config
from edge_signer.engine import sign_request
from edge_signer.errors import CanonicalizationError, SigningError
from edge_signer.logging import configure_logging
from edge_signer.types import HeaderField, RequestDescriptor


logger = logging.getLogger(__name__)

_config: SignerConfig | None = None


def from_cloudfront_request(cf_request: Mapping[str, Any]) -> RequestDescriptor:
    """Convert a CloudFront request dict into a RequestDescriptor.

    Raises:
        CanonicalizationError: If the request lacks a method or Host
            header, or its body was truncated by CloudFront.
    """
    method = cf_request.get("method")
    if not method:
        raise CanonicalizationError("CloudFront request has no method")

    headers: dict[str, tuple[HeaderField, ...]] = {}
    for name, entries in (cf_request.get("headers") or {}).items():
        headers[name.lower()] = tuple(
            HeaderField(entry.get("key", name), entry.get("value", ""))
            for entry in entries
        )

    host_fields = headers.get("host")
    if not host_fields:
        raise CanonicalizationError("CloudFront request has no Host header")

    body = cf_request.get("body") or {}
    if body.get("inputTruncated"):
        # Signing a truncated body would hash the wrong payload.
        raise CanonicalizationError("Request body was truncated by CloudFront")
    data = body.get("data") or ""

    return RequestDescriptor(
        method=method,
        host=host_fields[0].value,
        path=cf_request.get("uri") or "/",
        query=parse_query(cf_request.get("querystring") or ""),
        headers=headers,
        body=data.encode("utf-8"),
        body_encoding=body.get("encoding", "text") if data else "text",
    )


def to_cloudfront_request(
    cf_request: Mapping[str, Any], signed: RequestDescriptor
) -> dict[str, Any]:
    """Return a copy of ``cf_request`` carrying the signed headers.

    Only ``headers`` is rebuilt; every other field is copied as is.
    """
    out = dict(cf_request)
    out["headers"] = {
        name: [{"key": f.name, "value": f.value} for f in fields]
        for name, fields in signed.headers.items()
    }
    return out


def error_response(status: int, description: str) -> dict[str, Any]:
    """Build a generated CloudFront response for a failed signing."""
    return {
        "status": str(status),
        "statusDescription": description,
        "headers": {
            "content-type": [
                {"key": "Content-Type", "value": "text/plain; charset=utf-8"}
            ],
        },
        "body": description,
    }


def get_config() -> SignerConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        configure_logging(level=logging.INFO)
        _config = load_config()
        logger.info(
            "Signer configured: service=%s region=%s region_from_host=%s",
            _config.service,
            _config.region,
            _config.region_from_host,
        )
    return _config


def reset_config() -> None:
    """Forget the loaded config. For testing only."""
    global _config
    _config = None


def sign_cloudfront_request(
    cf_request: Mapping[str, Any],
    config: SignerConfig,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Sign a CloudFront request dict and return the outbound request.

    Raises:
        SigningError: If the request cannot be signed.
    """
    signed = sign_request(from_cloudfront_request(cf_request), config, now=now)
    return to_cloudfront_request(cf_request, signed)


def handler(event: Mapping[str, Any], context: object) -> dict[str, Any]:
    """Lambda@Edge origin-request handler.

    Returns the signed request, or a generated error response when the
    request cannot be signed.  An unsigned request is never forwarded.
    """
    cf_request = event["Records"][0]["cf"]["request"]
    try:
        return sign_cloudfront_request(cf_request, get_config())
    except CanonicalizationError as e:
        logger.error("Rejecting unsignable request: %s", e)
        return error_response(400, "Bad Request")
    except SigningError as e:
        logger.error("Request signing failed: %s", e)
        return error_response(500, "Internal Server Error")
