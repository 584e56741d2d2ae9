# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for request and scope types."""

import dataclasses

import pytest

from edge_signer.types import (
    HeaderField,
    RequestDescriptor,
    SigningScope,
)


class TestRequestDescriptor:
    """Tests for RequestDescriptor."""

    def test_create_groups_by_lowercase_name(self) -> None:
        """Headers in any casing share one entry, order preserved."""
        request = RequestDescriptor.create(
            method="GET",
            host="h",
            path="/",
            headers=[("Accept", "a"), ("ACCEPT", "b"), ("Host", "h")],
        )
        assert request.headers["accept"] == (
            HeaderField("Accept", "a"),
            HeaderField("ACCEPT", "b"),
        )

    def test_create_from_mapping(self) -> None:
        """A plain dict is accepted for headers."""
        request = RequestDescriptor.create(
            method="GET", host="h", path="/", headers={"Host": "h"}
        )
        assert request.get_header("HOST") == "h"

    def test_missing_header(self) -> None:
        """Absent headers give None and an empty tuple."""
        request = RequestDescriptor.create(method="GET", host="h", path="/")
        assert request.get_header("x") is None
        assert request.header_values("x") == ()

    def test_immutable(self) -> None:
        """Descriptors cannot be changed in place."""
        request = RequestDescriptor.create(method="GET", host="h", path="/")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.method = "POST"  # type: ignore[misc]

    def test_with_headers_returns_copy(self) -> None:
        """with_headers leaves the original untouched."""
        request = RequestDescriptor.create(
            method="GET", host="h", path="/", headers={"Host": "h"}
        )
        updated = request.with_headers({})
        assert updated.headers == {}
        assert request.get_header("host") == "h"


class TestSigningScope:
    """Tests for SigningScope."""

    def test_str(self) -> None:
        """Scope renders as date/region/service/aws4_request."""
        scope = SigningScope(date="20260101", region="eu-west-1", service="s")
        assert str(scope) == "20260101/eu-west-1/s/aws4_request"
