# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across the test modules."""

from collections.abc import Iterator

import pytest

from edge_signer import cloudfront
from edge_signer.config import SignerConfig
from edge_signer.dotenv_loader import reset_dotenv_state
from edge_signer.logging import SecretFilter
from edge_signer.types import Credentials, RequestDescriptor
from tests.vectors import (
    ACCESS_KEY_ID,
    GOLDEN_HOST,
    GOLDEN_PATH,
    SECRET_ACCESS_KEY,
    SESSION_TOKEN,
)


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    """Clear process-wide state touched by config loading."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    cloudfront.reset_config()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    cloudfront.reset_config()


@pytest.fixture
def credentials() -> Credentials:
    """Credentials without a session token."""
    return Credentials(
        access_key_id=ACCESS_KEY_ID, secret_access_key=SECRET_ACCESS_KEY
    )


@pytest.fixture
def token_credentials() -> Credentials:
    """Credentials with a session token."""
    return Credentials(
        access_key_id=ACCESS_KEY_ID,
        secret_access_key=SECRET_ACCESS_KEY,
        session_token=SESSION_TOKEN,
    )


@pytest.fixture
def config(credentials: Credentials) -> SignerConfig:
    """Signer config for us-east-1 / lambda."""
    return SignerConfig(
        credentials=credentials, region="us-east-1", service="lambda"
    )


@pytest.fixture
def token_config(token_credentials: Credentials) -> SignerConfig:
    """Signer config whose credentials carry a session token."""
    return SignerConfig(
        credentials=token_credentials, region="us-east-1", service="lambda"
    )


@pytest.fixture
def golden_request() -> RequestDescriptor:
    """GET /prod/items with a forwarding header that must not be signed."""
    return RequestDescriptor.create(
        method="GET",
        host=GOLDEN_HOST,
        path=GOLDEN_PATH,
        headers=[
            ("Host", GOLDEN_HOST),
            ("X-Forwarded-For", "203.0.113.7"),
        ],
    )
