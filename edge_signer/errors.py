# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exceptions raised by the signing engine.

Every failure is fatal for the request being signed.  Callers must not
forward the request when one of these is raised.
"""


class SigningError(Exception):
    """Base exception for request signing failures."""


class ConfigurationError(SigningError):
    """Credentials or settings are missing, empty or invalid."""


class CanonicalizationError(SigningError):
    """The request cannot be reduced to a canonical form.

    Raised for undecodable query strings or bodies, and for requests
    without a signable Host header.
    """


class ClockError(SigningError):
    """No usable signing timestamp could be obtained."""
