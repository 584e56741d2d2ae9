# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signer configuration.

Configuration comes from one of two sources:

- **YAML file** -- ``edge-signer.yaml`` with ``!env`` tags resolved from
  the environment.  Lambda@Edge functions cannot have their own
  environment variables, so non-secret settings ship in a bundled file
  while credentials still come from the runtime environment::

      credentials:
        access_key_id: !env AWS_ACCESS_KEY_ID
        secret_access_key: !env AWS_SECRET_ACCESS_KEY
        session_token: !env AWS_SESSION_TOKEN
      region: us-east-1
      region_from_host: true
      service: lambda
      excluded_headers:
        - via

- **Environment** -- the ``AWS_*`` credential variables plus
  ``AWS_REGION`` and the ``EDGE_SIGNER_*`` settings.

Both sources produce the same immutable SignerConfig, which is created
once per process and passed explicitly into the signing engine.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from edge_signer.dotenv_loader import APP_NAME, load_dotenv_once
from edge_signer.errors import ConfigurationError
from edge_signer.logging import SecretFilter
from edge_signer.types import Credentials


logger = logging.getLogger(__name__)

#: Region used when none is configured and none is found in the host.
DEFAULT_REGION = "us-east-1"

#: Service the signed requests are addressed to.
DEFAULT_SERVICE = "lambda"

#: Forwarding header rewritten by intermediate proxies; never signed.
FORWARDED_FOR_HEADER = "x-forwarded-for"

DEFAULT_EXCLUDED_HEADERS = frozenset({FORWARDED_FOR_HEADER})

#: File name of a config bundled with the deployment package.
CONFIG_FILE_NAME = "edge-signer.yaml"

# Environment variable names
ACCESS_KEY_ID_ENV = "AWS_ACCESS_KEY_ID"
SECRET_ACCESS_KEY_ENV = "AWS_SECRET_ACCESS_KEY"
SESSION_TOKEN_ENV = "AWS_SESSION_TOKEN"
REGION_ENV = "AWS_REGION"
SERVICE_ENV = "EDGE_SIGNER_SERVICE"
EXCLUDED_HEADERS_ENV = "EDGE_SIGNER_EXCLUDED_HEADERS"
REGION_FROM_HOST_ENV = "EDGE_SIGNER_REGION_FROM_HOST"
CONFIG_PATH_ENV = "EDGE_SIGNER_CONFIG"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})


def get_config_path() -> Path:
    """Return the default config file path.

    Uses XDG: ``$XDG_CONFIG_HOME/edge-signer/edge-signer.yaml``.
    """
    return user_config_path(APP_NAME) / CONFIG_FILE_NAME


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigurationError(f"Cannot convert {value!r} to bool")


def _resolve(value: object, environ: Mapping[str, str]) -> str | None:
    """Resolve an ``_EnvVar`` against ``environ``, or stringify literals.

    Unset variables and empty strings both resolve to None.
    """
    if isinstance(value, _EnvVar):
        value = environ.get(value.var_name)
    if value is None:
        return None
    resolved = str(value).strip()
    return resolved or None


def _resolve_bool(
    value: object, environ: Mapping[str, str], *, default: bool
) -> bool:
    if isinstance(value, bool):
        return value
    resolved = _resolve(value, environ)
    if resolved is None:
        return default
    return _coerce_bool(resolved)


def _resolve_header_list(
    value: object, environ: Mapping[str, str]
) -> frozenset[str]:
    """Resolve a header list given as YAML list or comma-separated string.

    Raises:
        ConfigurationError: If the value is neither.
    """
    if isinstance(value, list):
        items = [_resolve(v, environ) or "" for v in value]
    else:
        raw = _resolve(value, environ)
        if raw is None:
            return frozenset()
        if not isinstance(value, (str, _EnvVar)):
            raise ConfigurationError(
                f"excluded_headers must be a list or string, got {value!r}"
            )
        items = raw.split(",")
    return frozenset(item.strip().lower() for item in items if item.strip())


def _resolve_credentials(
    raw: Mapping[str, Any], environ: Mapping[str, str]
) -> Credentials:
    """Build Credentials, registering secrets for log redaction.

    Raises:
        ConfigurationError: If the access key ID or secret is missing.
    """
    access_key_id = _resolve(
        raw.get("access_key_id", _EnvVar(ACCESS_KEY_ID_ENV)), environ
    )
    secret_access_key = _resolve(
        raw.get("secret_access_key", _EnvVar(SECRET_ACCESS_KEY_ENV)), environ
    )
    session_token = _resolve(
        raw.get("session_token", _EnvVar(SESSION_TOKEN_ENV)), environ
    )

    if access_key_id is None:
        raise ConfigurationError("Required config 'access_key_id' is missing")
    if secret_access_key is None:
        raise ConfigurationError(
            "Required config 'secret_access_key' is missing"
        )

    SecretFilter.register_secret(secret_access_key)
    SecretFilter.register_secret(session_token)

    return Credentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
    )


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignerConfig:
    """Immutable, process-wide signer configuration.

    Attributes:
        credentials: Signing credentials.
        region: Signing region (fallback when derived from the host).
        service: Signing service name.
        excluded_headers: Lowercase header names never signed.  Always
            contains the forwarding header.
        region_from_host: Derive the region from a region-shaped label
            of the target host name when one is present.
    """

    credentials: Credentials
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    excluded_headers: frozenset[str] = DEFAULT_EXCLUDED_HEADERS
    region_from_host: bool = True

    def __post_init__(self) -> None:
        """Normalize excluded headers and validate values.

        Raises:
            ConfigurationError: If region or service is empty, or the
                host header is excluded.
        """
        excluded = frozenset(
            h.lower() for h in self.excluded_headers
        ) | DEFAULT_EXCLUDED_HEADERS
        object.__setattr__(self, "excluded_headers", excluded)

        if not self.region:
            raise ConfigurationError("Region must not be empty")
        if not self.service:
            raise ConfigurationError("Service must not be empty")
        if "host" in excluded:
            raise ConfigurationError("The host header cannot be excluded")

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "SignerConfig":
        """Load configuration from environment variables.

        Args:
            environ: Environment mapping.  Defaults to ``os.environ``.

        Returns:
            SignerConfig instance.

        Raises:
            ConfigurationError: If credentials are missing or a value is
                invalid.
        """
        raw = {
            "region": _EnvVar(REGION_ENV),
            "service": _EnvVar(SERVICE_ENV),
            "excluded_headers": _EnvVar(EXCLUDED_HEADERS_ENV),
            "region_from_host": _EnvVar(REGION_FROM_HOST_ENV),
        }
        return cls._from_raw(raw, os.environ if environ is None else environ)

    @classmethod
    def from_yaml(
        cls,
        config_path: Path,
        environ: Mapping[str, str] | None = None,
    ) -> "SignerConfig":
        """Load configuration from a YAML file.

        Values tagged with ``!env VAR_NAME`` are resolved from the
        environment at load time.  Omitted credentials default to the
        standard ``AWS_*`` variables.

        Args:
            config_path: Path to the YAML config file.
            environ: Environment mapping.  Defaults to ``os.environ``.

        Returns:
            SignerConfig instance.

        Raises:
            ConfigurationError: If the file is missing or malformed, or
                required values are absent.
        """
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {config_path}: {e}"
            ) from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        logger.debug("Loaded signer config from %s", config_path)
        return cls._from_raw(raw, os.environ if environ is None else environ)

    @classmethod
    def _from_raw(
        cls, raw: Mapping[str, Any], environ: Mapping[str, str]
    ) -> "SignerConfig":
        """Build config from parsed (but unresolved) values."""
        credentials = raw.get("credentials") or {}
        if not isinstance(credentials, dict):
            raise ConfigurationError("'credentials' must be a mapping")

        return cls(
            credentials=_resolve_credentials(credentials, environ),
            region=_resolve(raw.get("region"), environ) or DEFAULT_REGION,
            service=_resolve(raw.get("service"), environ) or DEFAULT_SERVICE,
            excluded_headers=DEFAULT_EXCLUDED_HEADERS
            | _resolve_header_list(raw.get("excluded_headers"), environ),
            region_from_host=_resolve_bool(
                raw.get("region_from_host"), environ, default=True
            ),
        )


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Locate the YAML config file, if any.

    Search order: explicit path, ``$EDGE_SIGNER_CONFIG``, a bundled
    ``edge-signer.yaml`` in the working directory, then the XDG path.
    An explicit path is returned even when it does not exist so the
    caller reports it as missing.
    """
    if config_path is not None:
        return config_path

    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()

    for candidate in (Path.cwd() / CONFIG_FILE_NAME, get_config_path()):
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path | None = None) -> SignerConfig:
    """Load the signer configuration from YAML or the environment.

    ``.env`` files are loaded first.  When no config file is found the
    environment is used.

    Args:
        config_path: Explicit YAML config path.

    Returns:
        SignerConfig instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    load_dotenv_once()

    path = find_config_file(config_path)
    if path is None:
        logger.debug("No config file found, using environment")
        return SignerConfig.from_env()
    return SignerConfig.from_yaml(path)
