# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the edge-signer command-line tool."""

import io
import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from edge_signer.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_OK,
    EXIT_SIGNING_ERROR,
    main,
)
from tests.vectors import (
    ACCESS_KEY_ID,
    POST_AUTHORIZATION,
    SECRET_ACCESS_KEY,
    post_cloudfront_request,
)


POST_TIMESTAMP = "20260315T101500Z"


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """main() reconfigures the root logger; restore it afterwards."""
    yield
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Config file with literal credentials, in an isolated cwd."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "signer.yaml"
    path.write_text(
        "credentials:\n"
        f"  access_key_id: {ACCESS_KEY_ID}\n"
        f"  secret_access_key: {SECRET_ACCESS_KEY}\n"
    )
    return path


@pytest.fixture
def event_file(tmp_path: Path) -> Path:
    """Lambda@Edge event wrapping the POST vector request."""
    path = tmp_path / "event.json"
    event = {"Records": [{"cf": {"request": post_cloudfront_request()}}]}
    path.write_text(json.dumps(event))
    return path


class TestSign:
    """Tests for the sign command."""

    def test_prints_signed_request(
        self,
        config_file: Path,
        event_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """The signed request is printed as JSON."""
        code = main(
            [
                "--config",
                str(config_file),
                "sign",
                str(event_file),
                "--timestamp",
                POST_TIMESTAMP,
            ]
        )
        assert code == EXIT_OK
        signed = json.loads(capsys.readouterr().out)
        assert signed["headers"]["authorization"][0]["value"] == (
            POST_AUTHORIZATION
        )

    def test_bare_request_from_stdin(
        self,
        config_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A bare CloudFront request is accepted on stdin."""
        monkeypatch.setattr(
            "sys.stdin", io.StringIO(json.dumps(post_cloudfront_request()))
        )
        code = main(
            [
                "--config",
                str(config_file),
                "sign",
                "-",
                "--timestamp",
                POST_TIMESTAMP,
            ]
        )
        assert code == EXIT_OK
        assert POST_AUTHORIZATION in capsys.readouterr().out

    def test_uses_current_time_by_default(
        self,
        config_file: Path,
        event_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Without --timestamp the request is signed now."""
        code = main(["--config", str(config_file), "sign", str(event_file)])
        assert code == EXIT_OK
        signed = json.loads(capsys.readouterr().out)
        assert "x-amz-date" in signed["headers"]


class TestCanonical:
    """Tests for the canonical command."""

    def test_prints_canonical_request(
        self,
        config_file: Path,
        event_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Canonical request, string to sign and header are printed."""
        code = main(
            [
                "--config",
                str(config_file),
                "canonical",
                str(event_file),
                "--timestamp",
                POST_TIMESTAMP,
            ]
        )
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith(
            "Canonical request:\nPOST\n/api/items\na=0&a=1&b=2&empty=\n"
        )
        assert "x-custom:a b,c\n" in out
        assert "String to sign:\nAWS4-HMAC-SHA256\n" in out
        assert out.rstrip().endswith(POST_AUTHORIZATION)


class TestExitCodes:
    """Tests for error exit codes."""

    def test_missing_config(self, tmp_path: Path) -> None:
        """A missing config file exits with the config error code."""
        code = main(
            ["--config", str(tmp_path / "missing.yaml"), "sign", "x.json"]
        )
        assert code == EXIT_CONFIG_ERROR

    def test_missing_event(self, config_file: Path, tmp_path: Path) -> None:
        """An unreadable event file is an input error."""
        code = main(
            ["--config", str(config_file), "sign", str(tmp_path / "no.json")]
        )
        assert code == EXIT_INPUT_ERROR

    def test_invalid_json(self, config_file: Path, tmp_path: Path) -> None:
        """Malformed JSON is an input error."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        code = main(["--config", str(config_file), "sign", str(path)])
        assert code == EXIT_INPUT_ERROR

    def test_unsignable_request(
        self, config_file: Path, tmp_path: Path
    ) -> None:
        """A request that cannot be canonicalized is an input error."""
        cf_request = post_cloudfront_request()
        del cf_request["headers"]["host"]
        path = tmp_path / "nohost.json"
        path.write_text(json.dumps(cf_request))
        code = main(["--config", str(config_file), "sign", str(path)])
        assert code == EXIT_INPUT_ERROR

    def test_invalid_timestamp(
        self, config_file: Path, event_file: Path
    ) -> None:
        """A malformed --timestamp is a signing error."""
        code = main(
            [
                "--config",
                str(config_file),
                "sign",
                str(event_file),
                "--timestamp",
                "yesterday",
            ]
        )
        assert code == EXIT_SIGNING_ERROR

    def test_command_required(self) -> None:
        """Running without a command is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
