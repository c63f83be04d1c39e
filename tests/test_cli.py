"""Tests for CLI interface"""

from __future__ import annotations

import logging

import click
import pytest
import requests
from click.testing import CliRunner

from conftest import FakeSession, make_response
from retryable.cli import _die, cli, parse_form_fields, setup_logging
from retryable.domain.config import ClientPolicy
from retryable.infrastructure.http_client import RetryableClient


class _Sessions(list):
    """Sessions created by the CLI, plus the outcomes they will replay"""

    outcomes: dict


@pytest.fixture
def sessions(monkeypatch, tmp_path):
    """Route CLI clients to a fake session; returns the list of created sessions"""
    monkeypatch.chdir(tmp_path)
    created = _Sessions()
    outcomes = {"value": [make_response(200, b"ok")]}

    def fake_new_client(policy: ClientPolicy = None):
        fast = policy.model_copy(
            update={"request_delay": 0, "retry_delay": 0, "request_jitter": 0, "retry_jitter": 0}
        )
        session = FakeSession(outcomes["value"])
        session.policy = fast
        created.append(session)
        return RetryableClient(policy=fast, session=session)

    monkeypatch.setattr("retryable.cli.new_client", fake_new_client)
    created.outcomes = outcomes
    return created


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        """Test that logging is set to INFO level by default"""
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test that logging is set to DEBUG level when verbose"""
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        """Test _die without exception"""
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception(self):
        """Test _die with exception"""
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestParseFormFields:
    """Tests for parse_form_fields function"""

    def test_pairs(self):
        assert parse_form_fields(("a=1", "b=2", "a=3")) == {"a": ["1", "3"], "b": ["2"]}

    def test_empty_value(self):
        assert parse_form_fields(("a=",)) == {"a": [""]}

    def test_missing_separator(self):
        with pytest.raises(click.BadParameter):
            parse_form_fields(("novalue",))


class TestCommands:
    """Tests for CLI commands"""

    def test_get(self, sessions):
        """Test GET prints the response body"""
        result = CliRunner().invoke(cli, ["get", "http://example.test"])

        assert result.exit_code == 0, result.output
        assert "ok" in result.output
        assert sessions[0].sent[0].method == "GET"

    def test_get_retry_count_override(self, sessions):
        """Test --retry-count overrides the configured policy"""
        sessions.outcomes["value"] = [make_response(503, b"busy")]

        result = CliRunner().invoke(cli, ["get", "http://example.test", "--retry-count", "2"])

        assert result.exit_code == 1
        assert "retries exhausted" in result.output
        assert len(sessions[0].sent) == 3

    def test_get_fatal_status(self, sessions):
        """Test non-retryable failures exit with an error"""
        sessions.outcomes["value"] = [make_response(404, b"missing")]

        result = CliRunner().invoke(cli, ["get", "http://example.test"])

        assert result.exit_code == 1
        assert "non-retryable error" in result.output
        assert "invalid status code (404)" in result.output
        assert len(sessions[0].sent) == 1

    def test_retry_timeout_override(self, sessions):
        """Test --retry-timeout accepts duration strings"""
        result = CliRunner().invoke(
            cli, ["get", "http://example.test", "--retry-timeout", "90s"]
        )

        assert result.exit_code == 0, result.output
        assert sessions[0].policy.retry_timeout == pytest.approx(90.0)

    def test_invalid_retry_timeout(self, sessions):
        """Test malformed --retry-timeout is reported"""
        result = CliRunner().invoke(
            cli, ["get", "http://example.test", "--retry-timeout", "later"]
        )

        assert result.exit_code == 1
        assert "Invalid option" in result.output

    def test_head(self, sessions):
        """Test HEAD does not print a body"""
        result = CliRunner().invoke(cli, ["head", "http://example.test"])

        assert result.exit_code == 0, result.output
        assert sessions[0].sent[0].method == "HEAD"

    def test_post_data(self, sessions):
        """Test POST sends inline data"""
        result = CliRunner().invoke(
            cli,
            ["post", "http://example.test", "--data", "hello", "--content-type", "text/plain"],
        )

        assert result.exit_code == 0, result.output
        sent = sessions[0].sent[0]
        assert sent.method == "POST"
        assert sent.headers["Content-Type"] == "text/plain"
        assert sessions[0].bodies[0] == "hello"

    def test_post_data_file(self, sessions, tmp_path):
        """Test POST reads the body from a file"""
        body_file = tmp_path / "body.json"
        body_file.write_bytes(b'{"a": 1}')

        result = CliRunner().invoke(
            cli,
            [
                "post",
                "http://example.test",
                "--data-file",
                str(body_file),
                "--content-type",
                "application/json",
            ],
        )

        assert result.exit_code == 0, result.output
        assert sessions[0].bodies[0] == b'{"a": 1}'

    def test_post_data_and_file_are_exclusive(self, sessions, tmp_path):
        """Test --data and --data-file cannot be combined"""
        body_file = tmp_path / "body.txt"
        body_file.write_text("x")

        result = CliRunner().invoke(
            cli,
            ["post", "http://example.test", "--data", "x", "--data-file", str(body_file)],
        )

        assert result.exit_code == 2
        assert sessions == []

    def test_post_form(self, sessions):
        """Test post-form URL-encodes fields"""
        result = CliRunner().invoke(
            cli, ["post-form", "http://example.test", "-f", "a=1", "-f", "b=two words"]
        )

        assert result.exit_code == 0, result.output
        assert sessions[0].bodies[0] == "a=1&b=two+words"

    def test_invalid_config(self, sessions, tmp_path):
        """Test configuration errors are reported"""
        config_file = tmp_path / "bad.yml"
        config_file.write_text("policy:\n  retry_jitter: 9\n")

        result = CliRunner().invoke(cli, ["--config", str(config_file), "get", "http://example.test"])

        assert result.exit_code == 1
        assert "retry_jitter" in result.output

    def test_network_error(self, sessions):
        """Test transport errors are retried then reported"""
        sessions.outcomes["value"] = [requests.ConnectionError("refused")]

        result = CliRunner().invoke(cli, ["get", "http://example.test", "--retry-count", "1"])

        assert result.exit_code == 1
        assert "unable to send request" in result.output
        assert len(sessions[0].sent) == 2
