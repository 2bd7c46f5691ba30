"""Tests for the command line entry point."""

import json

import pytest
from click.testing import CliRunner

from domscan import cli
from domscan.exceptions import PayloadCorpusError
from domscan.models import FindingType, Severity


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def captured(monkeypatch):
    """Replace run_scan; ``captured.findings`` are recorded into the store."""
    state = {"config": None, "findings": [], "error": None}

    async def fake_run_scan(url, config, store=None, wait_for_continue=None):
        state["config"] = config
        for finding in state["findings"]:
            store.record(*finding)
        if state["error"]:
            raise state["error"]
        return store

    monkeypatch.setattr(cli, "run_scan", fake_run_scan)
    return state


class TestExitCodes:

    def test_clean_run(self, runner, captured):
        result = runner.invoke(cli.main, ["https://site.test/?q=1"])

        assert result.exit_code == cli.EXIT_CLEAN
        assert "No findings" in result.output

    def test_findings(self, runner, captured):
        captured["findings"] = [("q", "<b>", FindingType.XSS, Severity.HIGH, "xyz() triggered")]

        result = runner.invoke(cli.main, ["https://site.test/?q=1"])

        assert result.exit_code == cli.EXIT_FINDINGS
        assert "1 parameter(s)" in result.output

    def test_manual_login_with_headless_is_a_config_error(self, runner, captured):
        result = runner.invoke(cli.main, ["https://site.test/?q=1", "-m"])

        assert result.exit_code == cli.EXIT_CONFIG_ERROR
        assert captured["config"] is None
        assert "Summary" not in result.output

    def test_bad_cookie_is_a_config_error(self, runner, captured):
        result = runner.invoke(cli.main, ["https://site.test/?q=1", "-c", "nonsense"])

        assert result.exit_code == cli.EXIT_CONFIG_ERROR

    def test_payload_corpus_error(self, runner, captured):
        captured["error"] = PayloadCorpusError("Payload file not found: x.json")

        result = runner.invoke(cli.main, ["https://site.test/?q=1"])

        assert result.exit_code == cli.EXIT_CONFIG_ERROR

    def test_interrupted_scan_still_reports(self, runner, captured):
        captured["findings"] = [("redirect", "//evil", FindingType.OPEN_REDIRECT, Severity.MEDIUM, "302")]
        captured["error"] = KeyboardInterrupt()

        result = runner.invoke(cli.main, ["https://site.test/?redirect=home"])

        assert result.exit_code == cli.EXIT_FINDINGS
        assert "open-redirect" in result.output


class TestOptions:

    def test_options_reach_config(self, runner, captured):
        result = runner.invoke(cli.main, [
            "https://site.test/?q=1",
            "--no-headless", "-g", "-G", "-i",
            "-c", "session=abc", "-l", "token=t",
            "--excluded-parameter", "utm_source",
            "--exclude-from-console", "[HMR]",
            "-u", "domscan-test",
        ])

        assert result.exit_code == cli.EXIT_CLEAN
        config = captured["config"]
        assert not config.browser.headless
        assert config.scan.guess_parameters and config.scan.guess_parameters_extended
        assert config.scan.interactive
        assert config.browser.cookies == {"session": "abc"}
        assert config.browser.local_storage == {"token": "t"}
        assert config.scan.excluded_parameters == {"utm_source"}
        assert config.scan.excluded_console_substrings == {"[HMR]"}
        assert config.browser.user_agent == "domscan-test"

    def test_cli_overrides_config_file(self, runner, captured, tmp_path):
        path = tmp_path / "domscan.json"
        path.write_text(json.dumps({"browser": {"headless": False, "proxy": "http://a:1"}}))

        runner.invoke(cli.main, ["https://site.test/", "--config", str(path), "--headless", "-p", "http://b:2"])

        assert captured["config"].browser.headless
        assert captured["config"].browser.proxy == "http://b:2"

    def test_json_report(self, runner, captured, tmp_path):
        captured["findings"] = [("q", "<b>", FindingType.XSS, Severity.HIGH, "alert() triggered")]
        output = tmp_path / "report.json"

        runner.invoke(cli.main, ["https://site.test/?q=1", "-o", str(output)])

        report = json.loads(output.read_text())
        assert report["metadata"]["target"] == "https://site.test/?q=1"
        assert report["findings"][0]["type"] == "xss"
