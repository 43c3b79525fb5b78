"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
import requests
from click.testing import CliRunner

from msufinder.cli import cli
from msufinder.config import ENV_API_KEY, ENV_SEARCH_ENGINE_ID
from msufinder.errors import NetworkFatal
from msufinder.models import BulletinId, DownloadLink, RunReport, SearchEngine

X86 = "http://download.microsoft.com/download/1/Windows6.1-KB3087985-x86.msu"
X64 = "http://download.microsoft.com/download/1/Windows6.1-KB3087985-x64.msu"


@pytest.fixture(autouse=True)
def no_env_credentials(monkeypatch):
    monkeypatch.delenv(ENV_API_KEY, raising=False)
    monkeypatch.delenv(ENV_SEARCH_ENGINE_ID, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


def _report(links=(), bulletins=("ms15-100",)):
    return RunReport(
        keyword="ms15-100",
        bulletins=[BulletinId.parse(b) for b in bulletins],
        links=[DownloadLink.parse(link) for link in links],
    )


@patch("msufinder.cli.run")
class TestOptions:
    """Tests for option parsing and validation."""

    def test_query_is_required(self, mock_run, runner):
        """-q is required."""
        result = runner.invoke(cli, [])

        assert result.exit_code == 2
        assert "--query" in result.output
        mock_run.assert_not_called()

    def test_empty_query_rejected(self, mock_run, runner):
        """A blank keyword is a usage error."""
        result = runner.invoke(cli, ["-q", "  "])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_websearch_requires_apikey(self, mock_run, runner):
        """Websearch without an API key is a usage error."""
        result = runner.invoke(cli, ["-q", "Office", "-s", "websearch", "--cx", "id"])

        assert result.exit_code == 2
        assert "no API key" in result.output
        mock_run.assert_not_called()

    def test_websearch_requires_cx(self, mock_run, runner):
        """Websearch without a search engine id is a usage error."""
        result = runner.invoke(cli, ["-q", "Office", "-s", "websearch", "--apikey", "k"])

        assert result.exit_code == 2
        assert "no search engine ID" in result.output
        mock_run.assert_not_called()

    def test_credentials_from_environment(self, mock_run, runner, monkeypatch):
        """Credentials can come from the environment."""
        monkeypatch.setenv(ENV_API_KEY, "env-key")
        monkeypatch.setenv(ENV_SEARCH_ENGINE_ID, "env-cx")
        mock_run.return_value = _report()

        result = runner.invoke(cli, ["-q", "Office", "-s", "websearch"])

        assert result.exit_code == 0
        options = mock_run.call_args.args[0]
        assert options.api_key == "env-key"
        assert options.search_engine_id == "env-cx"

    def test_invalid_search_engine(self, mock_run, runner):
        """An unknown search engine is rejected."""
        result = runner.invoke(cli, ["-q", "Office", "-s", "bing"])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_legacy_engine_names(self, mock_run, runner):
        """The older engine names still work, in any case."""
        mock_run.return_value = _report()

        result = runner.invoke(
            cli, ["-q", "Office", "-s", "Google", "--apikey", "k", "--cx", "c"]
        )

        assert result.exit_code == 0
        assert mock_run.call_args.args[0].search_engine is SearchEngine.WEBSEARCH

    def test_invalid_regex(self, mock_run, runner):
        """An invalid -r pattern is a usage error."""
        result = runner.invoke(cli, ["-q", "ms15-100", "-r", "x86("])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_defaults(self, mock_run, runner):
        """Defaults are catalog, no filter and no dry run."""
        mock_run.return_value = _report()

        runner.invoke(cli, ["-q", "ms15-100"])

        options = mock_run.call_args.args[0]
        assert options.keyword == "ms15-100"
        assert options.search_engine is SearchEngine.CATALOG
        assert options.link_filter is None
        assert options.dry_run is False

    def test_help(self, mock_run, runner):
        """-h prints the help text."""
        result = runner.invoke(cli, ["-h"])

        assert result.exit_code == 0
        assert "--dryrun" in result.output
        mock_run.assert_not_called()


@patch("msufinder.cli.run")
class TestOutput:
    """Tests for what the command prints."""

    def test_prints_links(self, mock_run, runner):
        """Each link is printed on stdout."""
        mock_run.return_value = _report(links=[X86, X64])

        result = runner.invoke(cli, ["-q", "ms15-100"])

        assert result.exit_code == 0
        assert X86 in result.output
        assert X64 in result.output

    def test_filter_is_compiled(self, mock_run, runner):
        """-r is passed on as a compiled pattern."""
        mock_run.return_value = _report(links=[X86])

        runner.invoke(cli, ["-q", "ms15-100", "-r", "x86"])

        assert mock_run.call_args.args[0].link_filter.pattern == "x86"

    def test_json_output(self, mock_run, runner):
        """--json prints the report as JSON."""
        mock_run.return_value = _report(links=[X86])

        result = runner.invoke(cli, ["-q", "ms15-100", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["bulletins"] == ["ms15-100"]
        assert data["links"] == [X86]
        assert data["failed"] == []

    def test_dry_run_lists_bulletins(self, mock_run, runner):
        """A dry run lists the bulletins found."""
        mock_run.return_value = _report(bulletins=("ms15-100", "ms15-094"))

        result = runner.invoke(cli, ["-q", "Windows", "-d"])

        assert result.exit_code == 0
        assert mock_run.call_args.args[0].dry_run is True
        assert "ms15-100" in result.output
        assert "ms15-094" in result.output

    def test_search_network_failure_exits_1(self, mock_run, runner):
        """A network failure during search exits with status 1."""
        mock_run.side_effect = NetworkFatal(requests.Timeout("timed out"), attempts=3)

        result = runner.invoke(cli, ["-q", "ms15-100"])

        assert result.exit_code == 1

    def test_interrupt_says_good_bye(self, mock_run, runner):
        """Ctrl-C during the run prints Good bye."""
        mock_run.side_effect = KeyboardInterrupt

        result = runner.invoke(cli, ["-q", "ms15-100"])

        assert result.exit_code == 0
        assert "Good bye" in result.output

    def test_interrupt_while_printing_says_good_bye(self, mock_run, runner):
        """Ctrl-C while links are being written still exits cleanly."""
        mock_run.return_value = _report(links=[X86, X64])

        with patch("msufinder.cli._print_links", side_effect=KeyboardInterrupt):
            result = runner.invoke(cli, ["-q", "ms15-100"])

        assert result.exit_code == 0
        assert "Good bye" in result.output
        assert "Traceback" not in result.output
