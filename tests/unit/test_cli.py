"""Tests for the webreach command line."""
import json

from typer.testing import CliRunner

from webreach.cli import app

runner = CliRunner()


class TestCli:
    """Tests for the tools and run commands."""

    def test_tools_json(self):
        result = runner.invoke(app, ["tools", "--json"])

        assert result.exit_code == 0
        names = [t["function"]["name"] for t in json.loads(result.output)]
        assert "social_timeline" in names

    def test_tools_table(self):
        result = runner.invoke(app, ["tools"])

        assert result.exit_code == 0
        assert "web_scrape" in result.output

    def test_run_unknown_tool_exits_nonzero(self):
        result = runner.invoke(app, ["run", "nope"])

        assert result.exit_code == 1
        assert '"error_code": "UNKNOWN_TOOL"' in result.output

    def test_run_invalid_args_json(self):
        result = runner.invoke(app, ["run", "web_scrape", "--args", "{bad"])

        assert result.exit_code == 2

    def test_run_invalid_url_is_an_error(self):
        result = runner.invoke(app, ["run", "web_scrape", "--args", '{"url": "not-a-url"}'])

        assert result.exit_code == 1
        assert '"error_code": "INVALID_INPUT"' in result.output
        assert '"reason": "invalid_url"' in result.output
