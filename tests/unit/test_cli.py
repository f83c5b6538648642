"""Unit tests for the command line interface."""

from click.testing import CliRunner

from quotaledger.cli import app


class TestCli:
    """Tests for the click command group."""

    def test_lists_commands(self):
        result = CliRunner().invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("init-db", "serve", "show-sale", "config"):
            assert command in result.output

    def test_config(self):
        result = CliRunner().invoke(app, ["config"])

        assert result.exit_code == 0
        assert "Default coin" in result.output

    def test_init_db_rejects_bad_company(self):
        result = CliRunner().invoke(app, ["init-db", "--company", "Not Valid"])

        assert result.exit_code != 0
