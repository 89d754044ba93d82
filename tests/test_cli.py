"""Tests for the command line entry point."""

from click.testing import CliRunner

from comrades_discord.cli import main


class TestMain:
    def test_unknown_log_level_is_reported_cleanly(self, tmp_path):
        result = CliRunner().invoke(main, ["--log-level", "loud", "--config", str(tmp_path / "none.properties")])

        assert result.exit_code == 1
        assert "Error: Unknown log level: 'loud'" in result.output
        assert "Traceback" not in result.output
