"""
Tests for the kidsfind command-line interface.
"""

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from kidsfind.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestConfigCommands:
    def test_show_json_section(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            ["config", "show", "--format", "json", "--section", "battery"],
            env={"KF_BATTERY__LOW_THRESHOLD": "35"},
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["low_threshold"] == 35
        assert data["critical_threshold"] == 5

    def test_show_table(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "KidsFind Monitor Configuration" in result.output
        assert "daily_screen_time_limit: 120" in result.output

    def test_show_unknown_section(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config", "show", "--section", "gps"])
        assert result.exit_code == 1

    def test_save_then_load(self, runner: CliRunner, temp_dir: Path) -> None:
        target = temp_dir / "nested" / "kidsfind.yaml"
        result = runner.invoke(cli, ["config", "save", str(target)])
        assert result.exit_code == 0
        assert "✓ Configuration saved to" in result.output

        saved = yaml.safe_load(target.read_text(encoding="utf-8"))
        assert saved["usage"]["bedtime_start"] == "21:00"

        result = runner.invoke(
            cli, ["config", "show", "--format", "yaml", "--config", str(target)]
        )
        assert result.exit_code == 0
        assert "bedtime_start" in result.output

    def test_validate_ok(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config", "validate"])
        assert result.exit_code == 0
        assert "✓ Configuration is valid" in result.output

    def test_validate_errors(self, runner: CliRunner, temp_dir: Path) -> None:
        path = temp_dir / "bad.yaml"
        path.write_text(
            "battery:\n  low_threshold: 10\n  critical_threshold: 30\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["config", "validate", "--config", str(path)])
        assert result.exit_code == 1
        assert "✗ Configuration has errors" in result.output

    def test_unreadable_config(self, runner: CliRunner, temp_dir: Path) -> None:
        path = temp_dir / "broken.yaml"
        path.write_text("battery: [unclosed\n", encoding="utf-8")
        result = runner.invoke(cli, ["config", "show", "--config", str(path)])
        assert result.exit_code == 1


class TestEvaluateCommands:
    def test_battery(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["evaluate", "battery", "--level", "15"])
        assert result.exit_code == 0
        assert "battery 15% (unplugged): low" in result.output

    def test_battery_charging(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["evaluate", "battery", "--level", "3", "--charging"]
        )
        assert "normal" in result.output

    def test_usage(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["evaluate", "usage", "--minutes", "100", "--limit", "120"]
        )
        assert result.exit_code == 0
        assert "usage 100/120 min: warning" in result.output


class TestMaintenanceCommands:
    def test_cleanup_on_empty_data_dir(self, runner: CliRunner, temp_dir: Path) -> None:
        result = runner.invoke(
            cli, ["maintenance", "cleanup", "--data-dir", str(temp_dir)]
        )
        assert result.exit_code == 0, result.output
        assert "✓ Removed 0 expired listening sessions" in result.output
        assert (temp_dir / "environment_listening").is_dir()


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
