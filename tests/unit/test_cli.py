"""Unit tests for the ramen-harness command line."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from ramen_harness.command import CommandResult
from ramen_harness.main import cli


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.mark.harness_unit
class TestQuantityCommand:
    """Tests for ramen-harness quantity."""

    def test_shows_range(self, runner):
        """Test the category and range are printed."""
        result = runner.invoke(cli, ["quantity", "a few errors"])

        assert result.exit_code == 0
        assert "few" in result.output
        assert "between 1 and 10" in result.output

    def test_json_output(self, runner):
        """Test JSON rendering."""
        result = runner.invoke(cli, ["--json", "quantity", "3 items"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "description": "3 items",
            "category": "exact",
            "min": 3,
            "max": 3,
        }

    def test_unknown_phrase(self, runner):
        """Test unknown phrases exit with status 2."""
        result = runner.invoke(cli, ["quantity", "plenty"])

        assert result.exit_code == 2
        assert "plenty" in result.output


@pytest.mark.harness_unit
class TestCheckCommand:
    """Tests for ramen-harness check."""

    def test_in_range(self, runner):
        """Test a count within the range passes."""
        result = runner.invoke(cli, ["check", "some", "1000"])

        assert result.exit_code == 0
        assert "OK" in result.output

    def test_out_of_range(self, runner):
        """Test a count outside the range fails."""
        result = runner.invoke(cli, ["check", "no warnings", "1"])

        assert result.exit_code == 1
        assert "Mismatch" in result.output

    def test_unknown_phrase(self, runner):
        """Test unknown phrases exit with status 2."""
        result = runner.invoke(cli, ["check", "plenty", "1"])

        assert result.exit_code == 2


@pytest.mark.harness_unit
class TestExecCommand:
    """Tests for ramen-harness exec."""

    def test_prints_output_and_mirrors_status(self, runner, harness_env):
        """Test stdout is echoed and the exit code passed through."""
        with patch("ramen_harness.main.CommandRunner.run") as mock_run:
            mock_run.return_value = CommandResult(stdout="ok\n", stderr="", exit_code=3)
            result = runner.invoke(cli, ["exec", "ramen", "ps", "--short"])

        mock_run.assert_called_once_with("ramen", "ps --short")
        assert result.exit_code == 3
        assert "ok" in result.output

    def test_json_output(self, runner, harness_env):
        """Test the result triple as JSON."""
        with patch("ramen_harness.main.CommandRunner.run") as mock_run:
            mock_run.return_value = CommandResult(stdout="out", stderr="err", exit_code=0)
            result = runner.invoke(cli, ["--json", "exec", "ramen", "gc"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"stdout": "out", "stderr": "err", "status": 0}

    def test_applies_deterministic_environment(self, runner, harness_env):
        """Test variants and fault injection are pinned for the child."""
        harness_env.setenv("OCAMLRUNPARAM", "b")

        result = runner.invoke(
            cli, ["exec", "sh", "-c", "echo $RAMEN_VARIANTS:$RAMEN_FAULT_INJECTION_RATE:$OCAMLRUNPARAM"]
        )

        assert result.exit_code == 0
        assert result.output.strip() == "TheBigOne=on:0:"

    def test_exit_code_of_quoted_script(self, runner, harness_env):
        """Test an argument with spaces stays one argument for the child."""
        result = runner.invoke(cli, ["exec", "sh", "-c", "exit 3"])

        assert result.exit_code == 3

    def test_arguments_keep_their_boundaries(self, runner, harness_env):
        """Test shell metacharacters in arguments are passed literally."""
        result = runner.invoke(cli, ["exec", "printf", "%s|", "two words", "a;b"])

        assert result.exit_code == 0
        assert result.output == "two words|a;b|"


@pytest.mark.harness_unit
class TestConfigShow:
    """Tests for ramen-harness config show."""

    def test_shows_values_and_sources(self, runner, harness_env, tmp_path):
        """Test each key is listed with its source."""
        config_file = tmp_path / "ramen-harness.yaml"
        config_file.write_text("variants: TheBigOne=off\n")

        result = runner.invoke(cli, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert "Ramen Harness Configuration" in result.output
        assert "variants: TheBigOne=off  (config file)" in result.output
        assert "stop_timeout: None  (default)" in result.output

    def test_json_output(self, runner, harness_env, tmp_path):
        """Test JSON output with values and sources."""
        harness_env.setenv("RAMEN_HARNESS_STOP_TIMEOUT", "10")

        result = runner.invoke(
            cli, ["--json", "-c", str(tmp_path / "missing.yaml"), "config", "show"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["values"]["stop_timeout"] == 10.0
        assert data["sources"]["stop_timeout"] == "environment"
