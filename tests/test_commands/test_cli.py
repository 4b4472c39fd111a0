"""
Tests for the command line interface.
"""

from typing import Final, Generator
import io
import json
from pathlib import Path
from unittest.mock import patch
import pytest
import click
from click.testing import CliRunner
from rich.console import Console
from restfile.commands.app import cli
from restfile.commands.resolve import environment_options, variablePairs_parse
from restfile.lib.tokenizer import text_tokenize
from restfile.lib.validator import requestFile_validate
from restfile.restfile import __version__

API_FILE: Final[str] = """@baseUrl = https://api.example.com

# @name login
POST {{baseUrl}}/login
Content-Type: application/json

{"user": "{{user}}"}

# @name ping
GET {{baseUrl}}/ping
"""


@pytest.fixture
def runner() -> CliRunner:
    """Provides a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_user_environments(tmp_path: Path) -> Generator[None, None, None]:
    """Keeps the per-user environments file out of the tests."""
    with patch("restfile.config.settings.ENVIRONMENT_FILE", tmp_path / "absent.json"):
        yield


@pytest.fixture
def captured_output() -> Generator[io.StringIO, None, None]:
    """Captures console output of every command module."""
    output = io.StringIO()
    console = Console(file=output, width=200)
    with (
        patch("restfile.commands.base.console", console),
        patch("restfile.commands.parse.console", console),
        patch("restfile.commands.resolve.console", console),
        patch("restfile.commands.validate.console", console),
    ):
        yield output


def http_file(tmp_path: Path, content: str = API_FILE) -> str:
    path = tmp_path / "api.http"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_cli_group() -> None:
    assert isinstance(cli, click.Group)
    for cmd in ["parse", "tokens", "validate", "resolve"]:
        assert cmd in cli.commands


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "restfile" in result.output
    assert __version__ in result.output


def test_group_help(runner: CliRunner, captured_output: io.StringIO) -> None:
    result = runner.invoke(cli, ["--help"])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "Available Commands" in output
    assert "resolve" in output


def test_command_help(runner: CliRunner, captured_output: io.StringIO) -> None:
    result = runner.invoke(cli, ["resolve", "--help"])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "Resolve variables" in output
    assert "--env-file" in output


def test_parse(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["parse", http_file(tmp_path)])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "login" in output
    assert "ping" in output
    assert "@baseUrl" in output


def test_parse_duplicate_names(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    path = http_file(tmp_path, "# @name a\nGET /a\n\n# @name a\nGET /b\n")

    result = runner.invoke(cli, ["parse", path])
    assert result.exit_code == 2
    assert "Duplicate request name 'a'" in captured_output.getvalue()

    result = runner.invoke(cli, ["parse", path, "--lenient"])
    assert result.exit_code == 0


def test_parse_strict(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    path = http_file(tmp_path, "# @name bad name\nGET /a\n")

    assert runner.invoke(cli, ["parse", path]).exit_code == 0
    result = runner.invoke(cli, ["parse", path, "--strict"])
    assert result.exit_code == 2
    assert "Validation failed" in captured_output.getvalue()


def test_parse_missing_file(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["parse", str(tmp_path / "missing.http")])
    assert result.exit_code == 2


def test_tokens(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["tokens", http_file(tmp_path)])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "FILE_VARIABLE" in output
    assert "METHOD" in output
    assert "END_OF_STREAM" in output


def test_validate_warns_on_unresolved(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    result = runner.invoke(cli, ["validate", http_file(tmp_path)])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "Warnings (1)" in output
    assert "{{user}}" in output
    assert "is valid." in output


def test_validate_with_variable(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    result = runner.invoke(cli, ["validate", http_file(tmp_path), "--var", "user=ada"])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "Warnings" not in output


def test_validate_parses_once(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    with (
        patch("restfile.lib.fileparser.text_tokenize", wraps=text_tokenize) as mock_tokenize,
        patch(
            "restfile.lib.fileparser.requestFile_validate", wraps=requestFile_validate
        ) as mock_validate,
    ):
        result = runner.invoke(cli, ["validate", http_file(tmp_path), "--var", "user=ada"])

    assert result.exit_code == 0
    mock_tokenize.assert_called_once()
    mock_validate.assert_called_once()


def test_validate_reports_parse_failure(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    path = http_file(tmp_path, "# @name a\nGET /a\n\n# @name a\nGET /b\n")

    result = runner.invoke(cli, ["validate", path])
    output = captured_output.getvalue()

    assert result.exit_code == 1
    assert "Errors (1)" in output
    assert "Duplicate request name 'a' found at line 4" in output


def test_validate_errors(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    path = http_file(tmp_path, "# @name a\n# @expect status 999\nGET /a\n")

    result = runner.invoke(cli, ["validate", path])
    assert result.exit_code == 1
    assert "Errors (1)" in captured_output.getvalue()
    assert "Invalid status code expectation" in captured_output.getvalue()


def test_validate_circular(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    path = http_file(tmp_path, "@a = {{b}}\n@b = {{a}}\n\n# @name r\nGET /{{a}}\n")

    result = runner.invoke(cli, ["validate", path])
    assert result.exit_code == 1
    assert "Circular reference detected for variable 'a'" in captured_output.getvalue()


def test_resolve_all(runner: CliRunner, captured_output: io.StringIO, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["resolve", http_file(tmp_path), "--var", "user=ada"])
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "POST https://api.example.com/login" in output
    assert '{"user": "ada"}' in output
    assert "GET https://api.example.com/ping" in output


def test_resolve_with_environment(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    env_file = tmp_path / "environments.json"
    env_file.write_text(
        json.dumps({"local": {"baseUrl": "http://localhost:5000"}}), encoding="utf-8"
    )

    result = runner.invoke(
        cli,
        ["resolve", http_file(tmp_path), "ping", "--env", "local", "--env-file", str(env_file)],
    )
    output = captured_output.getvalue()

    assert result.exit_code == 0
    assert "GET http://localhost:5000/ping" in output
    assert "login" not in output


def test_resolve_unknown_environment(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    result = runner.invoke(cli, ["resolve", http_file(tmp_path), "--env", "staging"])

    assert result.exit_code == 1
    assert "Environment 'staging' not found" in captured_output.getvalue()


def test_resolve_unknown_request(
    runner: CliRunner, captured_output: io.StringIO, tmp_path: Path
) -> None:
    result = runner.invoke(cli, ["resolve", http_file(tmp_path), "nope"])

    assert result.exit_code == 1
    assert "Request 'nope' not found." in captured_output.getvalue()


def test_resolve_bad_variable_pair(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["resolve", http_file(tmp_path), "--var", "novalue"])
    assert result.exit_code == 2


def test_variable_pairs_parse() -> None:
    assert variablePairs_parse(("a=1", " b =x=y", "c=")) == {"a": "1", "b": "x=y", "c": ""}
    with pytest.raises(click.BadParameter):
        variablePairs_parse(("=1",))


def test_environment_options() -> None:
    @click.command()
    @environment_options
    def sample(env_name, env_file, pairs) -> None:
        pass

    names = [param.name for param in sample.params]
    assert names == ["env_name", "env_file", "pairs"]
