"""Tests for the email-rules command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from email_rules.cli import EXAMPLE_RULES, app

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point settings at a temporary config and log directory."""
    path = tmp_path / "config"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EMAIL_RULES_CONFIG_DIR", str(path))
    monkeypatch.setenv("EMAIL_RULES_LOG_DIR", str(tmp_path / "cli-logs"))
    return path


@pytest.fixture
def rules_file(config_dir: Path) -> Path:
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / "rules.yaml"
    path.write_text(EXAMPLE_RULES)
    return path


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "email-rules v" in result.output


def test_init_creates_example(config_dir: Path) -> None:
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert (config_dir / "rules.yaml").read_text() == EXAMPLE_RULES

    result = runner.invoke(app, ["init"])
    assert "Exists" in result.output


def test_rules_list(rules_file: Path) -> None:
    result = runner.invoke(app, ["rules", "list"])

    assert result.exit_code == 0
    assert "VIP" in result.output
    assert "Personal Gmail" in result.output


def test_rules_list_empty(config_dir: Path) -> None:
    result = runner.invoke(app, ["rules", "list"])
    assert result.exit_code == 0
    assert "No rules configured" in result.output


def test_rules_list_invalid(tmp_path: Path, config_dir: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("rules:\n  - name: no id\n")

    result = runner.invoke(app, ["rules", "list", "--rules", str(bad)])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_match_group_rule(rules_file: Path) -> None:
    result = runner.invoke(
        app, ["match", "--from", "boss@example.com", "--provider", "none"]
    )

    assert result.exit_code == 0
    assert "Matched:" in result.output
    assert "VIP" in result.output
    assert "boss@example.com" in result.output


def test_match_category_rule(rules_file: Path) -> None:
    result = runner.invoke(
        app, ["match", "--from", "news@example.com", "--provider", "none"]
    )

    assert result.exit_code == 0
    assert "Newsletters" in result.output
    assert 'Matched category: "Newsletter"' in result.output


def test_match_nothing(rules_file: Path) -> None:
    result = runner.invoke(
        app,
        ["match", "--from", "friend@gmail.com", "--subject", "hi", "--provider", "none"],
    )

    assert result.exit_code == 0
    assert "No rule matched" in result.output


def test_match_thread_skips_rules(rules_file: Path) -> None:
    result = runner.invoke(
        app,
        ["match", "--from", "boss@example.com", "--thread", "--provider", "none"],
    )

    assert result.exit_code == 0
    assert "No rule matched" in result.output


def test_match_unknown_provider(rules_file: Path) -> None:
    result = runner.invoke(
        app, ["match", "--from", "boss@example.com", "--provider", "gemini"]
    )
    assert result.exit_code == 1


def test_db_import_then_match(rules_file: Path, config_dir: Path) -> None:
    result = runner.invoke(app, ["db", "import"])

    assert result.exit_code == 0
    assert "Imported" in result.output
    assert (config_dir / "rules.db").exists()

    result = runner.invoke(
        app, ["match", "--from", "boss@example.com", "--db", "--provider", "none"]
    )
    assert result.exit_code == 0
    assert "VIP" in result.output
