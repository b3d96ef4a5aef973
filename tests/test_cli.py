"""CLI のテスト（typer CliRunner）。"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from claude_template.cli import app

runner = CliRunner()


@pytest.fixture()
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    # カレントの claude-template.toml を拾わないようにする
    monkeypatch.chdir(tmp_path)
    return h


def _init(args: list[str] | None = None):
    return runner.invoke(
        app,
        ["init", "--name", "Alex", "--role", "SRE", "--timezone", "UK", *(args or [])],
    )


def test_init_non_interactive(home: Path) -> None:
    result = _init(["--location", "Leeds"])
    assert result.exit_code == 0, result.output
    text = (home / ".claude" / ".template" / "profile.yml").read_text(encoding="utf-8")
    assert "Europe/London" in text
    assert "Leeds" in text


def test_init_rejects_bad_timezone(home: Path) -> None:
    result = runner.invoke(app, ["init", "--name", "A", "--role", "B", "--timezone", "Nowhere/Land"])
    assert result.exit_code == 1


def test_install_after_init(home: Path) -> None:
    assert _init().exit_code == 0
    result = runner.invoke(app, ["install", "--on-conflict", "backup"])
    assert result.exit_code == 0, result.output
    claude_md = (home / ".claude" / "CLAUDE.md").read_text(encoding="utf-8")
    assert "Alex" in claude_md
    assert "{{" not in claude_md


def test_install_asks_profile_when_missing(home: Path) -> None:
    result = runner.invoke(app, ["install"], input="Alex\nSRE\nUTC\n\n")
    assert result.exit_code == 0, result.output
    assert (home / ".claude" / ".template" / "profile.yml").exists()
    assert "Not specified" in (home / ".claude" / "CLAUDE.md").read_text(encoding="utf-8")


def test_install_conflict_prompt(home: Path) -> None:
    assert _init().exit_code == 0
    (home / ".claude").mkdir(exist_ok=True)
    (home / ".claude" / "CLAUDE.md").write_text("mine\n", encoding="utf-8")

    result = runner.invoke(app, ["install"], input="s\n")
    assert result.exit_code == 0, result.output
    assert "skipped" in result.output
    assert (home / ".claude" / "CLAUDE.md").read_text(encoding="utf-8") == "mine\n"


def test_install_dry_run(home: Path) -> None:
    assert _init().exit_code == 0
    result = runner.invoke(app, ["install", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "dry-run" in result.output
    assert not (home / ".claude" / "CLAUDE.md").exists()


def test_install_bad_policy(home: Path) -> None:
    result = runner.invoke(app, ["install", "--on-conflict", "merge"])
    assert result.exit_code == 1


def test_install_missing_source(home: Path, tmp_path: Path) -> None:
    assert _init().exit_code == 0
    result = runner.invoke(app, ["install", "--source", str(tmp_path / "nope")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_validate_bundled(home: Path) -> None:
    result = runner.invoke(app, ["validate", "--strict"])
    assert result.exit_code == 0, result.output


def test_validate_broken(home: Path, template_root: Path) -> None:
    (template_root / "commands" / "start.md").write_text("---\nargument-hint: x\n---\nbody\n", encoding="utf-8")
    result = runner.invoke(app, ["validate", str(template_root)])
    assert result.exit_code == 1
    assert "description" in result.output


def test_placeholders(home: Path, template_root: Path) -> None:
    result = runner.invoke(app, ["placeholders", str(template_root)])
    assert result.exit_code == 1
    assert "USER_NAME" in result.output

    clean = template_root / "context" / "current-session.md"
    result = runner.invoke(app, ["placeholders", str(clean)])
    assert result.exit_code == 0


def test_status(home: Path) -> None:
    result = runner.invoke(app, ["status"])
    assert "not installed" in result.output

    assert _init().exit_code == 0
    assert runner.invoke(app, ["install", "--on-conflict", "overwrite"]).exit_code == 0
    (home / ".claude" / "CLAUDE.md").write_text("edited\n", encoding="utf-8")
    result = runner.invoke(app, ["status"])
    assert "CLAUDE.md (modified)" in result.output


def test_mcp_commands(home: Path) -> None:
    result = runner.invoke(app, ["mcp", "add-preset", "memory-keeper"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        app, ["mcp", "add", "calendar", "--command", "cal-mcp", "--arg", "serve", "--env", "TZ=UTC"]
    )
    assert result.exit_code == 0, result.output

    raw = json.loads((home / ".claude.json").read_text(encoding="utf-8"))
    assert set(raw["mcpServers"]) == {"memory-keeper", "calendar"}
    assert raw["mcpServers"]["calendar"]["env"] == {"TZ": "UTC"}

    result = runner.invoke(app, ["mcp", "list"])
    assert "memory-keeper" in result.output
    assert "calendar" in result.output

    assert runner.invoke(app, ["mcp", "remove", "calendar"]).exit_code == 0
    assert runner.invoke(app, ["mcp", "remove", "calendar"]).exit_code == 1
    assert runner.invoke(app, ["mcp", "add-preset", "nope"]).exit_code == 1


def test_mcp_bad_env(home: Path) -> None:
    result = runner.invoke(app, ["mcp", "add", "x", "--command", "x", "--env", "BROKEN"])
    assert result.exit_code == 1


def test_doctor_runs(home: Path) -> None:
    result = runner.invoke(app, ["doctor"])
    assert "mcp config" in result.output
    assert result.exit_code in (0, 1)


def test_install_to_other_target_uses_saved_profile(home: Path, tmp_path: Path) -> None:
    assert _init().exit_code == 0
    other = tmp_path / "other"
    result = runner.invoke(app, ["install", "--target", str(other), "--on-conflict", "overwrite"])
    assert result.exit_code == 0, result.output
    assert "Alex" in (other / "CLAUDE.md").read_text(encoding="utf-8")
    assert not (other / ".template" / "profile.yml").exists()


def test_mcp_save_permission_error(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def denied(path, config):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("claude_template.cli.save_mcp_config", denied)
    result = runner.invoke(app, ["mcp", "add-preset", "memory-keeper"])
    assert result.exit_code == 1
    assert "chmod" in result.output


def test_mcp_remove_os_error(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert runner.invoke(app, ["mcp", "add-preset", "memory-keeper"]).exit_code == 0

    def broken(path, config):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("claude_template.cli.save_mcp_config", broken)
    result = runner.invoke(app, ["mcp", "remove", "memory-keeper"])
    assert result.exit_code == 1
    assert "No space left" in result.output
