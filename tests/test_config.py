"""config モジュールのテスト。"""

from pathlib import Path

import pytest

from claude_template.config import BUNDLED_TEMPLATE, TemplateConfig


def test_default_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    cfg = TemplateConfig()
    assert cfg.source == BUNDLED_TEMPLATE
    assert cfg.target == tmp_path / ".claude"
    assert cfg.mcp_config == tmp_path / ".claude.json"
    assert cfg.on_conflict == "ask"
    assert cfg.profile_path == tmp_path / ".claude" / ".template" / "profile.yml"


def test_load_from_file(tmp_path: Path) -> None:
    toml = tmp_path / "claude-template.toml"
    toml.write_text(
        """
source = "tpl"
target = "/opt/claude"
on_conflict = "backup"
log_level = "DEBUG"
extra_substitute_globs = ["agents/*.md"]
""",
        encoding="utf-8",
    )
    cfg = TemplateConfig.load(toml)
    assert cfg.source == tmp_path / "tpl"
    assert cfg.target == Path("/opt/claude")
    assert cfg.on_conflict == "backup"
    assert cfg.log_level == "DEBUG"
    assert cfg.extra_substitute_globs == ["agents/*.md"]


def test_load_missing_file(tmp_path: Path) -> None:
    cfg = TemplateConfig.load(tmp_path / "nonexistent.toml")
    assert cfg.on_conflict == "ask"


def test_invalid_on_conflict(tmp_path: Path) -> None:
    toml = tmp_path / "claude-template.toml"
    toml.write_text('on_conflict = "delete"\n', encoding="utf-8")
    with pytest.raises(ValueError):
        TemplateConfig.load(toml)


def test_extra_substitute_globs_must_be_list(tmp_path: Path) -> None:
    toml = tmp_path / "claude-template.toml"
    toml.write_text('extra_substitute_globs = "agents/*.md"\n', encoding="utf-8")
    with pytest.raises(ValueError, match="extra_substitute_globs"):
        TemplateConfig.load(toml)


def test_override_target_keeps_profile(tmp_path: Path) -> None:
    cfg = TemplateConfig(target=tmp_path / "home" / ".claude")
    before = cfg.profile_path
    cfg.override_target(tmp_path / "other")
    assert cfg.target == tmp_path / "other"
    assert cfg.profile_path == before


def test_profile_path_from_file(tmp_path: Path) -> None:
    toml = tmp_path / "claude-template.toml"
    toml.write_text('target = "out"\nprofile = "me.yml"\n', encoding="utf-8")
    cfg = TemplateConfig.load(toml)
    assert cfg.profile_path == tmp_path.resolve() / "me.yml"
