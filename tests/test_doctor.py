"""doctor のテスト。"""

import json
from pathlib import Path

from claude_template.doctor import run_doctor
from claude_template.install import install_template
from claude_template.placeholders import UserProfile


def _by_name(results):
    return {r.name: r for r in results}


def test_doctor_not_installed(tmp_path: Path) -> None:
    results = _by_name(run_doctor(target=tmp_path / ".claude", mcp_config=tmp_path / ".claude.json"))
    assert "claude cli" in results
    assert "npx cli" in results
    assert results["mcp config"].ok is True
    assert results["install"].ok is False


def test_doctor_reports_bad_mcp_json(tmp_path: Path) -> None:
    p = tmp_path / ".claude.json"
    p.write_text("{nope", encoding="utf-8")
    results = _by_name(run_doctor(target=tmp_path / ".claude", mcp_config=p))
    assert results["mcp config"].ok is False
    assert "not valid JSON" in results["mcp config"].detail


def test_doctor_reports_missing_server_command(tmp_path: Path) -> None:
    p = tmp_path / ".claude.json"
    p.write_text(
        json.dumps({"mcpServers": {"ghost": {"type": "stdio", "command": "no-such-cmd-xyz", "args": []}}}),
        encoding="utf-8",
    )
    results = _by_name(run_doctor(target=tmp_path / ".claude", mcp_config=p))
    assert results["mcp:ghost"].ok is False
    assert "check PATH" in results["mcp:ghost"].detail


def test_doctor_lists_local_edits(template_root: Path, target: Path, profile: UserProfile, tmp_path: Path) -> None:
    install_template(template_root, target, profile)
    (target / "CLAUDE.md").write_text("edited\n", encoding="utf-8")

    results = _by_name(run_doctor(target=target, mcp_config=tmp_path / ".claude.json"))
    assert results["install"].ok is True
    assert "CLAUDE.md" in results["local edits"].detail
