"""環境のセルフチェック（claude-template doctor）。

- claude / npx CLI が PATH 上にあるか
- ~/.claude.json が JSON として読めるか、MCP サーバの command が見つかるか
- CLAUDE.md がインストールされているか、インストール後に編集されたファイル

失敗してもここでは例外にしない。結果の行を返すだけ。
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from claude_template.install import CLAUDE_MD
from claude_template.manifest import load_manifest, modified_files
from claude_template.mcp_config import McpConfigError, check_server_commands, load_mcp_config

log = logging.getLogger(__name__)


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ""


def _check_cli(name: str) -> CheckResult:
    path = shutil.which(name)
    if path is None:
        return CheckResult(f"{name} cli", False, "not found on PATH")
    return CheckResult(f"{name} cli", True, path)


def _check_mcp(mcp_path: Path) -> list[CheckResult]:
    if not mcp_path.exists():
        return [CheckResult("mcp config", True, f"{mcp_path} not found (no MCP servers)")]
    try:
        cfg = load_mcp_config(mcp_path)
    except (McpConfigError, OSError) as e:
        return [CheckResult("mcp config", False, str(e))]

    out = [CheckResult("mcp config", True, f"{len(cfg.servers)} servers")]
    missing = set(check_server_commands(cfg))
    for name, s in cfg.servers.items():
        if name in missing:
            out.append(
                CheckResult(f"mcp:{name}", False, f"command not found: {s.command or '(empty)'} (check PATH)")
            )
        else:
            out.append(CheckResult(f"mcp:{name}", True, s.command or s.type))
    return out


def _check_install(target: Path) -> list[CheckResult]:
    if not (target / CLAUDE_MD).is_file():
        return [CheckResult("install", False, f"{target / CLAUDE_MD} not found (run `claude-template install`)")]

    manifest = load_manifest(target)
    if not manifest.files:
        return [CheckResult("install", True, "CLAUDE.md present (no manifest)")]

    changed = modified_files(target, manifest)
    out = [CheckResult("install", True, f"{len(manifest.files)} files recorded")]
    if changed:
        out.append(CheckResult("local edits", True, ", ".join(changed)))
    return out


def run_doctor(*, target: Path, mcp_config: Path) -> list[CheckResult]:
    results = [_check_cli("claude"), _check_cli("npx")]
    results.extend(_check_mcp(mcp_config))
    results.extend(_check_install(target))
    for r in results:
        log.info("doctor: %s=%s %s", r.name, "ok" if r.ok else "fail", r.detail)
    return results
