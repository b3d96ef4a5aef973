"""テンプレートのインストール（コピー + プレースホルダ置換）。

流れ:
1. インストール先のディレクトリを作る（何度実行しても同じ結果）
2. コピー対象を列挙する（CLAUDE.md / context / commands / skills）
3. 既存ファイルは ConflictPolicy に従って backup / overwrite / skip
4. 置換対象ファイルだけプレースホルダを置換する
5. 書き出したファイルに `{{...}}` が残っていないか確認する
6. manifest に記録する

dry_run=True のときは何も書かずに InstallReport だけ返す。
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from claude_template.config import state_dir
from claude_template.manifest import load_manifest, save_manifest
from claude_template.placeholders import UserProfile, find_placeholders, substitute

log = logging.getLogger(__name__)

POLICY_ASK = "ask"
POLICY_BACKUP = "backup"
POLICY_OVERWRITE = "overwrite"
POLICY_SKIP = "skip"

RESOLVED_POLICIES = (POLICY_BACKUP, POLICY_OVERWRITE, POLICY_SKIP)

CLAUDE_MD = "CLAUDE.md"

DEST_DIRS = ("context", "context/tasks", "commands", "skills")

COPY_GLOBS = (
    "context/*.md",
    "context/tasks/*.md",
    "commands/*.md",
)

SUBSTITUTE_GLOBS = (
    CLAUDE_MD,
    "context/*.md",
    "context/tasks/*.md",
    "commands/*.md",
)

# 既存ファイルの扱いを聞く: rel_path -> backup | overwrite | skip
ConflictResolver = Callable[[str], str]


class InstallError(RuntimeError):
    pass


@dataclass
class InstallReport:
    source: Path
    target: Path
    dry_run: bool = False
    created_dirs: list[str] = field(default_factory=list)
    copied: list[str] = field(default_factory=list)
    backed_up: dict[str, Path] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    substitutions: int = 0
    leftover_tokens: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.leftover_tokens


def plan_files(source: Path) -> list[str]:
    """source 配下のコピー対象（posix 相対パス）。"""
    rels: list[str] = []
    if (source / CLAUDE_MD).is_file():
        rels.append(CLAUDE_MD)
    for pattern in COPY_GLOBS:
        rels.extend(p.relative_to(source).as_posix() for p in sorted(source.glob(pattern)) if p.is_file())

    skills = source / "skills"
    if skills.is_dir():
        rels.extend(p.relative_to(source).as_posix() for p in sorted(skills.rglob("*")) if p.is_file())

    # glob の重なりを除く（順序は維持）
    return list(dict.fromkeys(rels))


def is_substitutable(rel: str, extra_globs: Iterable[str] = ()) -> bool:
    patterns = (*SUBSTITUTE_GLOBS, *extra_globs)
    return any(fnmatch.fnmatchcase(rel, pat) for pat in patterns)


def ensure_dirs(target: Path, *, dry_run: bool = False) -> list[str]:
    """インストール先ディレクトリを作り、新規作成したものを返す。"""
    created: list[str] = []
    for d in DEST_DIRS:
        p = target / d
        if p.is_dir():
            continue
        created.append(d)
        if not dry_run:
            p.mkdir(parents=True, exist_ok=True)
    return created


def backup_root(target: Path) -> Path:
    base = state_dir(target) / "backups"
    stamp = time.strftime("%Y%m%d-%H%M%S")
    root = base / stamp
    n = 1
    while root.exists():
        root = base / f"{stamp}-{n}"
        n += 1
    return root


def render(source: Path, rel: str, values: dict[str, str], extra_globs: Iterable[str] = ()) -> tuple[bytes, int]:
    data = (source / rel).read_bytes()
    if not is_substitutable(rel, extra_globs):
        return data, 0
    text, n = substitute(data.decode("utf-8"), values)
    return text.encode("utf-8"), n


def install_template(
    source: Path,
    target: Path,
    profile: UserProfile,
    *,
    policy: str = POLICY_ASK,
    ask: ConflictResolver | None = None,
    dry_run: bool = False,
    extra_substitute_globs: Iterable[str] = (),
    only: Iterable[str] | None = None,
) -> InstallReport:
    """source のテンプレートを target にインストールする。

    only を渡すとその相対パスだけを対象にする（watch の差分同期用）。
    """
    if not source.is_dir():
        raise InstallError(f"template source not found: {source}")
    if not (source / CLAUDE_MD).is_file():
        raise InstallError(f"{CLAUDE_MD} not found in template source: {source}")
    missing = profile.missing()
    if missing:
        raise InstallError(f"profile is incomplete: {', '.join(missing)}")
    if policy not in (POLICY_ASK, *RESOLVED_POLICIES):
        raise InstallError(f"unknown conflict policy: {policy}")

    extra_globs = list(extra_substitute_globs)
    values = profile.values(default_notes_path=str(target / "context"))
    report = InstallReport(source=source, target=target, dry_run=dry_run)
    report.created_dirs = ensure_dirs(target, dry_run=dry_run)

    rels = plan_files(source)
    if only is not None:
        wanted = set(only)
        rels = [r for r in rels if r in wanted]

    manifest = load_manifest(target)
    backups: Path | None = None

    for rel in rels:
        data, n = render(source, rel, values, extra_globs)
        dest = target / rel

        if dest.exists():
            if dest.read_bytes() == data:
                report.unchanged.append(rel)
                _check_leftovers(report, rel, data, extra_globs)
                if not dry_run:
                    manifest.record(rel, data)
                continue

            action = _resolve_conflict(rel, policy, ask)
            if action == POLICY_SKIP:
                log.info("skip existing: %s", rel)
                report.skipped.append(rel)
                continue
            if action == POLICY_BACKUP:
                if backups is None:
                    backups = backup_root(target)
                backup_path = backups / rel
                if not dry_run:
                    backup_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(dest, backup_path)
                log.info("backup: %s -> %s", rel, backup_path)
                report.backed_up[rel] = backup_path

        report.substitutions += n
        _check_leftovers(report, rel, data, extra_globs)

        if not dry_run:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
            manifest.record(rel, data)
        report.copied.append(rel)

    if not dry_run:
        save_manifest(target, manifest)

    log.info(
        "install %s -> %s: copied=%d unchanged=%d skipped=%d backed_up=%d dry_run=%s",
        source,
        target,
        len(report.copied),
        len(report.unchanged),
        len(report.skipped),
        len(report.backed_up),
        dry_run,
    )
    return report


def _check_leftovers(report: InstallReport, rel: str, data: bytes, extra_globs: list[str]) -> None:
    if not is_substitutable(rel, extra_globs):
        return
    leftovers = find_placeholders(data.decode("utf-8"))
    if leftovers:
        log.warning("placeholders left in %s: %s", rel, ", ".join(leftovers))
        report.leftover_tokens[rel] = leftovers


def _resolve_conflict(rel: str, policy: str, ask: ConflictResolver | None) -> str:
    if policy != POLICY_ASK:
        return policy
    if ask is None:
        raise InstallError(f"{rel} already exists and no conflict resolver was given")
    action = ask(rel)
    if action not in RESOLVED_POLICIES:
        raise InstallError(f"invalid answer for {rel}: {action!r}")
    return action
