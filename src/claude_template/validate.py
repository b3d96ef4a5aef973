"""テンプレート（commands / skills / CLAUDE.md）のバリデーション。

frontmatter のスキーマを機械的に確認する。
strict=False（デフォルト）では命名規則などの軽微な問題は warnings に格下げする。
strict=True にすると errors にする（CI 用）。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from claude_template.documents import (
    CommandDoc,
    SkillDoc,
    command_paths,
    parse_command,
    parse_skill,
    skill_dirs,
)
from claude_template.frontmatter import FrontmatterError
from claude_template.install import CLAUDE_MD, is_substitutable, plan_files
from claude_template.placeholders import unknown_placeholders

COMMAND_KEYS = {"description", "argument-hint", "allowed-tools", "model"}
SKILL_KEYS = {"name", "description", "allowed-tools", "license", "metadata"}

SKILL_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
MAX_DESCRIPTION = 1024


@dataclass
class ValidationResult:
    ok: bool = True
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def extend(self, other: ValidationResult) -> None:
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)
        self.ok = not self.errors


def validate_command(doc: CommandDoc, *, label: str | None = None) -> ValidationResult:
    """commands/*.md の frontmatter を検証する。"""
    where = label or doc.path.name
    errors: list[str] = []
    warnings: list[str] = []

    if not doc.description:
        errors.append(f"{where}: `description` is required.")

    for key in sorted(set(doc.front) - COMMAND_KEYS):
        warnings.append(f"{where}: unknown frontmatter key `{key}`.")

    if not doc.body.strip():
        warnings.append(f"{where}: command body is empty.")

    return ValidationResult(ok=len(errors) == 0, warnings=warnings, errors=errors)


def validate_skill(doc: SkillDoc, *, strict: bool = False, label: str | None = None) -> ValidationResult:
    """skills/*/SKILL.md の frontmatter を検証する。"""
    where = label or f"{doc.dir_name}/SKILL.md"
    errors: list[str] = []
    warnings: list[str] = []

    if not doc.name:
        errors.append(f"{where}: `name` is required.")
    else:
        if not SKILL_NAME_RE.match(doc.name):
            msg = f"{where}: `name` should be lowercase words joined by hyphens (got {doc.name!r})."
            if strict:
                errors.append(msg)
            else:
                warnings.append(msg)
        if doc.name != doc.dir_name:
            warnings.append(f"{where}: `name` ({doc.name}) differs from directory name ({doc.dir_name}).")

    if not doc.description:
        errors.append(f"{where}: `description` is required (it decides when the skill is loaded).")
    elif len(doc.description) > MAX_DESCRIPTION:
        warnings.append(f"{where}: `description` is longer than {MAX_DESCRIPTION} characters.")

    if not doc.allowed_tools:
        errors.append(f"{where}: `allowed-tools` is required.")

    for key in sorted(set(doc.front) - SKILL_KEYS):
        warnings.append(f"{where}: unknown frontmatter key `{key}`.")

    if not doc.body.strip():
        warnings.append(f"{where}: skill body is empty.")

    return ValidationResult(ok=len(errors) == 0, warnings=warnings, errors=errors)


def validate_template(
    root: Path,
    *,
    strict: bool = False,
    extra_substitute_globs: list[str] | None = None,
) -> ValidationResult:
    """テンプレートディレクトリ全体を検証する。"""
    result = ValidationResult()
    undecodable: set[str] = set()

    if not root.is_dir():
        result.errors.append(f"template directory not found: {root}")
        result.ok = False
        return result

    if not (root / CLAUDE_MD).is_file():
        result.errors.append(f"{CLAUDE_MD} is missing.")

    commands_dir = root / "commands"
    if not commands_dir.is_dir():
        result.warnings.append("commands/ directory is missing.")
    for p in command_paths(commands_dir):
        label = p.relative_to(root).as_posix()
        try:
            doc = parse_command(p)
        except FrontmatterError as e:
            result.errors.append(f"{label}: {e}")
            continue
        except UnicodeDecodeError:
            result.errors.append(f"{label}: not UTF-8 text.")
            undecodable.add(label)
            continue
        result.extend(validate_command(doc, label=label))

    skills_dir = root / "skills"
    skills = skill_dirs(skills_dir)
    if not skills_dir.is_dir():
        result.warnings.append("skills/ directory is missing.")
    else:
        for d in sorted(x for x in skills_dir.iterdir() if x.is_dir()):
            if d not in skills:
                result.warnings.append(f"skills/{d.name}: SKILL.md is missing.")
    for d in skills:
        label = (d / "SKILL.md").relative_to(root).as_posix()
        try:
            doc = parse_skill(d)
        except FrontmatterError as e:
            result.errors.append(f"{label}: {e}")
            continue
        except UnicodeDecodeError:
            result.errors.append(f"{label}: not UTF-8 text.")
            undecodable.add(label)
            continue
        result.extend(validate_skill(doc, strict=strict, label=label))

    globs = extra_substitute_globs or []
    for rel in plan_files(root):
        if not is_substitutable(rel, globs):
            continue
        try:
            text = (root / rel).read_text(encoding="utf-8")
        except UnicodeDecodeError:
            if rel not in undecodable:
                result.errors.append(f"{rel}: not UTF-8 text.")
                undecodable.add(rel)
            continue
        unknown = unknown_placeholders(text)
        for name in dict.fromkeys(unknown):
            result.warnings.append(f"{rel}: unknown placeholder {{{{{name}}}}} will not be substituted.")

    result.ok = not result.errors
    return result
