"""Command / Skill ドキュメントの読み込み。

### commands/<name>.md

```yaml
description: <string>      # 必須
argument-hint: <string>    # 任意（例: "[project-name]"）
```

### skills/<name>/SKILL.md (+ references/*.md)

```yaml
name: <string>              # 必須
description: <string>       # 必須（起動判定に使われる）
allowed-tools: Read, Grep   # 必須（カンマ区切り）
```

ここでは検証しない。欠けたキーは空文字になる（検証は validate.py）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from claude_template.frontmatter import read_frontmatter

SKILL_FILE = "SKILL.md"
REFERENCES_DIR = "references"


@dataclass
class CommandDoc:
    name: str
    path: Path
    description: str = ""
    argument_hint: str = ""
    body: str = ""
    front: dict[str, Any] = field(default_factory=dict)


@dataclass
class SkillDoc:
    name: str
    path: Path
    description: str = ""
    allowed_tools: list[str] = field(default_factory=list)
    body: str = ""
    references: list[Path] = field(default_factory=list)
    front: dict[str, Any] = field(default_factory=dict)

    @property
    def dir_name(self) -> str:
        return self.path.parent.name


def parse_command(path: Path) -> CommandDoc:
    front, body = read_frontmatter(path)
    return CommandDoc(
        name=path.stem,
        path=path,
        description=_str(front.get("description")),
        argument_hint=_str(front.get("argument-hint")),
        body=body,
        front=front,
    )


def parse_skill(skill_dir: Path) -> SkillDoc:
    path = skill_dir / SKILL_FILE
    front, body = read_frontmatter(path)
    refs_dir = skill_dir / REFERENCES_DIR
    references = sorted(refs_dir.glob("*.md")) if refs_dir.is_dir() else []
    return SkillDoc(
        name=_str(front.get("name")),
        path=path,
        description=_str(front.get("description")),
        allowed_tools=parse_allowed_tools(front.get("allowed-tools")),
        body=body,
        references=references,
        front=front,
    )


def parse_allowed_tools(raw: Any) -> list[str]:
    """`Read, Grep, Bash(git:*)` / YAML list の両方を受け付ける。"""
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(x) for x in raw]
    else:
        items = str(raw).split(",")
    return [s.strip() for s in items if s.strip()]


def command_paths(commands_dir: Path) -> list[Path]:
    if not commands_dir.is_dir():
        return []
    return sorted(p for p in commands_dir.glob("*.md") if p.is_file())


def skill_dirs(skills_dir: Path) -> list[Path]:
    if not skills_dir.is_dir():
        return []
    return sorted(d for d in skills_dir.iterdir() if (d / SKILL_FILE).is_file())


def load_commands(commands_dir: Path) -> list[CommandDoc]:
    return [parse_command(p) for p in command_paths(commands_dir)]


def load_skills(skills_dir: Path) -> list[SkillDoc]:
    return [parse_skill(d) for d in skill_dirs(skills_dir)]


def _str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()
