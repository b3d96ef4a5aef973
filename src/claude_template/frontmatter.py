"""Markdown の YAML frontmatter 分割。

commands/*.md と skills/*/SKILL.md はどちらも

```markdown
---
description: ...
---

本文
```

の形をしている。ここでは分割だけを行い、
スキーマの検証は validate 側で行う。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class FrontmatterError(ValueError):
    """frontmatter が YAML として読めない、または mapping でない。"""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path is not None else message)


def split_frontmatter(md: str, *, path: Path | None = None) -> tuple[dict[str, Any], str]:
    """(frontmatter dict, 本文) を返す。frontmatter が無ければ ({}, md)。"""
    text = md.replace("\r\n", "\n")
    raw, body = _extract_frontmatter(text)
    if raw is None:
        return {}, text

    try:
        front = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"invalid YAML frontmatter ({e})", path=path) from e

    if front is None:
        front = {}
    if not isinstance(front, dict):
        raise FrontmatterError(
            f"frontmatter must be a mapping, got {type(front).__name__}", path=path
        )
    return front, body


def read_frontmatter(path: Path) -> tuple[dict[str, Any], str]:
    return split_frontmatter(path.read_text(encoding="utf-8"), path=path)


def _extract_frontmatter(md: str) -> tuple[str | None, str]:
    if md.startswith("---\n"):
        rest = md.removeprefix("---\n")
        # 空の frontmatter（---\n---\n）
        if rest.startswith("---\n"):
            return "", rest.removeprefix("---\n")
        parts = rest.split("\n---\n", 1)
        if len(parts) == 2:
            return parts[0], parts[1]
        if rest.endswith("\n---"):
            return rest.removesuffix("\n---"), ""
    return None, md

