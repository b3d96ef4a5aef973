from __future__ import annotations

from pathlib import Path

import pytest

from claude_template.placeholders import UserProfile


def _write(p: Path, text: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


@pytest.fixture()
def template_root(tmp_path: Path) -> Path:
    """最小限のテンプレートを作る。"""
    root = tmp_path / "template"

    _write(
        root / "CLAUDE.md",
        "# Rules for {{USER_NAME}}\n\nRole: {{ROLE}}\nTZ: {{TIMEZONE}}\nLocation: {{LOCATION}}\n"
        "Notes: {{NOTES_PATH}}\n",
    )
    _write(root / "context" / "writing-style.md", "Write like {{USER_NAME}}.\n")
    _write(root / "context" / "current-session.md", "# Current session\n")
    _write(root / "context" / "tasks" / "review.md", "Review at 9am {{TIMEZONE}}.\n")
    _write(
        root / "commands" / "start.md",
        "---\ndescription: Start a session\n---\n\nHello {{USER_NAME}}.\n",
    )
    _write(
        root / "commands" / "new-project.md",
        '---\ndescription: New project\nargument-hint: "[project-name]"\n---\n\nCreate $ARGUMENTS.\n',
    )
    _write(
        root / "skills" / "frontend" / "SKILL.md",
        "---\nname: frontend\ndescription: Frontend style guide\nallowed-tools: Read, Edit, Bash\n---\n\n"
        "Use `{{ value }}` in Vue templates. {{USER_NAME}} stays literal here.\n",
    )
    _write(root / "skills" / "frontend" / "references" / "css.md", "# CSS\n")
    _write(root / "mcp-servers" / "memory-keeper" / "README.md", "# Memory Keeper\n")
    return root


@pytest.fixture()
def target(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".claude"


@pytest.fixture()
def profile() -> UserProfile:
    return UserProfile(user_name="Alex Doe", role="Staff Engineer", timezone="Asia/Tokyo")
