"""セットアップ時の質問への回答（UserProfile）の保存と対話入力。

`~/.claude/.template/profile.yml` に保存しておき、
再インストールや watch 同期のときに同じ値で置換する。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict
from pathlib import Path

import yaml

from claude_template.placeholders import TIMEZONE_CHOICES, UserProfile, normalize_timezone

log = logging.getLogger(__name__)

# prompt(question, default) -> answer
PromptFn = Callable[[str, str], str]


def load_profile(path: Path) -> UserProfile | None:
    if not path.exists():
        return None
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML ({e})") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: profile must be a mapping")
    return UserProfile(
        user_name=str(raw.get("user_name", "")),
        role=str(raw.get("role", "")),
        timezone=str(raw.get("timezone", "")),
        location=str(raw.get("location", "") or ""),
        notes_path=str(raw.get("notes_path", "") or ""),
    )


def save_profile(path: Path, profile: UserProfile) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(asdict(profile), allow_unicode=True, sort_keys=False),
        encoding="utf-8",
    )
    log.info("profile saved: %s", path)


def ask_profile(prompt: PromptFn, *, current: UserProfile | None = None) -> UserProfile:
    """名前/役割/タイムゾーン/場所（任意）を順に聞く。

    タイムゾーンはプリセット名か IANA 名のみ受け付け、
    それ以外は聞き直す。
    """
    cur = current or UserProfile(user_name="", role="", timezone="")

    user_name = ""
    while not user_name:
        user_name = prompt("Your name", cur.user_name).strip()

    role = ""
    while not role:
        role = prompt("Your role (e.g. Senior Backend Engineer)", cur.role).strip()

    choices = ", ".join(TIMEZONE_CHOICES)
    timezone = ""
    while not timezone:
        answer = prompt(f"Timezone ({choices}, or an IANA name)", cur.timezone)
        try:
            timezone = normalize_timezone(answer)
        except ValueError:
            log.debug("rejected timezone answer: %r", answer)
            timezone = ""

    location = prompt("Location (optional)", cur.location).strip()

    return UserProfile(
        user_name=user_name,
        role=role,
        timezone=timezone,
        location=location,
        notes_path=cur.notes_path,
    )
