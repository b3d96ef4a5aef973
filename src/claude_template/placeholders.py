"""プレースホルダ（`{{USER_NAME}}` など）の置換。

テンプレートエンジンは使わず、リテラル文字列の置換だけを行う。
skills 配下のコード例には `{{ value }}` のような記法が普通に出てくるため、
置換対象ファイルは install 側で限定している。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from zoneinfo import available_timezones

USER_NAME = "USER_NAME"
ROLE = "ROLE"
TIMEZONE = "TIMEZONE"
LOCATION = "LOCATION"
NOTES_PATH = "NOTES_PATH"

TOKENS: tuple[str, ...] = (USER_NAME, ROLE, TIMEZONE, LOCATION, NOTES_PATH)

LOCATION_UNSPECIFIED = "Not specified"

# 対話入力で選ばせる候補（表示名 -> IANA名）
TIMEZONE_CHOICES: dict[str, str] = {
    "US Eastern": "America/New_York",
    "US Central": "America/Chicago",
    "US Mountain": "America/Denver",
    "US Pacific": "America/Los_Angeles",
    "UK": "Europe/London",
    "Central Europe": "Europe/Berlin",
    "India": "Asia/Kolkata",
    "Japan": "Asia/Tokyo",
    "Australia Eastern": "Australia/Sydney",
    "UTC": "UTC",
}

_TOKEN_RE = re.compile(r"\{\{([A-Z0-9_]+)\}\}")


def token(name: str) -> str:
    return "{{" + name + "}}"


def normalize_timezone(value: str) -> str:
    """プリセット名または IANA 名を IANA 名にそろえる。"""
    v = value.strip()
    if v in TIMEZONE_CHOICES:
        return TIMEZONE_CHOICES[v]
    lowered = {k.lower(): iana for k, iana in TIMEZONE_CHOICES.items()}
    if v.lower() in lowered:
        return lowered[v.lower()]
    if v in TIMEZONE_CHOICES.values() or v in available_timezones():
        return v
    raise ValueError(f"unknown timezone: {value!r}")


@dataclass
class UserProfile:
    user_name: str
    role: str
    timezone: str
    location: str = ""
    notes_path: str = ""

    def values(self, *, default_notes_path: str = "") -> dict[str, str]:
        return {
            USER_NAME: self.user_name.strip(),
            ROLE: self.role.strip(),
            TIMEZONE: self.timezone.strip(),
            LOCATION: self.location.strip() or LOCATION_UNSPECIFIED,
            NOTES_PATH: self.notes_path.strip() or default_notes_path,
        }

    def missing(self) -> list[str]:
        """必須項目のうち空のもの。"""
        out = []
        if not self.user_name.strip():
            out.append("user_name")
        if not self.role.strip():
            out.append("role")
        if not self.timezone.strip():
            out.append("timezone")
        return out


def substitute(text: str, values: dict[str, str]) -> tuple[str, int]:
    """values の各トークンを置換し、(置換後テキスト, 置換数) を返す。"""
    count = 0
    for name, replacement in values.items():
        t = token(name)
        n = text.count(t)
        if n:
            text = text.replace(t, replacement)
            count += n
    return text, count


def find_placeholders(text: str) -> list[str]:
    """`{{NAME}}` 形式のトークン名を出現順にすべて返す。"""
    return _TOKEN_RE.findall(text)


def unknown_placeholders(text: str) -> list[str]:
    return [n for n in find_placeholders(text) if n not in TOKENS]
