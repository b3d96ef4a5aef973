"""claude-template の設定ファイル（claude-template.toml）。

カレントディレクトリに `claude-template.toml` を置くと既定値を上書きできる。
CLI オプションが指定されればそちらが優先される。

```toml
source = "./my-template"        # 省略時は同梱テンプレート
target = "~/.claude"
on_conflict = "ask"             # ask | backup | overwrite | skip
log_level = "INFO"
extra_substitute_globs = ["agents/*.md"]
mcp_config = "~/.claude.json"
profile = "~/.claude/.template/profile.yml"   # 省略時は <target>/.template/profile.yml
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib  # type: ignore[no-redef]

DEFAULT_CONFIG_NAME = "claude-template.toml"

# インストール先に置く管理用ディレクトリ（manifest / logs / backups / profile）
STATE_DIR_NAME = ".template"

BUNDLED_TEMPLATE = Path(__file__).resolve().parent / "template"

CONFLICT_POLICIES = ("ask", "backup", "overwrite", "skip")


def default_target() -> Path:
    return Path("~/.claude").expanduser()


def default_mcp_config() -> Path:
    return Path("~/.claude.json").expanduser()


def state_dir(target: Path) -> Path:
    return target / STATE_DIR_NAME


@dataclass
class TemplateConfig:
    source: Path = BUNDLED_TEMPLATE
    target: Path = field(default_factory=default_target)
    on_conflict: str = "ask"
    log_level: str = "INFO"
    extra_substitute_globs: list[str] = field(default_factory=list)
    mcp_config: Path = field(default_factory=default_mcp_config)
    profile: Path | None = None

    @property
    def profile_path(self) -> Path:
        if self.profile is not None:
            return self.profile
        return state_dir(self.target) / "profile.yml"

    def override_target(self, target: Path) -> None:
        """CLI の --target で上書きする。プロフィールの場所は動かさない。"""
        self.profile = self.profile_path
        self.target = target

    @classmethod
    def load(cls, path: Path | None = None) -> TemplateConfig:
        """設定ファイルを読み込む。なければデフォルト。"""
        if path is None:
            path = Path(DEFAULT_CONFIG_NAME)
        if not path.exists():
            return cls()

        raw = tomllib.loads(path.read_text(encoding="utf-8"))
        base = path.resolve().parent
        cfg = cls()
        if raw.get("source"):
            cfg.source = _resolve(str(raw["source"]), base)
        if raw.get("target"):
            cfg.target = _resolve(str(raw["target"]), base)
        if raw.get("mcp_config"):
            cfg.mcp_config = _resolve(str(raw["mcp_config"]), base)
        if raw.get("profile"):
            cfg.profile = _resolve(str(raw["profile"]), base)

        on_conflict = str(raw.get("on_conflict", cfg.on_conflict))
        if on_conflict not in CONFLICT_POLICIES:
            raise ValueError(
                f"{path}: on_conflict must be one of {', '.join(CONFLICT_POLICIES)}"
                f" (got {on_conflict!r})"
            )
        cfg.on_conflict = on_conflict
        cfg.log_level = str(raw.get("log_level", cfg.log_level))
        globs = raw.get("extra_substitute_globs", [])
        if not isinstance(globs, list):
            raise ValueError(f"{path}: extra_substitute_globs must be a list of glob strings")
        cfg.extra_substitute_globs = [str(g) for g in globs]
        return cfg


def _resolve(value: str, base: Path) -> Path:
    p = Path(value).expanduser()
    if not p.is_absolute():
        p = base / p
    return p
