"""インストール済みファイルの記録（manifest）。

- `<target>/.template/manifest.json` に相対パス -> sha256 を保存
- install が更新し、`claude-template status` / doctor / watch が読む
- 壊れた manifest は空扱いにして警告ログを出すだけ（例外にしない）
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

from claude_template.config import state_dir

log = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


@dataclass
class ManifestEntry:
    sha256: str
    installed_at: float = field(default_factory=lambda: time.time())


@dataclass
class Manifest:
    files: dict[str, ManifestEntry] = field(default_factory=dict)

    def record(self, rel_path: str, content: bytes) -> None:
        self.files[rel_path] = ManifestEntry(sha256=sha256_bytes(content))

    def recorded_hash(self, rel_path: str) -> str | None:
        e = self.files.get(rel_path)
        return e.sha256 if e else None


def manifest_path(target: Path) -> Path:
    return state_dir(target) / MANIFEST_NAME


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    return sha256_bytes(path.read_bytes())


def load_manifest(target: Path) -> Manifest:
    path = manifest_path(target)
    if not path.exists():
        return Manifest()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log.warning("manifest read failed (%s); using empty manifest: %s", type(e).__name__, path)
        return Manifest()

    if text.strip() == "":
        log.warning("manifest is empty; using empty manifest: %s", path)
        return Manifest()

    try:
        raw = json.loads(text)
        files = {k: ManifestEntry(**v) for k, v in (raw.get("files", {}) or {}).items()}
    except (json.JSONDecodeError, TypeError, AttributeError) as e:
        log.warning("manifest is invalid (%s); using empty manifest: %s", type(e).__name__, path)
        return Manifest()
    return Manifest(files=files)


def save_manifest(target: Path, manifest: Manifest) -> Path:
    path = manifest_path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    raw = {"files": {k: asdict(v) for k, v in sorted(manifest.files.items())}}
    path.write_text(json.dumps(raw, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def modified_files(target: Path, manifest: Manifest | None = None) -> list[str]:
    """インストール後にユーザーが編集（または削除）したファイル。"""
    m = manifest if manifest is not None else load_manifest(target)
    out: list[str] = []
    for rel, entry in sorted(m.files.items()):
        p = target / rel
        if not p.exists() or sha256_file(p) != entry.sha256:
            out.append(rel)
    return out
