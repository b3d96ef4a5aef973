"""logging の初期化。

- 詳細ログ: `<target>/.template/logs/claude-template.log`
- 人間向けの表示は cli.py の rich Console が担当する
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from claude_template.config import state_dir

LOG_NAME = "claude-template.log"


def log_path(target: Path) -> Path:
    return state_dir(target) / "logs" / LOG_NAME


def setup_logging(*, target: Path, level: str = "INFO") -> Path:
    path = log_path(target)

    # 既に設定済みなら二重設定しない
    if getattr(setup_logging, "_configured", False):
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = RotatingFileHandler(
        path,
        maxBytes=2_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    # noisy lib
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    setup_logging._configured = True  # type: ignore[attr-defined]
    return path
