"""~/.claude.json の `mcpServers` 管理。

```json
{
  "mcpServers": {
    "memory-keeper": {
      "type": "stdio",
      "command": "npx",
      "args": ["-y", "mcp-memory-keeper"],
      "env": {}
    }
  }
}
```

サーバ本体はこのリポジトリの外にあり、ここでは登録だけを扱う。
`mcpServers` 以外のトップレベルキーは触らずにそのまま書き戻す。
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

SERVERS_KEY = "mcpServers"


class McpConfigError(ValueError):
    pass


@dataclass
class McpServer:
    name: str
    command: str
    type: str = "stdio"
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "command": self.command, "args": list(self.args)}
        if self.env:
            out["env"] = dict(self.env)
        return out

    @classmethod
    def from_json(cls, name: str, raw: Any) -> McpServer:
        if not isinstance(raw, dict):
            raise McpConfigError(f"mcpServers.{name} must be an object")
        args = raw.get("args", []) or []
        env = raw.get("env", {}) or {}
        if not isinstance(args, list) or not isinstance(env, dict):
            raise McpConfigError(f"mcpServers.{name}: `args` must be a list and `env` an object")
        return cls(
            name=name,
            command=str(raw.get("command", "")),
            type=str(raw.get("type", "stdio")),
            args=[str(a) for a in args],
            env={str(k): str(v) for k, v in env.items()},
        )


PRESETS: dict[str, McpServer] = {
    "memory-keeper": McpServer(
        name="memory-keeper",
        command="npx",
        args=["-y", "mcp-memory-keeper"],
    ),
}


@dataclass
class McpConfig:
    raw: dict[str, Any] = field(default_factory=dict)
    servers: dict[str, McpServer] = field(default_factory=dict)

    def add_server(self, server: McpServer, *, replace: bool = True) -> bool:
        """追加して、既存を置き換えたかどうかを返す。"""
        existed = server.name in self.servers
        if existed and not replace:
            raise McpConfigError(f"MCP server already registered: {server.name}")
        self.servers[server.name] = server
        return existed

    def remove_server(self, name: str) -> bool:
        return self.servers.pop(name, None) is not None

    def to_json(self) -> dict[str, Any]:
        out = dict(self.raw)
        out[SERVERS_KEY] = {name: s.to_json() for name, s in self.servers.items()}
        return out


def load_mcp_config(path: Path) -> McpConfig:
    if not path.exists():
        return McpConfig()

    text = path.read_text(encoding="utf-8")
    if text.strip() == "":
        return McpConfig()
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise McpConfigError(f"{path} is not valid JSON (line {e.lineno}, column {e.colno})") from e
    if not isinstance(raw, dict):
        raise McpConfigError(f"{path}: top level must be an object")

    servers_raw = raw.get(SERVERS_KEY, {}) or {}
    if not isinstance(servers_raw, dict):
        raise McpConfigError(f"{path}: `{SERVERS_KEY}` must be an object")
    servers = {name: McpServer.from_json(name, v) for name, v in servers_raw.items()}
    return McpConfig(raw=raw, servers=servers)


def save_mcp_config(path: Path, config: McpConfig) -> Path | None:
    """保存する。既存ファイルがあれば `<name>.bak` に退避してそのパスを返す。"""
    backup: Path | None = None
    if path.exists():
        backup = path.with_name(path.name + ".bak")
        shutil.copy2(path, backup)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_json(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    log.info("mcp config saved: %s (%d servers)", path, len(config.servers))
    return backup


def parse_env_pairs(pairs: list[str]) -> dict[str, str]:
    """`KEY=VALUE` のリストを dict にする。"""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise McpConfigError(f"env must be KEY=VALUE (got {pair!r})")
        env[key.strip()] = value
    return env


def check_server_commands(config: McpConfig) -> list[str]:
    """command が PATH 上に見つからないサーバ名。"""
    missing: list[str] = []
    for name, s in config.servers.items():
        if s.type != "stdio":
            continue
        if not s.command or shutil.which(s.command) is None:
            missing.append(name)
    return missing
