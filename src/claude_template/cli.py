"""claude-template CLI エントリポイント。"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from claude_template.config import CONFLICT_POLICIES, TemplateConfig
from claude_template.doctor import run_doctor
from claude_template.install import (
    POLICY_BACKUP,
    POLICY_OVERWRITE,
    POLICY_SKIP,
    ConflictResolver,
    InstallError,
    InstallReport,
    install_template,
)
from claude_template.logging_setup import setup_logging
from claude_template.manifest import load_manifest, modified_files
from claude_template.mcp_config import (
    PRESETS,
    McpConfigError,
    McpServer,
    load_mcp_config,
    parse_env_pairs,
    save_mcp_config,
)
from claude_template.placeholders import UserProfile, find_placeholders, normalize_timezone
from claude_template.profile import ask_profile, load_profile, save_profile
from claude_template.validate import validate_template
from claude_template.watch import watch_template

APP_HELP = "Claude Code 用テンプレート（CLAUDE.md / commands / skills）のインストーラ"

app = typer.Typer(add_completion=False, help=APP_HELP)
mcp_app = typer.Typer(add_completion=False, help="~/.claude.json の MCP サーバ登録を管理する。")
app.add_typer(mcp_app, name="mcp")

console = Console()


def _fail(message: str) -> typer.Exit:
    console.print(f"❌ {escape(message)}", style="red")
    return typer.Exit(code=1)


def _os_fail(e: OSError) -> typer.Exit:
    if isinstance(e, PermissionError):
        return _fail(f"{e} (check ownership or run `chmod u+w` on the target)")
    return _fail(f"{type(e).__name__}: {e}")


def _load_config(config: Path | None) -> TemplateConfig:
    try:
        return TemplateConfig.load(config)
    except ValueError as e:
        raise _fail(str(e)) from e


def _load_profile(cfg: TemplateConfig) -> UserProfile | None:
    try:
        return load_profile(cfg.profile_path)
    except ValueError as e:
        raise _fail(str(e)) from e


def _prompt(question: str, default: str) -> str:
    return typer.prompt(question, default=default, show_default=bool(default))


def _conflict_prompt() -> ConflictResolver:
    """既存ファイルごとに backup / overwrite / skip を聞く。大文字は残り全部に適用。"""
    remembered: dict[str, str] = {}
    answers = {"b": POLICY_BACKUP, "o": POLICY_OVERWRITE, "s": POLICY_SKIP}

    def ask(rel: str) -> str:
        if "all" in remembered:
            return remembered["all"]
        while True:
            raw = typer.prompt(
                f"{rel} already exists: [b]ackup / [o]verwrite / [s]kip (uppercase = all)",
                default="b",
            ).strip()
            action = answers.get(raw.lower()[:1])
            if action is None:
                continue
            if raw[:1].isupper():
                remembered["all"] = action
            return action

    return ask


def _print_report(report: InstallReport) -> None:
    prefix = "(dry-run) " if report.dry_run else ""
    for d in report.created_dirs:
        console.print(f"  📁 {prefix}mkdir {d}", style="dim")
    for rel in report.copied:
        console.print(f"  ✅ {prefix}{rel}", style="green")
    for rel, backup in report.backed_up.items():
        console.print(f"  💾 {prefix}backup {rel} -> {backup}", style="cyan")
    for rel in report.skipped:
        console.print(f"  ⏭️  skipped {rel} (kept existing)", style="yellow")
    if report.unchanged:
        console.print(f"  {len(report.unchanged)} files unchanged", style="dim")
    for rel, tokens in report.leftover_tokens.items():
        names = ", ".join("{{" + t + "}}" for t in tokens)
        console.print(f"  ⚠️  {rel}: placeholders left: {names}", style="yellow")


@app.command()
def init(
    name: str = typer.Option("", "--name", help="あなたの名前"),
    role: str = typer.Option("", "--role", help="役割（例: Staff Engineer）"),
    timezone: str = typer.Option("", "--timezone", help="タイムゾーン（プリセット名または IANA 名）"),
    location: str = typer.Option("", "--location", help="場所（任意）"),
    notes_path: str = typer.Option("", "--notes-path", help="メモ置き場（省略時は <target>/context）"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """セットアップの質問に答えてプロフィールを保存する。"""
    cfg = _load_config(config)
    setup_logging(target=cfg.target, level=cfg.log_level)

    if name and role and timezone:
        try:
            tz = normalize_timezone(timezone)
        except ValueError as e:
            raise _fail(str(e)) from e
        profile = UserProfile(user_name=name, role=role, timezone=tz, location=location, notes_path=notes_path)
    else:
        current = _load_profile(cfg)
        if current is None:
            current = UserProfile(user_name=name, role=role, timezone=timezone, location=location)
        if notes_path:
            current.notes_path = notes_path
        profile = ask_profile(_prompt, current=current)

    save_profile(cfg.profile_path, profile)
    console.print(f"🐾 profile saved: {cfg.profile_path}", style="bold green")


@app.command()
def install(
    source: Path | None = typer.Option(None, "--source", help="テンプレートのディレクトリ（省略時は同梱版）"),
    target: Path | None = typer.Option(None, "--target", help="インストール先（既定: ~/.claude）"),
    on_conflict: str | None = typer.Option(
        None, "--on-conflict", help="既存ファイルの扱い: ask | backup | overwrite | skip"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="書き込まずに計画だけ出す"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """テンプレートをコピーしてプレースホルダを置換する。"""
    cfg = _load_config(config)
    if source is not None:
        cfg.source = source
    if target is not None:
        cfg.override_target(target)
    policy = on_conflict or cfg.on_conflict
    if policy not in CONFLICT_POLICIES:
        raise _fail(f"--on-conflict must be one of {', '.join(CONFLICT_POLICIES)}")

    if not dry_run:
        setup_logging(target=cfg.target, level=cfg.log_level)

    profile = _load_profile(cfg)
    if profile is None:
        console.print("プロフィールがありません。先に質問に答えてください。", style="yellow")
        profile = ask_profile(_prompt)
        if not dry_run:
            save_profile(cfg.profile_path, profile)

    console.print(f"\n🐾 {cfg.source} -> {cfg.target}\n", style="bold cyan")
    try:
        report = install_template(
            cfg.source,
            cfg.target,
            profile,
            policy=policy,
            ask=_conflict_prompt(),
            dry_run=dry_run,
            extra_substitute_globs=cfg.extra_substitute_globs,
        )
    except InstallError as e:
        raise _fail(str(e)) from e
    except UnicodeDecodeError as e:
        raise _fail(f"template file is not UTF-8 text: {e}") from e
    except OSError as e:
        raise _os_fail(e) from e

    _print_report(report)
    if not report.ok:
        raise typer.Exit(code=1)
    console.print("\n✅ done", style="bold green")


@app.command()
def validate(
    source: Path | None = typer.Argument(None, help="検証するテンプレートのディレクトリ（省略時は同梱版）"),
    strict: bool = typer.Option(False, "--strict", help="命名規則の違反もエラーにする"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """commands / skills の frontmatter を検証して問題点を表示。"""
    cfg = _load_config(config)
    root = source or cfg.source
    result = validate_template(root, strict=strict, extra_substitute_globs=cfg.extra_substitute_globs)

    for e in result.errors:
        console.print(f"  ❌ {escape(e)}", style="red")
    for w in result.warnings:
        console.print(f"  ⚠️  {escape(w)}", style="yellow")
    if result.ok:
        console.print("  ✅ テンプレートに問題はありません。", style="green")
    else:
        raise typer.Exit(code=1)


@app.command()
def placeholders(
    path: Path = typer.Argument(..., help="確認するファイルまたはディレクトリ"),
) -> None:
    """`{{...}}` が残っているファイルを表示する（残っていれば終了コード1）。"""
    if not path.exists():
        raise _fail(f"not found: {path}")

    files = [path] if path.is_file() else sorted(p for p in path.rglob("*.md") if p.is_file())
    found = 0
    for p in files:
        try:
            tokens = find_placeholders(p.read_text(encoding="utf-8"))
        except UnicodeDecodeError:
            continue
        if tokens:
            found += len(tokens)
            names = ", ".join(dict.fromkeys(tokens))
            console.print(f"  {p}: {names}", style="yellow")

    if found:
        raise typer.Exit(code=1)
    console.print("  ✅ no placeholders left", style="green")


@app.command()
def status(
    target: Path | None = typer.Option(None, "--target", help="インストール先"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """インストール済みファイルとローカル編集の有無を表示する。"""
    cfg = _load_config(config)
    root = target or cfg.target
    manifest = load_manifest(root)
    if not manifest.files:
        console.print("(not installed)")
        return

    changed = set(modified_files(root, manifest))
    for rel in sorted(manifest.files):
        if rel in changed:
            console.print(f"- {rel} (modified)", style="yellow")
        else:
            console.print(f"- {rel}")


@app.command()
def doctor(
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """claude / npx / MCP サーバ / インストール状況をチェックする。"""
    cfg = _load_config(config)
    results = run_doctor(target=cfg.target, mcp_config=cfg.mcp_config)
    for r in results:
        mark = "✅" if r.ok else "❌"
        console.print(f"  {mark} {r.name}: {r.detail}", style="green" if r.ok else "red")
    if not all(r.ok for r in results):
        raise typer.Exit(code=1)


@app.command()
def watch(
    source: Path | None = typer.Option(None, "--source", help="監視するテンプレートのディレクトリ"),
    target: Path | None = typer.Option(None, "--target", help="同期先"),
    debounce: float = typer.Option(0.25, "--debounce", help="デバウンス秒"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """テンプレートの変更を監視して同期する（ローカル編集済みのファイルは残す）。"""
    cfg = _load_config(config)
    src = source or cfg.source
    if target is not None:
        cfg.override_target(target)
    dst = cfg.target
    setup_logging(target=dst, level=cfg.log_level)

    profile = _load_profile(cfg)
    if profile is None:
        raise _fail("profile not found. Run `claude-template init` first.")

    console.print(f"watching: {src} -> {dst}", style="cyan")
    watch_template(
        source=src,
        target=dst,
        profile=profile,
        debounce_seconds=debounce,
        extra_substitute_globs=cfg.extra_substitute_globs,
    )


@mcp_app.command("list")
def mcp_list(
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """登録済みの MCP サーバを表示する。"""
    cfg = _load_config(config)
    try:
        mcp = load_mcp_config(cfg.mcp_config)
    except McpConfigError as e:
        raise _fail(str(e)) from e
    if not mcp.servers:
        console.print("(no MCP servers)")
        return
    for s in mcp.servers.values():
        console.print(f"- {s.name}: {s.command} {' '.join(s.args)} ({s.type})")


def _save_server(cfg: TemplateConfig, server: McpServer) -> None:
    setup_logging(target=cfg.target, level=cfg.log_level)
    try:
        mcp = load_mcp_config(cfg.mcp_config)
        replaced = mcp.add_server(server)
        save_mcp_config(cfg.mcp_config, mcp)
    except McpConfigError as e:
        raise _fail(str(e)) from e
    except OSError as e:
        raise _os_fail(e) from e
    verb = "updated" if replaced else "added"
    console.print(f"✅ {verb} {server.name} in {cfg.mcp_config}", style="green")
    console.print("  Claude Code を再起動すると反映されます。", style="dim")


@mcp_app.command("add")
def mcp_add(
    name: str = typer.Argument(..., help="サーバ名"),
    command: str = typer.Option(..., "--command", help="起動コマンド（例: npx）"),
    arg: list[str] = typer.Option([], "--arg", help="引数（複数指定可）"),
    env: list[str] = typer.Option([], "--env", help="環境変数 KEY=VALUE（複数指定可）"),
    server_type: str = typer.Option("stdio", "--type", help="サーバ種別"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """MCP サーバを登録する。"""
    cfg = _load_config(config)
    try:
        env_map = parse_env_pairs(env)
    except McpConfigError as e:
        raise _fail(str(e)) from e
    _save_server(cfg, McpServer(name=name, command=command, type=server_type, args=list(arg), env=env_map))


@mcp_app.command("add-preset")
def mcp_add_preset(
    name: str = typer.Argument(..., help=f"プリセット名（{', '.join(PRESETS)}）"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """よく使う MCP サーバ（memory-keeper など）を登録する。"""
    preset = PRESETS.get(name)
    if preset is None:
        raise _fail(f"unknown preset: {name} (available: {', '.join(PRESETS)})")
    cfg = _load_config(config)
    _save_server(
        cfg,
        McpServer(name=preset.name, command=preset.command, type=preset.type, args=list(preset.args), env=dict(preset.env)),
    )


@mcp_app.command("remove")
def mcp_remove(
    name: str = typer.Argument(..., help="サーバ名"),
    config: Path | None = typer.Option(None, "--config", help="claude-template.toml のパス"),
) -> None:
    """MCP サーバの登録を外す。"""
    cfg = _load_config(config)
    setup_logging(target=cfg.target, level=cfg.log_level)
    try:
        mcp = load_mcp_config(cfg.mcp_config)
        if not mcp.remove_server(name):
            raise _fail(f"MCP server not registered: {name}")
        save_mcp_config(cfg.mcp_config, mcp)
    except McpConfigError as e:
        raise _fail(str(e)) from e
    except OSError as e:
        raise _os_fail(e) from e
    console.print(f"✅ removed {name}", style="green")


def main() -> None:
    app()
