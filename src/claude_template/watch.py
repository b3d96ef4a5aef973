"""テンプレートソースの監視と同期（claude-template watch）。

- source 配下のファイルが追加/更新されたら、その1ファイルだけ再インストール
- デバウンスで保存連打を1回にまとめる
- インストール後にユーザーが編集したファイル（manifest のハッシュと不一致）は上書きしない

CIではinotify実機がない想定なので、Observer起動部分は薄くし、
ロジック（デバウンス/同期）はユニットテストで担保する。
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from claude_template.install import (
    POLICY_ASK,
    POLICY_OVERWRITE,
    POLICY_SKIP,
    InstallReport,
    install_template,
    plan_files,
)
from claude_template.manifest import load_manifest, sha256_file
from claude_template.placeholders import UserProfile

log = logging.getLogger(__name__)


@dataclass
class SyncJob:
    path: Path


class DebouncedEnqueuer:
    def __init__(self, q: queue.Queue[SyncJob], debounce_seconds: float) -> None:
        self.q = q
        self.debounce_seconds = debounce_seconds
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}

    def enqueue(self, p: Path, reason: str = "update") -> None:
        key = str(p)
        with self._lock:
            if key in self._timers:
                self._timers[key].cancel()
            t = threading.Timer(self.debounce_seconds, self._fire, args=(p, reason))
            t.daemon = True
            self._timers[key] = t
            t.start()

    def cancel_all(self) -> None:
        with self._lock:
            for t in self._timers.values():
                t.cancel()
            self._timers.clear()

    def _fire(self, p: Path, reason: str) -> None:
        with self._lock:
            self._timers.pop(str(p), None)
        log.debug("queued(%s): %s", reason, p)
        self.q.put(SyncJob(path=p))


class SyncWorker:
    def __init__(
        self,
        q: queue.Queue[SyncJob],
        *,
        source: Path,
        target: Path,
        profile: UserProfile,
        extra_substitute_globs: Iterable[str] = (),
    ) -> None:
        self.q = q
        self.source = source
        self.target = target
        self.profile = profile
        self.extra_substitute_globs = list(extra_substitute_globs)
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    def run_forever(self) -> None:
        while not self._stop.is_set():
            try:
                job = self.q.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                try:
                    self._process(job)
                except Exception:  # noqa: BLE001
                    # ワーカースレッドが死ぬと同期が止まるので、ログに残して継続する
                    log.error("sync worker failed: %s", job.path, exc_info=True)
            finally:
                self.q.task_done()

    def _process(self, job: SyncJob) -> InstallReport | None:
        p = job.path
        if not p.is_file():
            return None
        try:
            rel = p.resolve().relative_to(self.source.resolve()).as_posix()
        except ValueError:
            return None
        if rel not in plan_files(self.source):
            return None

        manifest = load_manifest(self.target)

        def resolve(r: str) -> str:
            # 前回インストールした内容のままなら上書き、編集済み/管理外なら残す
            recorded = manifest.recorded_hash(r)
            if recorded is not None and recorded == sha256_file(self.target / r):
                return POLICY_OVERWRITE
            log.info("sync: keep locally edited file %s", r)
            return POLICY_SKIP

        report = install_template(
            self.source,
            self.target,
            self.profile,
            policy=POLICY_ASK,
            ask=resolve,
            extra_substitute_globs=self.extra_substitute_globs,
            only=[rel],
        )
        if report.copied:
            log.info("synced: %s", rel)
        return report


class _Handler(FileSystemEventHandler):
    def __init__(self, enq: DebouncedEnqueuer) -> None:
        self.enq = enq

    def on_created(self, event):  # type: ignore[override]
        if not event.is_directory:
            self.enq.enqueue(Path(event.src_path), reason="created")

    def on_modified(self, event):  # type: ignore[override]
        if not event.is_directory:
            self.enq.enqueue(Path(event.src_path), reason="modified")

    def on_moved(self, event):  # type: ignore[override]
        if not event.is_directory:
            self.enq.enqueue(Path(event.dest_path), reason="moved")


def watch_template(
    *,
    source: Path,
    target: Path,
    profile: UserProfile,
    debounce_seconds: float = 0.25,
    extra_substitute_globs: Iterable[str] = (),
    stop_event: threading.Event | None = None,
) -> None:
    """Ctrl-C（または stop_event）まで source を監視して target に同期する。"""
    q: queue.Queue[SyncJob] = queue.Queue()
    enq = DebouncedEnqueuer(q, debounce_seconds=debounce_seconds)
    worker = SyncWorker(
        q,
        source=source,
        target=target,
        profile=profile,
        extra_substitute_globs=extra_substitute_globs,
    )
    t = threading.Thread(target=worker.run_forever, name="template-sync-worker", daemon=True)
    t.start()

    obs = Observer()
    obs.schedule(_Handler(enq), str(source), recursive=True)
    obs.start()
    log.info("watching %s -> %s", source, target)

    try:
        while stop_event is None or not stop_event.is_set():
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        enq.cancel_all()
        worker.stop()
        obs.stop()
        obs.join()
        t.join(timeout=5)
        if t.is_alive():
            log.warning("sync worker did not stop within 5s")
