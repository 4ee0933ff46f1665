from __future__ import annotations

import os
import queue
import time
from pathlib import Path
from typing import Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from relaywatch.core.config import Settings
from relaywatch.core.errors import WatchSourceError
from relaywatch.core.logging import logger
from relaywatch.schemas.events import ClosedEvent, DataEvent, ErrorEvent, WatchEvent, WatchTarget

# how often a blocked consumer wakes up to check the observer and close requests
IDLE_CHECK_SECONDS = 0.2


def plan_watches(targets: list[WatchTarget]) -> list[tuple[Path, bool]]:
    """Directories to schedule, as ``(directory, recursive)`` pairs.

    Folders are watched recursively. A file is watched through its parent
    directory, unless that directory is already covered by a recursive watch.
    """
    recursive_dirs = sorted({target.path for target in targets if target.recursive})
    plain_dirs = sorted({target.path.parent for target in targets if not target.recursive})

    watches = [(folder, True) for folder in recursive_dirs]
    for folder in plain_dirs:
        if any(folder == root or folder.is_relative_to(root) for root in recursive_dirs):
            continue
        watches.append((folder, False))
    return watches


class RelayEventHandler(FileSystemEventHandler):
    def __init__(self, targets: list[WatchTarget], events: queue.Queue[WatchEvent]) -> None:
        self.files = {target.path for target in targets if not target.recursive}
        self.folders = [target.path for target in targets if target.recursive]
        self.roots = {folder for folder, _ in plan_watches(targets)}
        self.events = events

    def on_created(self, event: FileSystemEvent) -> None:
        self._submit("created", event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._submit("modified", event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if path in self.roots:
            self.events.put(ErrorEvent(WatchSourceError(f"watched path removed: {path}")))
        elif path in self.files:
            self.events.put(ErrorEvent(WatchSourceError(f"watched file removed: {path}")))

    def is_watched(self, path: Path) -> bool:
        if path in self.files:
            return True
        return any(path != folder and path.is_relative_to(folder) for folder in self.folders)

    def _submit(self, kind: str, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        path = Path(os.fsdecode(event.src_path))
        if not self.is_watched(path):
            return

        self.events.put(DataEvent(path=path, kind=kind, observed_at_ns=time.time_ns()))


class WatchSource:
    """Single ordered channel of watch events backed by a watchdog observer."""

    def __init__(
        self,
        targets: list[WatchTarget],
        poll_interval: float = 0.001,
        backend: Literal["polling", "native"] = "polling",
    ) -> None:
        if not targets:
            raise WatchSourceError("no watch targets configured")
        self.targets = list(targets)
        self.poll_interval = poll_interval
        self.backend = backend
        self.events: queue.Queue[WatchEvent] = queue.Queue()
        self.handler = RelayEventHandler(self.targets, self.events)
        self.observer: BaseObserver | None = None
        self._close_requested = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatchSource":
        return cls(
            settings.watch_targets,
            poll_interval=settings.poll_interval_seconds,
            backend=settings.watch_backend,
        )

    def _create_observer(self) -> BaseObserver:
        if self.backend == "native":
            return Observer(timeout=self.poll_interval)
        return PollingObserver(timeout=self.poll_interval)

    def start(self) -> None:
        for target in self.targets:
            if target.recursive and not target.path.is_dir():
                raise WatchSourceError(f"watch folder not found: {target.path}")
            if not target.recursive and not target.path.is_file():
                raise WatchSourceError(f"watch file not found: {target.path}")

        observer = self._create_observer()
        try:
            for folder, recursive in plan_watches(self.targets):
                observer.schedule(self.handler, str(folder), recursive=recursive)
                logger.info("watching %s recursive=%s", folder, recursive)
            observer.start()
        except OSError as exc:
            raise WatchSourceError(f"failed to start watcher: {exc}") from exc

        self.observer = observer
        logger.info(
            "watcher started backend=%s interval=%ss targets=%d",
            self.backend,
            self.poll_interval,
            len(self.targets),
        )

    def request_close(self) -> None:
        # only flips a flag so it is safe to call from a signal handler
        self._close_requested = True

    def stop(self) -> None:
        self._close_requested = True
        observer, self.observer = self.observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join()
        logger.info("watcher stopped")

    def next_event(self, timeout: float | None = None) -> WatchEvent | None:
        """Block until the next event; ``None`` only when ``timeout`` elapses."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self._close_requested:
                return ClosedEvent("close requested")

            wait = IDLE_CHECK_SECONDS
            if deadline is not None:
                wait = min(wait, max(0.0, deadline - time.monotonic()))
            try:
                return self.events.get(timeout=wait)
            except queue.Empty:
                pass

            if self.observer is not None and not self.observer.is_alive():
                return ErrorEvent(WatchSourceError("watch observer stopped unexpectedly"))
            if deadline is not None and time.monotonic() >= deadline:
                return None
