"""
Directory watcher that converts newly created HEIC files.

Monitors a single directory (non-recursively) with the watchdog library.
Every change notification triggers a rescan that diffs the directory listing
against the files already seen; only names that appeared since the last scan
are handed to the converter. Files present when monitoring starts are never
touched.
"""

from __future__ import annotations

import threading
import weakref
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Optional, Set

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from app.utils.helpers import list_matching, normalise_path
from domains.heic_convert.converter import SOURCE_SUFFIX, Converter

# Event types that can change the directory listing. Opened/closed events are
# left out: listing the directory must not wake the watcher again.
RESCAN_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)


class MonitorState(str, Enum):
    """Lifecycle state of a DirectoryWatcher."""

    STOPPED = "stopped"
    RUNNING = "running"


class RescanEventHandler(FileSystemEventHandler):
    """Wakes its watcher up on any directory change."""

    def __init__(self, watcher: "DirectoryWatcher"):
        """
        Initialize event handler.

        Args:
            watcher: Watcher to notify, held through a weak reference
        """
        super().__init__()
        self._watcher = weakref.ref(watcher)

    def on_any_event(self, event: FileSystemEvent):
        """Trigger a rescan for events that may add or remove files."""
        if event.event_type not in RESCAN_EVENT_TYPES:
            return

        watcher = self._watcher()
        if watcher is None:
            return

        logger.debug(f"Change notification: {event.event_type} {event.src_path}")

        try:
            watcher.handle_change()
        except Exception:
            logger.exception(f"Rescan of {watcher.watch_dir} failed")


class DirectoryWatcher:
    """Watches one directory and converts HEIC files created in it."""

    def __init__(
        self,
        watch_dir: Path,
        converter: Converter,
        retry_limit: int = 0,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """
        Initialize directory watcher.

        Args:
            watch_dir: Directory to monitor
            converter: Converter handed each new file
            retry_limit: Extra attempts for a file whose conversion failed;
                0 means a failed file is never retried
            observer_factory: Builds the watchdog observer for each start
        """
        self._watch_dir = normalise_path(Path(watch_dir))
        self.converter = converter
        self.retry_limit = retry_limit
        self._observer_factory = observer_factory

        self._state = MonitorState.STOPPED
        self._observer: Optional[Observer] = None
        self._known_files: Set[str] = set()
        self._failures: Dict[str, int] = {}

        self._control_lock = threading.Lock()
        self._scan_lock = threading.Lock()

    @property
    def watch_dir(self) -> Path:
        return self._watch_dir

    @watch_dir.setter
    def watch_dir(self, value: Path):
        with self._control_lock:
            if self._state is MonitorState.RUNNING:
                raise RuntimeError("Cannot change the watched directory while monitoring")
            self._watch_dir = normalise_path(Path(value))

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is MonitorState.RUNNING

    @property
    def known_files(self) -> FrozenSet[str]:
        """Matching file names present as of the last scan."""
        # Rescans swap in a new set rather than mutating this one.
        return frozenset(self._known_files)

    def set_enabled(self, enabled: bool) -> bool:
        """
        Start or stop monitoring.

        Args:
            enabled: Desired state

        Returns:
            True if the watcher is running after the call
        """
        if enabled:
            return self.start()
        self.stop()
        return self.enabled

    def start(self) -> bool:
        """
        Start monitoring the watched directory.

        Files already in the directory are recorded as known and will not be
        converted. Failure to open the directory is logged, not raised.

        Returns:
            True if monitoring is running
        """
        with self._control_lock:
            if self._observer is not None:
                return True

            # Check the directory first: watchdog leaks its native handle when
            # scheduled on a missing path.
            try:
                list_matching(self._watch_dir, SOURCE_SUFFIX)
            except OSError as e:
                logger.error(f"Failed to watch {self._watch_dir}: {e}")
                return False

            observer = self._observer_factory()

            # Notifications arriving before the snapshot wait on the scan lock.
            error = None
            with self._scan_lock:
                try:
                    observer.schedule(
                        RescanEventHandler(self), str(self._watch_dir), recursive=False
                    )
                    observer.start()
                    self._known_files = list_matching(self._watch_dir, SOURCE_SUFFIX)
                except OSError as e:
                    error = e
                else:
                    self._failures.clear()
                    self._observer = observer
                    self._state = MonitorState.RUNNING

            if error is not None:
                logger.error(f"Failed to watch {self._watch_dir}: {error}")
                self._shutdown(observer)
                return False

            logger.debug(f"Known files: {sorted(self._known_files)}")
            logger.success(f"Monitoring started at: {self._watch_dir}")
            return True

    def stop(self):
        """
        Stop monitoring and release the native watch handle.

        A rescan already in progress is allowed to finish; no notification is
        acted on after this returns.
        """
        with self._control_lock:
            observer = self._observer
            if observer is None:
                return

            self._state = MonitorState.STOPPED
            self._observer = None
            self._shutdown(observer)

        logger.info("Monitoring stopped")

    def handle_change(self) -> Set[str]:
        """Rescan in response to a change notification, unless stopped."""
        with self._scan_lock:
            if self._state is not MonitorState.RUNNING:
                return set()
            return self._rescan()

    def rescan(self) -> Set[str]:
        """
        Diff the directory against the known files and convert new ones.

        Returns:
            Names handed to the converter during this pass
        """
        with self._scan_lock:
            return self._rescan()

    def _rescan(self) -> Set[str]:
        try:
            current = list_matching(self._watch_dir, SOURCE_SUFFIX)
        except OSError as e:
            logger.warning(f"Skipping scan, cannot list {self._watch_dir}: {e}")
            return set()

        new_files = current - self._known_files
        self._known_files = current

        for name in list(self._failures):
            if name not in current:
                del self._failures[name]
        retries = {
            name for name, attempts in self._failures.items()
            if attempts <= self.retry_limit
        }

        dispatched = new_files | retries
        for name in dispatched:
            try:
                self._dispatch(name)
            except Exception:
                logger.exception(f"Converter raised for {name}")
                self._record_failure(name, "converter raised")

        return dispatched

    def _dispatch(self, name: str):
        """Hand one file to the converter and record failures."""
        result = self.converter.convert(self._watch_dir / name)

        if result.success:
            self._failures.pop(name, None)
            return

        self._record_failure(name, result.reason)

    def _record_failure(self, name: str, reason: Optional[str]):
        attempts = self._failures.get(name, 0) + 1
        self._failures[name] = attempts
        if attempts > self.retry_limit:
            logger.warning(f"Giving up on {name}: {reason}")
        else:
            logger.info(f"Will retry {name} on next change ({attempts}/{self.retry_limit})")

    @staticmethod
    def _shutdown(observer: Observer):
        """Stop an observer and wait for its thread unless called from it."""
        try:
            observer.stop()
        except Exception as e:
            logger.warning(f"Error stopping observer: {e}")

        if observer.is_alive() and observer is not threading.current_thread():
            observer.join()
