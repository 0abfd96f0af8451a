"""Background refresh engine: fetch, reconcile, persist, publish.

All triggers (timer ticks and manual refreshes) go through one queue that a
single owner task drains, so cycles never overlap and the last cycle to finish
always holds the newest data. The state lock is only held while the record is
read, replaced and saved, never across the API call or the ccusage run.
"""
import asyncio
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from collectors import ccusage, oauth, preflight
from errors import PersistenceError, ReconciliationError, UsageError
from models import MIN_REFRESH, EngineStatus, Settings, UsageSnapshot, WidgetState
from reconcile import (
    NOT_LOGGED_IN_MESSAGE,
    REFRESHING_MESSAGE,
    ErrorClass,
    classify_error,
    reconcile,
    status_message,
    updated_message,
)
from store import StateStore

log = logging.getLogger(__name__)

SnapshotCallback = Callable[[UsageSnapshot, str], None]
StatusCallback = Callable[[str], None]


class Phase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    PUBLISHING = "publishing"


class Trigger(str, Enum):
    TIMER = "timer"
    MANUAL = "manual"


def _capture(fetch: Callable):
    """Run one source fetch, returning its value or the error it raised."""
    try:
        return fetch()
    except UsageError as exc:
        log.debug("%s failed: %s", getattr(fetch, "__name__", fetch), exc)
        return exc
    except Exception as exc:
        log.exception("Unexpected failure in %s", getattr(fetch, "__name__", fetch))
        return exc


class UsageEngine:
    def __init__(
        self,
        store: StateStore | None = None,
        fetch_primary: Callable[[], float] = oauth.fetch_primary,
        fetch_secondary: Callable[[], UsageSnapshot] = ccusage.fetch_blocks,
        check_dependencies: Callable[[], str] = preflight.check_dependencies,
    ):
        self.store = store or StateStore()
        self._fetch_primary = fetch_primary
        self._fetch_secondary = fetch_secondary
        self._check_dependencies = check_dependencies

        self._lock = threading.Lock()
        self._state: WidgetState = self.store.load()
        self._status = ""
        self._last_refreshed: str | None = None
        self.phase = Phase.IDLE
        self.dependency_status: str | None = None

        self._snapshot_callbacks: list[SnapshotCallback] = []
        self._startup_callbacks: list[StatusCallback] = []

        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue | None = None
        self._tasks: list[asyncio.Task] = []

    # -- collaborator API --

    def on_snapshot_updated(self, callback: SnapshotCallback) -> None:
        self._snapshot_callbacks.append(callback)

    def on_startup_dependency_check(self, callback: StatusCallback) -> None:
        self._startup_callbacks.append(callback)

    def get_settings(self) -> Settings:
        with self._lock:
            return self._state.settings

    def set_settings(self, settings: Settings) -> Settings:
        """Apply and persist new settings; the timer picks them up on its next tick."""
        if settings.refresh_interval < MIN_REFRESH:
            settings = settings.model_copy(update={"refresh_interval": MIN_REFRESH})
        with self._lock:
            self._state = self._state.with_settings(settings)
            try:
                self.store.save(self._state)
            except PersistenceError as exc:
                log.warning("Settings not saved: %s", exc)
        return settings

    @property
    def snapshot(self) -> UsageSnapshot:
        with self._lock:
            return self._state.snapshot

    @property
    def status(self) -> str:
        return self._status

    def report(self) -> EngineStatus:
        with self._lock:
            state = self._state
        return EngineStatus(
            status=self._status,
            phase=self.phase.value,
            snapshot=state.snapshot,
            settings=state.settings,
            last_refreshed=self._last_refreshed,
        )

    def trigger_manual_refresh(self) -> None:
        """Queue a refresh; safe to call from any thread once started."""
        if self._loop is None or self._queue is None:
            raise RuntimeError("engine is not running")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, Trigger.MANUAL)

    # -- lifecycle --

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._startup_check(), name="usage-startup-check"),
            asyncio.create_task(self._owner(), name="usage-refresh"),
            asyncio.create_task(self._timer(), name="usage-timer"),
        ]
        log.info("Usage engine started (refresh every %s)", self.get_settings().refresh_interval)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._loop = None
        self._queue = None
        log.info("Usage engine stopped")

    async def _startup_check(self) -> None:
        try:
            status = await asyncio.to_thread(self._check_dependencies)
        except Exception:
            log.exception("Dependency check failed")
            return
        self.dependency_status = status
        log.info("Dependency check: %s", status)
        for callback in list(self._startup_callbacks):
            try:
                callback(status)
            except Exception:
                log.exception("Startup callback %r failed", callback)

    async def _owner(self) -> None:
        await self._safe_refresh()
        while True:
            trigger = await self._queue.get()
            # Triggers that piled up during a cycle collapse into one refresh.
            while not self._queue.empty():
                self._queue.get_nowait()
            log.debug("Refresh triggered by %s", trigger.value)
            await self._safe_refresh()

    async def _timer(self) -> None:
        while True:
            await asyncio.sleep(self.get_settings().refresh_interval.total_seconds())
            self._queue.put_nowait(Trigger.TIMER)

    async def _safe_refresh(self) -> None:
        try:
            await self.refresh_once()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("Refresh cycle failed")
            self.phase = Phase.IDLE
            self._publish(self.snapshot, f"Error: {exc}")

    # -- one cycle --

    async def refresh_once(self) -> UsageSnapshot | None:
        """Run one fetch-reconcile-persist-publish cycle.

        Returns the published snapshot, or None when both sources failed and
        the previous snapshot was kept.
        """
        self._publish(self.snapshot, REFRESHING_MESSAGE)
        try:
            self.phase = Phase.FETCHING
            primary, secondary = await asyncio.gather(
                asyncio.to_thread(_capture, self._fetch_primary),
                asyncio.to_thread(_capture, self._fetch_secondary),
            )

            self.phase = Phase.RECONCILING
            try:
                snapshot = reconcile(primary, secondary)
            except ReconciliationError as exc:
                log.info("Both usage sources failed: %s", exc)
                self.phase = Phase.PUBLISHING
                self._publish(self.snapshot, status_message(exc))
                return None

            status = updated_message()
            if isinstance(primary, Exception) and classify_error(primary) is ErrorClass.NOT_LOGGED_IN:
                status = NOT_LOGGED_IN_MESSAGE

            self.phase = Phase.PERSISTING
            published, save_error = await asyncio.to_thread(self._commit, snapshot)
            if save_error is not None:
                status = f"Error: {save_error}"
            self._last_refreshed = datetime.now(timezone.utc).isoformat()

            self.phase = Phase.PUBLISHING
            self._publish(published, status)
            return published
        finally:
            self.phase = Phase.IDLE

    def _commit(self, snapshot: UsageSnapshot) -> tuple[UsageSnapshot, PersistenceError | None]:
        with self._lock:
            self._state = self._state.apply(snapshot)
            try:
                self.store.save(self._state)
            except PersistenceError as exc:
                log.warning("Snapshot not saved: %s", exc)
                return self._state.snapshot, exc
            return self._state.snapshot, None

    def _publish(self, snapshot: UsageSnapshot, status: str) -> None:
        self._status = status
        for callback in list(self._snapshot_callbacks):
            try:
                callback(snapshot, status)
            except Exception:
                log.exception("Snapshot callback %r failed", callback)
