"""Single-flight, memoizing cache for named configuration settings.

Report pages regularly need one numeric setting (for example the cost per
kilometre used to price mileage) and must not hit the backend on every
render.  :class:`SettingValueCache` keeps one cell per setting key::

    IDLE --read/refresh--> FETCHING --ok--> RESOLVED
                               |
                               +--error--> IDLE (value unchanged)

* The first :meth:`~SettingValueCache.read` of a key starts exactly one
  fetch; concurrent readers share it.  Later reads are served from memory.
* :meth:`~SettingValueCache.refresh` is debounced: calls within the quiet
  period collapse into one fetch that runs after the last call, and every
  caller of that window resolves when it completes.
* :meth:`~SettingValueCache.close` ends the cache's scope.  Results that
  arrive afterwards are dropped without touching any cell.

Fetch failures are logged and handed to the ``on_error`` callback; the
cache never raises them to readers and never retries on its own.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from .config import get_debounce_seconds
from .records import Setting

logger = logging.getLogger(__name__)

SettingFetcher = Callable[[str], Awaitable[Any]]
ErrorHandler = Callable[[str, Exception], None]


class SettingNotFoundError(LookupError):
    """The backend has no value for the requested setting key."""

    def __init__(self, key: str):
        super().__init__(f"Setting '{key}' not found")
        self.key = key


class SettingState(str, Enum):
    IDLE = 'idle'
    FETCHING = 'fetching'
    RESOLVED = 'resolved'


class Liveness:
    """Token shared by a cache and its fetches; dead once the scope closes."""

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        self._alive = False


@dataclass
class _SettingCell:
    value: Any = None
    has_value: bool = False
    state: SettingState = SettingState.IDLE
    requested: bool = False
    task: Optional[asyncio.Task] = None
    timer: Optional[asyncio.TimerHandle] = None
    waiters: List[asyncio.Future] = field(default_factory=list)


class SettingValueCache:
    """Per-key fetch-and-memoize cache for setting values.

    Args:
        fetch_setting: Async callable ``fetch_setting(key)`` returning a
            :class:`Setting`, a ``{"value": ...}`` mapping (optionally
            wrapped in a ``{"data": ...}`` envelope), a bare value, or
            ``None`` when the key does not exist.
        debounce_seconds: Quiet period for :meth:`refresh`; defaults to the
            configured window (0.3 s).
        on_error: Called as ``on_error(key, exc)`` for each failed fetch;
            exceptions it raises are logged, not propagated.
    """

    def __init__(
        self,
        fetch_setting: SettingFetcher,
        *,
        debounce_seconds: Optional[float] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self._fetch_setting = fetch_setting
        self._debounce = get_debounce_seconds() if debounce_seconds is None else debounce_seconds
        self._on_error = on_error
        self._cells: Dict[str, _SettingCell] = {}
        self._liveness = Liveness()

    @property
    def alive(self) -> bool:
        return self._liveness.alive

    @property
    def debounce_seconds(self) -> float:
        return self._debounce

    def peek(self, key: str, default: Any = None) -> Any:
        """Return the last resolved value without fetching."""
        cell = self._cells.get(key)
        if cell is None or not cell.has_value:
            return default
        return cell.value

    def state(self, key: str) -> SettingState:
        cell = self._cells.get(key)
        return cell.state if cell is not None else SettingState.IDLE

    def is_loading(self, key: str) -> bool:
        return self.state(key) is SettingState.FETCHING

    async def read(self, key: str, default: Any = None) -> Any:
        """Return the value for ``key``, fetching it on first use.

        Waits for any fetch of the key that is in flight, so concurrent
        readers all observe the same value.  Returns ``default`` while no
        fetch has succeeded.
        """
        cell = self._cells.setdefault(key, _SettingCell())
        if not cell.requested and self.alive:
            self._start_fetch(key, cell)
        task = cell.task
        if task is not None and not task.done():
            # Shielded: a cancelled reader must not cancel the shared fetch
            await asyncio.shield(task)
        return self.peek(key, default)

    async def refresh(self, key: str, default: Any = None) -> Any:
        """Fetch ``key`` again once the debounce window has been quiet.

        Each call restarts the window.  All callers of one window resolve
        together after the single resulting fetch completes.
        """
        if not self.alive:
            return self.peek(key, default)

        loop = asyncio.get_running_loop()
        cell = self._cells.setdefault(key, _SettingCell())
        waiter = loop.create_future()
        cell.waiters.append(waiter)
        if cell.timer is not None:
            cell.timer.cancel()
        cell.timer = loop.call_later(self._debounce, self._fire_refresh, key)
        logger.debug("Refresh of setting %s scheduled in %.3fs", key, self._debounce)

        await waiter
        return self.peek(key, default)

    def handle(self, key: str, default: Any = None) -> "CachedSetting":
        """Return a :class:`CachedSetting` for ``key``.

        Inside a running event loop the initial fetch is started right away;
        otherwise it starts on the first ``await handle.load()``.
        """
        setting = CachedSetting(self, key, default)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return setting
        cell = self._cells.setdefault(key, _SettingCell())
        if not cell.requested and self.alive:
            self._start_fetch(key, cell)
        return setting

    def close(self) -> None:
        """End the cache's scope.

        Pending refresh timers are cancelled and their callers released with
        the current value.  Fetches still in flight are left to finish; their
        results are discarded.
        """
        if not self.alive:
            return
        self._liveness.close()
        for cell in self._cells.values():
            if cell.timer is not None:
                cell.timer.cancel()
                cell.timer = None
            _release(cell.waiters)
            cell.waiters = []
        logger.debug("Setting cache closed with %d keys", len(self._cells))

    async def __aenter__(self) -> "SettingValueCache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _start_fetch(self, key: str, cell: _SettingCell) -> asyncio.Task:
        cell.requested = True
        cell.state = SettingState.FETCHING
        cell.task = asyncio.get_running_loop().create_task(
            self._run_fetch(key, cell, self._liveness)
        )
        return cell.task

    def _fire_refresh(self, key: str) -> None:
        cell = self._cells[key]
        cell.timer = None
        if not self.alive:
            return
        waiters, cell.waiters = cell.waiters, []
        previous = cell.task
        cell.requested = True
        cell.state = SettingState.FETCHING
        cell.task = asyncio.get_running_loop().create_task(
            self._refresh_after(key, cell, previous, waiters)
        )

    async def _refresh_after(
        self,
        key: str,
        cell: _SettingCell,
        previous: Optional[asyncio.Task],
        waiters: List[asyncio.Future],
    ) -> None:
        try:
            # One fetch per key at a time: queue behind the one in flight
            if previous is not None and not previous.done():
                await previous
            if self.alive:
                # the earlier fetch may have settled the cell meanwhile
                cell.state = SettingState.FETCHING
                await self._run_fetch(key, cell, self._liveness)
        finally:
            _release(waiters)

    async def _run_fetch(self, key: str, cell: _SettingCell, liveness: Liveness) -> None:
        logger.debug("Fetching setting %s", key)
        try:
            result = await self._fetch_setting(key)
            value = _extract_value(key, result)
        except Exception as exc:
            if not liveness.alive:
                logger.debug("Ignoring failure for setting %s after close: %s", key, exc)
                return
            cell.state = SettingState.IDLE
            logger.warning("Failed to fetch setting %s: %s", key, exc)
            if self._on_error is not None:
                try:
                    self._on_error(key, exc)
                except Exception:
                    logger.exception("Error handler failed for setting %s", key)
            return

        if not liveness.alive:
            logger.debug("Discarding setting %s fetched after close", key)
            return
        cell.value = value
        cell.has_value = True
        cell.state = SettingState.RESOLVED


class CachedSetting:
    """Per-key view of a :class:`SettingValueCache` for a report page.

    ``value`` and ``loading`` reflect the cache at the moment they are read.
    """

    def __init__(self, cache: SettingValueCache, key: str, default: Any = None) -> None:
        self.cache = cache
        self.key = key
        self.default = default

    @property
    def value(self) -> Any:
        return self.cache.peek(self.key, self.default)

    @property
    def loading(self) -> bool:
        return self.cache.is_loading(self.key)

    async def load(self) -> Any:
        return await self.cache.read(self.key, self.default)

    async def refresh(self) -> Any:
        return await self.cache.refresh(self.key, self.default)

    def __repr__(self) -> str:
        return f"CachedSetting(key={self.key!r}, value={self.value!r}, loading={self.loading})"


def use_cached_setting(cache: SettingValueCache, key: str, default: Any = None) -> CachedSetting:
    """Return the cached handle for ``key`` (see :meth:`SettingValueCache.handle`)."""
    return cache.handle(key, default)


def snapshot_fetcher(settings: Mapping[str, Setting]) -> SettingFetcher:
    """Build a fetcher that serves settings from an already loaded mapping."""

    async def fetch(key: str) -> Optional[Setting]:
        return settings.get(key)

    return fetch


def _extract_value(key: str, result: Any) -> Any:
    if isinstance(result, Setting):
        value = result.value
    elif isinstance(result, Mapping):
        payload = result.get('data', result)
        value = payload.get('value') if isinstance(payload, Mapping) else None
    else:
        value = result
    if value is None:
        raise SettingNotFoundError(key)
    return value


def _release(waiters: List[asyncio.Future]) -> None:
    for waiter in waiters:
        if not waiter.done():
            waiter.set_result(None)
