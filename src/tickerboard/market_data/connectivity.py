"""Connectivity monitor -- tracks whether the Binance API is reachable.

State machine over ConnectionState:

    Unchecked -> Connected
    Unchecked -> Disconnected(retrying)
    Disconnected(retrying) -> Connected
    Disconnected(retrying) -> Disconnected(retrying)   (retry_count + 1)
    Disconnected(retrying) -> Disconnected(fatal)      (retry_count >= max_retries)

A failed check below the retry limit schedules exactly one delayed retry
after ``reconnect_interval``. A fatal failure schedules nothing; the periodic
driver started by ``start()`` re-checks every ``health_check_interval`` while
disconnected, fatal or not.

Network errors, timeouts and non-success statuses share one failure path.
Every transition is pushed to the registered listeners as a full snapshot.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime

from tickerboard.config import ConnectivitySettings
from tickerboard.exchange.client import ExchangeClient
from tickerboard.logging import get_logger
from tickerboard.models import ConnectionState

logger = get_logger(__name__)

FATAL_ERROR_MESSAGE = "Fatal connection error"

StateListener = Callable[[ConnectionState], Awaitable[None]]


class ConnectivityMonitor:
    """Health checks with bounded retry and a periodic background re-check.

    Args:
        exchange: Client whose ``ping()`` is the liveness probe.
        settings: Retry limit, reconnect delay and periodic interval.
        listeners: Async callables receiving every new ConnectionState.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        settings: ConnectivitySettings,
        listeners: list[StateListener] | None = None,
    ) -> None:
        self._exchange = exchange
        self._settings = settings
        self._listeners: list[StateListener] = list(listeners or [])
        self._state = ConnectionState(max_retries=settings.max_retries)
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._retry_task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def state(self) -> ConnectionState:
        """Current connection snapshot (immutable)."""
        return self._state

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every state transition."""
        self._listeners.append(listener)

    def is_available(self) -> bool:
        """Whether the last health check succeeded. Never triggers a check."""
        return self._state.connected

    # ──────────────────────────────────────────────
    # Health check
    # ──────────────────────────────────────────────

    async def check_connection(self) -> bool:
        """Probe the liveness endpoint once and update state.

        Returns:
            True if the exchange answered, False otherwise. Never raises.
        """
        try:
            await self._exchange.ping()
        except Exception as exc:
            await self._handle_failure(exc)
            return False

        await self._update_state(connected=True, retry_count=0, last_error=None)
        return True

    async def _handle_failure(self, error: Exception) -> None:
        retries = self._state.retry_count + 1
        fatal = retries >= self._settings.max_retries
        message = str(error) or type(error).__name__

        await self._update_state(
            connected=False,
            retry_count=retries,
            last_error=FATAL_ERROR_MESSAGE if fatal else message,
        )

        if fatal:
            logger.error(
                "connection_check_fatal",
                retries=retries,
                max_retries=self._settings.max_retries,
                error=message,
            )
            return

        logger.warning(
            "connection_check_failed",
            attempt=retries,
            max_retries=self._settings.max_retries,
            retry_in=self._settings.reconnect_interval,
            error=message,
        )
        self._schedule_retry()

    def _schedule_retry(self) -> None:
        """Schedule one delayed re-check unless one is already waiting."""
        if self.retry_pending:
            return
        self._retry_task = asyncio.create_task(self._delayed_retry())

    async def _delayed_retry(self) -> None:
        await asyncio.sleep(self._settings.reconnect_interval)
        # Clear before re-checking so a new failure may schedule the next retry
        self._retry_task = None
        await self.check_connection()

    async def _update_state(self, **changes: object) -> None:
        previous = self._state
        self._state = replace(previous, last_check_time=datetime.now(), **changes)

        if previous.connected != self._state.connected:
            logger.info(
                "connection_state_changed",
                connected=self._state.connected,
                retry_count=self._state.retry_count,
            )

        for listener in self._listeners:
            try:
                await listener(self._state)
            except Exception:
                logger.warning("connection_listener_error", exc_info=True)

    # ──────────────────────────────────────────────
    # Periodic driver lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Begin the periodic background health check."""
        if self._running:
            logger.warning("connectivity_monitor_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._periodic_loop())
        logger.info(
            "connectivity_monitor_started",
            interval=self._settings.health_check_interval,
        )

    async def stop(self) -> None:
        """Stop the periodic driver and any pending delayed retry."""
        self._running = False
        for task in (self._task, self._retry_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._retry_task = None
        logger.info("connectivity_monitor_stopped")

    async def _periodic_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.health_check_interval)
            if not self._running:
                break
            try:
                await self._periodic_check()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("periodic_health_check_error", exc_info=True)

    async def _periodic_check(self) -> None:
        """One tick of the periodic driver: re-check only while disconnected."""
        if self._state.connected:
            return
        if self._settings.reset_retries_on_periodic and self._state.fatal:
            # Fresh retry episode; the check below publishes the new state
            self._state = replace(self._state, retry_count=0)
            logger.info("connection_retry_episode_reset")
        await self.check_connection()
