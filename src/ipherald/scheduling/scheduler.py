"""Scheduler that checks the external address and announces changes.

The scheduler owns the run loop. The in-memory run record and the current
address belong to the task running ``run()``; collaborators are pure storage
and I/O. Cycles are strictly serialized: a timer fire, a wake event or the
stop signal is serviced one at a time, and the stop signal never interrupts a
cycle in flight.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ipherald.errors import HeraldError, log_error
from ipherald.scheduling.timing import compute_next_run
from ipherald.scheduling.types import (
    IPAddress,
    NextRun,
    Schedule,
    SchedulerState,
    Trigger,
)

if TYPE_CHECKING:
    from ipherald.providers.base import NotificationChannel
    from ipherald.stores.base import (
        AddressSource,
        AddressStore,
        Clock,
        RunHistoryStore,
    )

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_FORMAT = "{address}"


class _Timer:
    """One-shot timer; ``stop()`` returns only once the timer can no longer fire."""

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None

    def arm(self, delay: float) -> asyncio.Task[None]:
        self._task = asyncio.create_task(asyncio.sleep(max(delay, 0.0)))
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def _cancel(*tasks: asyncio.Task) -> None:
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


def _completed(task: asyncio.Task) -> bool:
    return task.done() and not task.cancelled()


class Scheduler:
    """Runs address checks on a fixed grid and on request.

    Example:
        scheduler = Scheduler(
            config.schedule,
            run_history=TextFileTimeStore(config.ran_file),
            address_source=PlainTextAddressSource(config.ip_service_url),
            address_cache=TextFileAddressStore(config.ip_cache_file),
            channel=TelegramChannel(token),
            clock=SystemClock(),
        )
        await scheduler.run(stop_event)
    """

    def __init__(
        self,
        schedule: Schedule,
        *,
        run_history: RunHistoryStore,
        address_source: AddressSource,
        address_cache: AddressStore,
        channel: NotificationChannel,
        clock: Clock,
        message_format: str = DEFAULT_MESSAGE_FORMAT,
        default_destination: str | None = None,
    ):
        self._schedule = schedule
        self._run_history = run_history
        self._address_source = address_source
        self._address_cache = address_cache
        self._channel = channel
        self._clock = clock
        self._message_format = message_format
        self._default_destination = default_destination

        self._last_run: datetime | None = None
        self._address: IPAddress | None = None
        self._state = SchedulerState.IDLE
        self._timer = _Timer()
        self._running = False

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def address(self) -> IPAddress | None:
        return self._address

    @property
    def last_run(self) -> datetime | None:
        return self._last_run

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self, stop: asyncio.Event) -> None:
        """Run until ``stop`` is set."""
        if self._running:
            raise RuntimeError("scheduler is already running")
        self._running = True
        logger.info(
            "scheduler_started",
            extra={
                "schedule.offset": self._schedule.offset.isoformat(),
                "schedule.interval": str(self._schedule.interval),
            },
        )
        wake = self._channel.wake_events()
        trigger = Trigger.STARTUP
        try:
            await self._startup()
            while True:
                self._state = SchedulerState.EVALUATING
                now = self._clock.now()
                next_run, run_now, _ = await self.next_run(now)

                if run_now:
                    logger.info("scheduled_run_missed_running_now")
                    await self._execute(now, trigger)
                trigger = Trigger.TIMER

                self._state = SchedulerState.IDLE
                event, destination = await self._wait(next_run, wake, stop)
                if event is None:
                    break
                if event is Trigger.WAKE:
                    await self._execute(self._clock.now(), event, destination)
                else:
                    await self._execute(next_run, event)
        finally:
            await self._shutdown()

    async def _startup(self) -> None:
        # Warm the address from the cache so the first cycle can detect a change
        try:
            await self.resolve_address(cached=True)
        except HeraldError as e:
            log_error(logger, "ip_cache_unavailable", e)
        except Exception:
            logger.exception("ip_cache_unavailable")
        try:
            await self._channel.open()
        except HeraldError as e:
            log_error(logger, "channel_open_failed", e)
        except Exception:
            logger.exception("channel_open_failed")

    async def _shutdown(self) -> None:
        logger.info("scheduler_exiting")
        await self._timer.stop()
        try:
            await self._channel.close()
        except HeraldError as e:
            log_error(logger, "channel_close_failed", e)
        except Exception:
            logger.exception("channel_close_failed")
        self._state = SchedulerState.STOPPED
        self._running = False

    async def _wait(
        self,
        next_run: datetime,
        wake: asyncio.Queue[str],
        stop: asyncio.Event,
    ) -> tuple[Trigger | None, str | None]:
        """Block until the timer fires, a wake event arrives or ``stop`` is set.

        Returns (None, None) on stop. When several are ready at once the
        priority is stop, then wake, then timer.
        """
        delay = (next_run - self._clock.now()).total_seconds()
        logger.debug(
            "timer_armed",
            extra={"schedule.next_run": next_run.isoformat(), "timer.delay_s": delay},
        )
        timer = self._timer.arm(delay)
        waker = asyncio.create_task(wake.get())
        stopper = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait(
                {timer, waker, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            await self._timer.stop()
            await _cancel(waker, stopper)

        if _completed(stopper):
            return None, None
        if _completed(waker):
            return Trigger.WAKE, waker.result()
        return Trigger.TIMER, None

    async def _execute(
        self,
        started_at: datetime,
        trigger: Trigger,
        destination: str | None = None,
    ) -> None:
        self._state = SchedulerState.EXECUTING
        logger.info(
            "cycle_triggered",
            extra={
                "schedule.trigger": trigger.value,
                "schedule.started_at": started_at.isoformat(),
                "messaging.chat_id": destination,
            },
        )
        try:
            await self.run_cycle(started_at, cached=False, destination=destination)
        except Exception:
            logger.exception("cycle_failed")
        finally:
            self._state = SchedulerState.IDLE

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    async def load_last_run(self) -> datetime | None:
        """Get the last run instant, loading it from the store once.

        Returns None when the record cannot be read.
        """
        if self._last_run is None:
            try:
                self._last_run = await self._run_history.get()
            except HeraldError as e:
                log_error(logger, "run_record_unavailable", e)
                return None
            except Exception:
                logger.exception("run_record_unavailable")
                return None
        return self._last_run

    async def next_run(self, now: datetime) -> NextRun:
        last_run = await self.load_last_run()
        result = compute_next_run(
            now, self._schedule.offset, self._schedule.interval, last_run
        )
        logger.debug(
            "next_run_computed",
            extra={
                "schedule.now": now.isoformat(),
                "schedule.last_run": last_run.isoformat() if last_run else None,
                "schedule.next_run": result.next_run.isoformat(),
                "schedule.run_now": result.run_now,
                "schedule.was_advanced": result.was_advanced,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(
        self,
        started_at: datetime,
        *,
        cached: bool,
        destination: str | None = None,
    ) -> bool:
        """Check the address and announce it if needed.

        The run record is always updated to ``started_at``, even when the
        cycle fails part way.

        Returns:
            True if a message was sent.
        """
        try:
            return await self._cycle(cached, destination)
        finally:
            await self._record_run(started_at)

    async def _cycle(self, cached: bool, destination: str | None) -> bool:
        # Reopen every cycle to make sure we're connected
        try:
            await self._channel.open()
        except HeraldError as e:
            log_error(logger, "channel_open_failed", e)
            if not e.is_recoverable:
                return False

        previous = self._address
        try:
            address = await self.resolve_address(cached)
        except HeraldError as e:
            log_error(logger, "ip_address_unavailable", e)
            return False

        notify = False
        if destination:
            logger.info("replying_to_request", extra={"messaging.chat_id": destination})
            notify = True
        if previous != address:
            logger.info(
                "ip_address_changed",
                extra={
                    "ip.previous": str(previous) if previous else None,
                    "ip.address": str(address),
                },
            )
            notify = True
        if not notify:
            logger.info("ip_address_unchanged", extra={"ip.address": str(address)})
            return False
        return await self._notify(address, destination)

    async def resolve_address(self, cached: bool) -> IPAddress:
        """Get the current address.

        With ``cached`` the in-memory value, or failing that the address
        store, is used. Otherwise a live lookup is made and written back to
        the store on a best-effort basis.

        Raises:
            HeraldError: If the address cannot be resolved. The in-memory
                address is left unchanged.
        """
        if not cached:
            address = await self._address_source.get()
            self._address = address
            try:
                await self._address_cache.put(address)
            except HeraldError as e:
                log_error(logger, "ip_cache_write_failed", e)
            return address
        if self._address is None:
            self._address = await self._address_cache.get()
        return self._address

    async def _notify(self, address: IPAddress, destination: str | None) -> bool:
        target = destination or self._default_destination
        if not target:
            logger.error(
                "no_destination_configured", extra={"ip.address": str(address)}
            )
            return False

        text = self._message_format.format(address=address)
        try:
            await self._channel.send(target, text)
        except HeraldError as e:
            log_error(logger, "message_send_failed", e)
            return False
        logger.info(
            "ip_address_sent",
            extra={"messaging.chat_id": target, "ip.address": str(address)},
        )
        return True

    async def _record_run(self, started_at: datetime) -> None:
        self._last_run = started_at
        try:
            await self._run_history.put(started_at)
        except HeraldError as e:
            log_error(logger, "run_record_write_failed", e)
