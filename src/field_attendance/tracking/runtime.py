from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Coroutine, Optional, TypeVar

from ..common.datetime_utils import now_local
from ..core.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT,
    DEFAULT_INITIAL_SAMPLE_GRACE,
    DEFAULT_MAX_OPERATION_TIME,
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SAMPLE_INTERVAL,
    DEFAULT_TICK_PERIOD,
)
from ..core.exceptions import OperationTimeoutError
from ..locations.model import LocationSample
from .context import TrackingContext
from .gateway import AttendanceGateway
from .geolocation import DeviceFixSource, Position, PositionOptions
from .sampler import LocationSampler
from .state_machine import CheckOutResult, Coordinates, SessionStateMachine

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TrackingSettings:
    sample_interval: float = DEFAULT_SAMPLE_INTERVAL
    tick_period: float = DEFAULT_TICK_PERIOD
    retry_delay: float = DEFAULT_RETRY_DELAY
    initial_sample_grace: float = DEFAULT_INITIAL_SAMPLE_GRACE
    operation_timeout: float = DEFAULT_OPERATION_TIMEOUT
    max_operation_time: float = DEFAULT_MAX_OPERATION_TIME
    geolocation_timeout: float = DEFAULT_GEOLOCATION_TIMEOUT

    @staticmethod
    def from_dict(d: Optional[dict]) -> "TrackingSettings":
        d = d or {}
        defaults = TrackingSettings()
        return TrackingSettings(
            sample_interval=float(d.get("SAMPLE_INTERVAL", defaults.sample_interval)),
            tick_period=float(d.get("TICK_PERIOD", defaults.tick_period)),
            retry_delay=float(d.get("RETRY_DELAY", defaults.retry_delay)),
            initial_sample_grace=float(d.get("INITIAL_SAMPLE_GRACE", defaults.initial_sample_grace)),
            operation_timeout=float(d.get("OPERATION_TIMEOUT", defaults.operation_timeout)),
            max_operation_time=float(d.get("MAX_OPERATION_TIME", defaults.max_operation_time)),
            geolocation_timeout=float(d.get("GEOLOCATION_TIMEOUT", defaults.geolocation_timeout)),
        )


class TrackingRuntime:
    """Hosts every user's state machine and sampler on one event loop.

    The loop runs in a daemon thread; Flask request threads call the blocking
    methods below, which schedule a coroutine on the loop and wait for it.
    """

    def __init__(
        self,
        gateway: AttendanceGateway,
        settings: Optional[TrackingSettings] = None,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._gateway = gateway
        self.settings = settings or TrackingSettings()
        self._clock = clock
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._machines: dict[int, SessionStateMachine] = {}
        self._recovering: dict[int, asyncio.Task] = {}
        self._sources: dict[int, DeviceFixSource] = {}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            loop = asyncio.new_event_loop()
            ready = threading.Event()

            def _serve():
                asyncio.set_event_loop(loop)
                loop.call_soon(ready.set)
                loop.run_forever()

            self._loop = loop
            self._thread = threading.Thread(target=_serve, name="tracking-runtime", daemon=True)
            self._thread.start()
            ready.wait()
        logger.info("Tracking runtime started")

    def shutdown(self, timeout: float = 10.0) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is None or thread is None:
                return
            try:
                asyncio.run_coroutine_threadsafe(self._close_all(), loop).result(timeout)
            except concurrent.futures.TimeoutError:
                logger.warning("Timed out stopping samplers during shutdown")
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout)
            loop.close()
            self._loop = None
            self._thread = None
            self._machines.clear()
            self._recovering.clear()
            self._sources.clear()
        logger.info("Tracking runtime stopped")

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Run ``coro`` on the runtime loop and wait for its result."""

        if not self.running:
            self.start()
        if timeout is None:
            timeout = self.settings.max_operation_time
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise OperationTimeoutError(
                "The request took too long. It may still have been recorded; "
                "check your status before trying again."
            ) from None

    # per-user objects (loop thread only)

    def _source_for(self, user_id: int) -> DeviceFixSource:
        source = self._sources.get(user_id)
        if source is None:
            source = DeviceFixSource(clock=self._clock)
            self._sources[user_id] = source
        return source

    def _sampler_factory(self, user_id: int) -> Callable[[int, TrackingContext], LocationSampler]:
        s = self.settings

        def build(session_id: int, context: TrackingContext) -> LocationSampler:
            return LocationSampler(
                user_id=user_id,
                session_id=session_id,
                gateway=self._gateway,
                geolocation=self._source_for(user_id),
                context=context,
                interval=s.sample_interval,
                tick_period=s.tick_period,
                retry_delay=s.retry_delay,
                options=PositionOptions(timeout=s.geolocation_timeout),
                clock=self._clock,
            )

        return build

    async def _machine_for(self, user_id: int) -> SessionStateMachine:
        """The user's machine, recovered from the backend before anyone can use it."""

        machine = self._machines.get(user_id)
        if machine is not None:
            return machine

        task = self._recovering.get(user_id)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._recover_machine(user_id))
            self._recovering[user_id] = task
            task.add_done_callback(lambda _: self._recovering.pop(user_id, None))
        # Shielded so one caller timing out does not cancel recovery for the others.
        return await asyncio.shield(task)

    async def _recover_machine(self, user_id: int) -> SessionStateMachine:
        s = self.settings
        machine = SessionStateMachine(
            user_id,
            self._gateway,
            sampler_factory=self._sampler_factory(user_id),
            operation_timeout=s.operation_timeout,
            max_operation_time=s.max_operation_time,
            initial_sample_grace=s.initial_sample_grace,
            clock=self._clock,
        )
        try:
            await machine.recover()
        except Exception:
            await machine.close()
            raise
        self._machines[user_id] = machine
        return machine

    async def _close_all(self) -> None:
        for task in list(self._recovering.values()):
            task.cancel()
        for machine in list(self._machines.values()):
            await machine.close()

    # blocking API used by the controllers

    def check_in(self, user_id: int, odometer_reading, photo_ref=None, location: Optional[Coordinates] = None) -> int:
        async def _go():
            machine = await self._machine_for(int(user_id))
            return await machine.check_in(odometer_reading, photo_ref, location)

        return self.run(_go())

    def check_out(
        self, user_id: int, odometer_reading, photo_ref=None, location: Optional[Coordinates] = None
    ) -> CheckOutResult:
        async def _go():
            machine = await self._machine_for(int(user_id))
            return await machine.check_out(odometer_reading, photo_ref, location)

        return self.run(_go())

    def status(self, user_id: int) -> dict:
        async def _go():
            machine = await self._machine_for(int(user_id))
            await machine.reconcile()
            sampler = machine.sampler
            return {
                "state": machine.state.value,
                "session_id": machine.session_id,
                "check_in_time": machine.check_in_time,
                "checkout_in_progress": machine.is_checkout_in_progress(),
                "operation_in_progress": machine.operation_in_flight,
                "sampling": None
                if sampler is None
                else {
                    "active": sampler.active,
                    "permission_denied": sampler.permission_denied,
                    "last_sample_at": sampler.last_sample_at,
                    "samples_recorded": sampler.samples_recorded,
                },
            }

        return self.run(_go())

    def report_fix(self, user_id: int, latitude, longitude) -> Position:
        async def _go():
            return self._source_for(int(user_id)).report(latitude, longitude)

        return self.run(_go())

    def record_location(self, user_id: int, session_id: int, latitude, longitude) -> LocationSample:
        """Immediate sample pushed by the device for its open session."""

        async def _go():
            machine = await self._machine_for(int(user_id))
            sample = await machine.record_location(session_id, Coordinates(latitude, longitude))
            self._source_for(int(user_id)).report(sample.latitude, sample.longitude)
            return sample

        return self.run(_go())

    def report_fix_error(self, user_id: int, code, message: str = "") -> None:
        async def _go():
            self._source_for(int(user_id)).report_error(code, message)

        self.run(_go())

    def resume(self, user_id: int) -> bool:
        """Device came back to the foreground: force a sampler tick if one is running."""

        async def _go():
            machine = await self._machine_for(int(user_id))
            if machine.sampler is None:
                return False
            machine.sampler.poke()
            return True

        return self.run(_go())
