"""
Clock poller: minute-resolution matching of alarms against wall-clock time
"""

from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .logging_utils import get_logger, log_error
from .models import RingingSession
from .registry import AlarmRegistry
from .session import RingingSessionController

logger = get_logger(__name__)

# Job IDs
CLOCK_TICK_JOB_ID = "clock_tick"


class ClockPoller:
    """Checks the registry on a fixed cadence and hands due alarms to the controller"""

    def __init__(self, registry: AlarmRegistry, controller: RingingSessionController,
                 interval_s: float = 1.0, one_fire_per_minute: bool = True,
                 clock: Callable[[], datetime] = datetime.now):
        self.registry = registry
        self.controller = controller
        self.interval_s = interval_s
        self.one_fire_per_minute = one_fire_per_minute
        self._clock = clock
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._last_fire_minute: Optional[datetime] = None

    def tick(self, now: Optional[datetime] = None) -> Optional[RingingSession]:
        """
        Run one check.

        Returns:
            The session started by this tick, if any
        """
        now = now or self._clock()
        minute = now.replace(second=0, microsecond=0)
        current_time = minute.strftime("%H:%M")

        if self.controller.is_ringing:
            return None
        if self.one_fire_per_minute and self._last_fire_minute == minute:
            return None

        for alarm in self.registry.list():
            if not alarm.is_due(current_time):
                continue
            if alarm.last_fired_at == minute:
                continue

            logger.info(f"Alarm {alarm.id} due at {current_time}")
            alarm.last_fired_at = minute
            self._last_fire_minute = minute
            if alarm.snooze_until == current_time:
                alarm.snooze_until = None
            return self.controller.trigger(alarm)

        return None

    async def _tick_job(self) -> None:
        try:
            self.tick()
        except Exception as e:
            log_error(logger, None, e, {"job": CLOCK_TICK_JOB_ID})

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start ticking on the running event loop"""
        if self.running:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick_job,
            'interval',
            seconds=self.interval_s,
            id=CLOCK_TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        self._scheduler.start()
        logger.info(f"Clock poller started ({self.interval_s}s interval)")

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Clock poller stopped")
        self._scheduler = None
