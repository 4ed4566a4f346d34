"""
PowerTools Periodic Poller
Refreshes the cheap battery values on a fixed timer and triggers a full
reload when the backend switched settings files behind the panel's back
"""
import asyncio
import logging
from typing import Callable, Optional

from plugin_consts import LOGGER_NAME
from plugin_enums import LogLevel, StoreKey
from plugin_utils import call_maybe_async, render_token

logger = logging.getLogger(LOGGER_NAME)


class PeriodicPoller:
    """Owns the single periodic timer of a panel session"""

    def __init__(self, session, backend, store, reload_engine, settings):
        self.session = session
        self.backend = backend
        self.store = store
        self.reload_engine = reload_engine
        self.settings = settings

    def setup(self, render_trigger: Callable[[str], None], interval: Optional[float] = None) -> asyncio.Task:
        """
        Arm the periodic timer, replacing any timer already running

        Args:
            render_trigger: Called with a unique token after every tick
            interval: Seconds between ticks (defaults to the configured period)

        Returns:
            The task running the timer
        """
        self.cancel()
        period = interval if interval is not None else self.settings.poll_interval
        self.session.periodic_task = asyncio.get_running_loop().create_task(
            self._run(render_trigger, period), name="powertools-periodicals")
        logger.debug(f"Periodic poller armed every {period}s")
        return self.session.periodic_task

    def cancel(self) -> None:
        """Cancel the timer if one is armed"""
        task = self.session.periodic_task
        self.session.periodic_task = None
        if task is not None and not task.done():
            task.cancel()

    async def stop(self) -> None:
        """Cancel the timer and wait until it has fully stopped"""
        task = self.session.periodic_task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def active(self) -> bool:
        return self.session.timer_armed

    async def _run(self, render_trigger: Callable[[str], None], period: float) -> None:
        while True:
            await asyncio.sleep(period)
            try:
                await self.tick()
            except Exception as e:
                logger.warning(f"Periodic refresh failed: {e}")
            try:
                await call_maybe_async(render_trigger, render_token("periodic"))
            except Exception as e:
                logger.error(f"Render trigger failed: {e}")

    async def tick(self) -> bool:
        """
        Poll the backend once

        Returns:
            True if the settings path changed and a full reload ran
        """
        if not self.session.usdpl_ready:
            return False
        periodicals = await self.backend.get_periodicals()
        self.store.set(StoreKey.CURRENT_BATT, periodicals.battery_current)
        self.store.set(StoreKey.CHARGE_NOW_BATT, periodicals.battery_charge_now)
        self.store.set(StoreKey.CHARGE_FULL_BATT, periodicals.battery_charge_full)
        self.store.set(StoreKey.CHARGE_POWER_BATT, periodicals.battery_charge_power)

        path = periodicals.settings_path
        old_path = self.store.get(StoreKey.PATH_GEN)
        if path is None:
            return False
        self.store.set(StoreKey.PATH_GEN, path)
        if path != old_path:
            self.backend.log(LogLevel.DEBUG, f"Frontend values reload triggered by path change: {old_path} -> {path}")
            await self.reload_engine.reload()
            return True
        return False
