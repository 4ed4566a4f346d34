"""
PowerTools Reload Engine
Full refresh of every tracked hardware and settings value from the backend
into the state store
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from backend_models import MinMax, SettingsLimits
from plugin_consts import LOGGER_NAME
from plugin_enums import LogLevel, StoreKey
from plugin_utils import count_cpus

logger = logging.getLogger(LOGGER_NAME)


def sync_pleb_clock_to_advanced(store) -> Optional[List[MinMax]]:
    """
    Fan the global CPU clock limits out to one entry per core

    Every core gets the same min/max taken from CLOCK_MIN_CPU/CLOCK_MAX_CPU;
    the core count comes from the stored SettingsLimits.

    Returns:
        The per-core list written to CLOCK_MIN_MAX_CPU, or None when no
        limits are known yet
    """
    limits: Optional[SettingsLimits] = store.limits()
    if limits is None:
        logger.debug("No CPU limits known yet, skipping per-core clock sync")
        return None
    min_clock = store.get(StoreKey.CLOCK_MIN_CPU)
    max_clock = store.get(StoreKey.CLOCK_MAX_CPU)
    clocks = [MinMax(min=min_clock, max=max_clock) for _ in range(limits.cpu.count)]
    store.set(StoreKey.CLOCK_MIN_MAX_CPU, clocks)
    return clocks


class ReloadEngine:
    """Issues the reload batch and writes each result into the store"""

    def __init__(self, session, backend, store, settings):
        self.session = session
        self.backend = backend
        self.store = store
        self.settings = settings
        self.reload_count = 0

    async def reload(self) -> None:
        """Refresh the whole store; a no-op until the backend is ready"""
        if not self.session.usdpl_ready:
            return
        self.reload_count += 1
        backend = self.backend

        limits_job = asyncio.ensure_future(self._resolve("limits", backend.get_limits(), self._on_limits))

        jobs = [
            limits_job,
            self._resolve("battery current", backend.get_battery_current(),
                          self._setter(StoreKey.CURRENT_BATT)),
            self._resolve("battery charge rate", backend.get_battery_charge_rate(),
                          self._setter(StoreKey.CHARGE_RATE_BATT)),
            self._resolve("battery charge mode", backend.get_battery_charge_mode(),
                          self._setter(StoreKey.CHARGE_MODE_BATT)),
            self._resolve("battery charge limit", backend.get_battery_charge_limit(),
                          self._setter(StoreKey.CHARGE_LIMIT_BATT)),
            self._resolve("battery charge now", backend.get_battery_charge_now(),
                          self._setter(StoreKey.CHARGE_NOW_BATT)),
            self._resolve("battery charge full", backend.get_battery_charge_full(),
                          self._setter(StoreKey.CHARGE_FULL_BATT)),
            self._resolve("battery charge design", backend.get_battery_charge_design(),
                          self._setter(StoreKey.CHARGE_DESIGN_BATT)),
            self._resolve("battery charge power", backend.get_battery_charge_power(),
                          self._setter(StoreKey.CHARGE_POWER_BATT)),

            self._resolve("cpus online", backend.get_cpus_online(), self._on_cpus_online),
            self._resolve("cpu smt", backend.get_cpu_smt(), self._setter(StoreKey.SMT_CPU)),
            self._cpu_clock_limits(limits_job),
            self._resolve("cpu governors", backend.get_cpus_governor(), self._on_governors),

            self._resolve("gpu ppt", backend.get_gpu_ppt(),
                          self._pair_setter(StoreKey.FAST_PPT_GPU, StoreKey.SLOW_PPT_GPU)),
            self._resolve("gpu clock limits", backend.get_gpu_clock_limits(),
                          self._pair_setter(StoreKey.CLOCK_MIN_GPU, StoreKey.CLOCK_MAX_GPU)),
            self._resolve("gpu slow memory", backend.get_gpu_slow_memory(),
                          self._setter(StoreKey.SLOW_MEMORY_GPU)),

            self._resolve("persistent", backend.get_general_persistent(), self._setter(StoreKey.PERSISTENT_GEN)),
            self._resolve("settings name", backend.get_general_settings_name(), self._setter(StoreKey.NAME_GEN)),
            self._resolve("settings path", backend.get_general_settings_path(), self._setter(StoreKey.PATH_GEN)),
            self._resolve("variants", backend.get_all_setting_variants(), self._setter(StoreKey.VARIANTS_GEN)),
            self._resolve("current variant", backend.get_current_setting_variant(),
                          self._setter(StoreKey.CURRENT_VARIANT_GEN)),

            self._resolve("backend info", backend.get_info(), self._setter(StoreKey.BACKEND_INFO)),
            self._resolve("gpu driver", backend.get_driver_provider_name("gpu"), self._setter(StoreKey.DRIVER_INFO)),

            self._resolve("messages", backend.get_messages(None), self._setter(StoreKey.MESSAGE_LIST)),
        ]

        # Cached store results survive reloads; only search when there are none
        if not self.store.get(StoreKey.STORE_RESULTS):
            jobs.append(self._resolve("store results", backend.search_store_by_app_id(self.settings.main_app_id),
                                      self._setter(StoreKey.STORE_RESULTS)))

        await asyncio.gather(*jobs)
        self._check_current_variant()

    async def _resolve(self, label: str, request: Awaitable, on_value: Callable[[Any], None]) -> bool:
        """Await one backend request and hand its value to on_value; failures only get logged"""
        try:
            value = await request
        except Exception as e:
            logger.warning(f"Reload: {label} request failed: {e}")
            return False
        try:
            on_value(value)
        except Exception as e:
            logger.error(f"Reload: cannot store {label}: {e}")
            return False
        return True

    def _setter(self, key: StoreKey) -> Callable[[Any], None]:
        def write(value):
            self.store.set(key, value)
        return write

    def _pair_setter(self, first: StoreKey, second: StoreKey) -> Callable[[Any], None]:
        def write(pair):
            self.store.set(first, pair[0])
            self.store.set(second, pair[1])
        return write

    def _on_limits(self, limits: SettingsLimits) -> None:
        self.store.set(StoreKey.LIMITS_INFO, limits)
        logger.debug(f"Got limits {limits}")

    def _on_cpus_online(self, statii: List[bool]) -> None:
        self.store.set(StoreKey.ONLINE_STATUS_CPUS, statii)
        self.store.set(StoreKey.ONLINE_CPUS, count_cpus(statii))

    def _on_governors(self, governors: List[str]) -> None:
        self.store.set(StoreKey.GOVERNOR_CPU, governors)
        self.backend.log(LogLevel.INFO, f"Governors from backend {','.join(governors)}")

    async def _cpu_clock_limits(self, limits_job: asyncio.Future) -> None:
        stored = await self._resolve("cpu clock limits", self.backend.get_cpu_clock_limits(0),
                                     self._pair_setter(StoreKey.CLOCK_MIN_CPU, StoreKey.CLOCK_MAX_CPU))
        if not stored:
            return
        # The per-core fan-out is sized by the limits from this same batch
        await asyncio.wait({limits_job})
        try:
            sync_pleb_clock_to_advanced(self.store)
        except Exception as e:
            logger.error(f"Reload: per-core clock sync failed: {e}")

    def _check_current_variant(self) -> None:
        current = self.store.current_variant()
        variants = self.store.variants()
        if current is not None and variants and current.id not in {variant.id for variant in variants}:
            logger.warning(f"Current variant {current.id} ({current.name}) is not in the variant list")
