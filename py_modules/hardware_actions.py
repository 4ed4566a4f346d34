"""
Hardware Settings Actions
Battery, CPU and GPU edits from the panel controls. Every setter sends the
new value to the backend and stores what the backend echoes back, so the
store always shows the value that was actually applied.
"""
from typing import List, Optional, Tuple

from backend_models import MinMax
from plugin_enums import LogLevel, StoreKey
from plugin_utils import count_cpus
from reload_engine import sync_pleb_clock_to_advanced


class HardwareActions:

    def __init__(self, backend, store):
        self.backend = backend
        self.store = store

    # Battery

    async def set_charge_rate(self, rate: Optional[int]) -> Optional[int]:
        """Charge current in mA; None removes the limit"""
        value = await self.backend.set_battery_charge_rate(rate)
        self.store.set(StoreKey.CHARGE_RATE_BATT, value)
        return value

    async def set_charge_mode(self, mode: Optional[str]) -> Optional[str]:
        value = await self.backend.set_battery_charge_mode(mode)
        self.store.set(StoreKey.CHARGE_MODE_BATT, value)
        return value

    async def set_charge_limit(self, limit: Optional[float]) -> Optional[float]:
        value = await self.backend.set_battery_charge_limit(limit)
        self.store.set(StoreKey.CHARGE_LIMIT_BATT, value)
        return value

    # CPU

    def _store_online(self, statii: List[bool]) -> None:
        self.store.set(StoreKey.ONLINE_STATUS_CPUS, statii)
        self.store.set(StoreKey.ONLINE_CPUS, count_cpus(statii))

    async def set_cpu_online(self, index: int, online: bool) -> bool:
        value = await self.backend.set_cpu_online(index, online)
        statii = list(self.store.get(StoreKey.ONLINE_STATUS_CPUS) or [])
        if index < len(statii):
            statii[index] = value
            self._store_online(statii)
        return value

    async def set_cpus_online(self, statii: List[bool]) -> List[bool]:
        value = await self.backend.set_cpus_online(statii)
        self._store_online(value)
        return value

    async def set_smt(self, smt: bool) -> List[bool]:
        """Toggle SMT; the backend decides which CPUs end up online"""
        self.backend.log(LogLevel.DEBUG, f"SMT is now {smt}")
        statii = await self.backend.set_cpu_smt(smt)
        self.store.set(StoreKey.SMT_CPU, smt)
        self._store_online(statii)
        return statii

    async def set_cpu_clock_limits(self, index: int, min_clock: Optional[int],
                                   max_clock: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        """Clock limits of one core (advanced mode)"""
        applied = await self.backend.set_cpu_clock_limits(index, min_clock, max_clock)
        clocks = list(self.store.get(StoreKey.CLOCK_MIN_MAX_CPU) or [])
        if index < len(clocks):
            clocks[index] = MinMax(min=applied[0], max=applied[1])
            self.store.set(StoreKey.CLOCK_MIN_MAX_CPU, clocks)
        return applied

    async def set_all_cpu_clock_limits(self, min_clock: Optional[int],
                                       max_clock: Optional[int]) -> Optional[List[MinMax]]:
        """
        Apply the same clock limits to every core (simple mode)

        Returns:
            The per-core clocks now in the store, or None when the core
            count is not known yet
        """
        limits = self.store.limits()
        if limits is None:
            self.backend.log(LogLevel.WARN, "Cannot set CPU clocks before limits are known")
            return None
        applied: Tuple[Optional[int], Optional[int]] = (min_clock, max_clock)
        for index in range(limits.cpu.count):
            applied = await self.backend.set_cpu_clock_limits(index, min_clock, max_clock)
        self.store.set(StoreKey.CLOCK_MIN_CPU, applied[0])
        self.store.set(StoreKey.CLOCK_MAX_CPU, applied[1])
        return sync_pleb_clock_to_advanced(self.store)

    async def set_cpu_governor(self, index: int, governor: str) -> str:
        value = await self.backend.set_cpu_governor(index, governor)
        governors = list(self.store.get(StoreKey.GOVERNOR_CPU) or [])
        if index < len(governors):
            governors[index] = value
            self.store.set(StoreKey.GOVERNOR_CPU, governors)
        return value

    async def set_cpus_governor(self, governors: List[str]) -> List[str]:
        value = await self.backend.set_cpus_governor(governors)
        self.store.set(StoreKey.GOVERNOR_CPU, value)
        return value

    # GPU

    async def set_gpu_ppt(self, fast_ppt: Optional[int],
                          slow_ppt: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        applied = await self.backend.set_gpu_ppt(fast_ppt, slow_ppt)
        self.store.set(StoreKey.FAST_PPT_GPU, applied[0])
        self.store.set(StoreKey.SLOW_PPT_GPU, applied[1])
        return applied

    async def set_gpu_clock_limits(self, min_clock: Optional[int],
                                   max_clock: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        applied = await self.backend.set_gpu_clock_limits(min_clock, max_clock)
        self.store.set(StoreKey.CLOCK_MIN_GPU, applied[0])
        self.store.set(StoreKey.CLOCK_MAX_GPU, applied[1])
        return applied

    async def set_gpu_slow_memory(self, slow: bool) -> bool:
        value = await self.backend.set_gpu_slow_memory(slow)
        self.store.set(StoreKey.SLOW_MEMORY_GPU, value)
        return value
