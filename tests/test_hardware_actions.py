"""Tests for the battery, CPU and GPU setters."""

import pytest

from backend_models import MinMax
from plugin_enums import BackendNotReady, StoreKey
from hardware_actions import HardwareActions

CPU_COUNT = 8


class TestBatterySetters:

    @pytest.mark.asyncio
    async def test_values_are_sent_and_echo_stored(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_charge_rate(1500) == 1500
        assert await panel.hardware.set_charge_mode("fast") == "fast"
        assert await panel.hardware.set_charge_limit(85) == 85

        assert transport.calls_to("BATTERY_set_charge_rate") == [[1500]]
        assert transport.calls_to("BATTERY_set_charge_mode") == [["fast"]]
        assert panel.store.get(StoreKey.CHARGE_RATE_BATT) == 1500
        assert panel.store.get(StoreKey.CHARGE_MODE_BATT) == "fast"
        assert panel.store.get(StoreKey.CHARGE_LIMIT_BATT) == 85

    @pytest.mark.asyncio
    async def test_none_unsets(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_charge_rate(None) is None

        assert transport.calls_to("BATTERY_unset_charge_rate") == [[]]
        assert transport.calls_to("BATTERY_set_charge_rate") == []
        assert panel.store.has(StoreKey.CHARGE_RATE_BATT)
        assert panel.store.get(StoreKey.CHARGE_RATE_BATT) is None

    @pytest.mark.asyncio
    async def test_refused_before_handshake(self, panel, transport):
        with pytest.raises(BackendNotReady):
            await panel.hardware.set_charge_limit(90)
        assert transport.calls_to("BATTERY_set_charge_limit") == []


class TestCpuSetters:

    @pytest.mark.asyncio
    async def test_single_cpu_offline_updates_count(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_cpu_online(3, False) is False

        assert transport.calls_to("CPU_set_online") == [[3, False]]
        statii = panel.store.get(StoreKey.ONLINE_STATUS_CPUS)
        assert statii[3] is False
        assert panel.store.get(StoreKey.ONLINE_CPUS) == CPU_COUNT - 1

    @pytest.mark.asyncio
    async def test_set_all_online(self, panel, transport):
        await panel.start()
        statii = [True, True, False, False, True, True, False, False]

        assert await panel.hardware.set_cpus_online(statii) == statii

        assert transport.calls_to("CPU_set_onlines") == [statii]
        assert panel.store.get(StoreKey.ONLINE_CPUS) == 4

    @pytest.mark.asyncio
    async def test_smt_off_takes_sibling_threads_offline(self, panel):
        await panel.start()

        statii = await panel.hardware.set_smt(False)

        assert statii == [True, False] * (CPU_COUNT // 2)
        assert panel.store.get(StoreKey.SMT_CPU) is False
        assert panel.store.get(StoreKey.ONLINE_CPUS) == CPU_COUNT // 2

    @pytest.mark.asyncio
    async def test_per_core_clock_limits(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_cpu_clock_limits(2, 1400, 2800) == (1400, 2800)

        assert transport.calls_to("CPU_set_clock_limits") == [[2, 1400, 2800]]
        clocks = panel.store.get(StoreKey.CLOCK_MIN_MAX_CPU)
        assert clocks[2] == MinMax(min=1400, max=2800)
        assert clocks[0] == MinMax(min=800, max=3500)

    @pytest.mark.asyncio
    async def test_per_core_clock_unset(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_cpu_clock_limits(0, None, None) == (None, None)

        assert transport.calls_to("CPU_unset_clock_limits") == [[0]]
        assert panel.store.get(StoreKey.CLOCK_MIN_MAX_CPU)[0] == MinMax(min=None, max=None)

    @pytest.mark.asyncio
    async def test_all_core_clock_limits(self, panel, transport):
        await panel.start()

        clocks = await panel.hardware.set_all_cpu_clock_limits(1000, 3000)

        assert [params[0] for params in transport.calls_to("CPU_set_clock_limits")] == list(range(CPU_COUNT))
        assert clocks == [MinMax(min=1000, max=3000)] * CPU_COUNT
        assert panel.store.get(StoreKey.CLOCK_MIN_CPU) == 1000
        assert panel.store.get(StoreKey.CLOCK_MAX_CPU) == 3000
        assert panel.store.get(StoreKey.CLOCK_MIN_MAX_CPU) == clocks

    @pytest.mark.asyncio
    async def test_all_core_clock_limits_need_known_limits(self, ready_session, backend, store, transport):
        hardware = HardwareActions(backend, store)

        assert await hardware.set_all_cpu_clock_limits(1000, 3000) is None
        assert transport.calls_to("CPU_set_clock_limits") == []
        assert not store.has(StoreKey.CLOCK_MIN_MAX_CPU)

    @pytest.mark.asyncio
    async def test_governors(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_cpu_governor(1, "performance") == "performance"
        assert panel.store.get(StoreKey.GOVERNOR_CPU)[1] == "performance"
        assert panel.store.get(StoreKey.GOVERNOR_CPU)[0] == "schedutil"

        governors = ["powersave"] * CPU_COUNT
        assert await panel.hardware.set_cpus_governor(governors) == governors
        assert transport.calls_to("CPU_set_governors") == [governors]
        assert panel.store.get(StoreKey.GOVERNOR_CPU) == governors


class TestGpuSetters:

    @pytest.mark.asyncio
    async def test_ppt(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_gpu_ppt(12, 10) == (12, 10)

        assert transport.calls_to("GPU_set_ppt") == [[12, 10]]
        assert panel.store.get(StoreKey.FAST_PPT_GPU) == 12
        assert panel.store.get(StoreKey.SLOW_PPT_GPU) == 10

    @pytest.mark.asyncio
    async def test_ppt_unset(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_gpu_ppt(None, None) == (None, None)

        assert transport.calls_to("GPU_unset_ppt") == [[]]
        assert panel.store.get(StoreKey.FAST_PPT_GPU) is None

    @pytest.mark.asyncio
    async def test_clock_limits(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_gpu_clock_limits(400, 1200) == (400, 1200)
        assert panel.store.get(StoreKey.CLOCK_MIN_GPU) == 400
        assert panel.store.get(StoreKey.CLOCK_MAX_GPU) == 1200

        await panel.hardware.set_gpu_clock_limits(None, None)
        assert transport.calls_to("GPU_unset_clock_limits") == [[]]
        assert panel.store.get(StoreKey.CLOCK_MAX_GPU) is None

    @pytest.mark.asyncio
    async def test_slow_memory(self, panel, transport):
        await panel.start()

        assert await panel.hardware.set_gpu_slow_memory(True) is True
        assert transport.calls_to("GPU_set_slow_memory") == [[True]]
        assert panel.store.get(StoreKey.SLOW_MEMORY_GPU) is True
