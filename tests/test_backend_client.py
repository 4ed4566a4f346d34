"""Unit tests for the backend client and its USDPL transport."""

import asyncio
import json
import urllib.error
from unittest.mock import patch

import pytest

from backend_client import UsdplTransport
from backend_models import SettingsLimits, StoreMetadata, VariantInfo
from plugin_enums import BackendError, BackendNotReady, LogLevel


class TestHandshake:
    """Test readiness gating and the init handshake."""

    @pytest.mark.asyncio
    async def test_calls_before_handshake_are_refused(self, backend, transport):
        with pytest.raises(BackendNotReady):
            await backend.get_limits()
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_init_backend_does_not_require_ready(self, backend, transport):
        version = await backend.init_backend()

        assert version == "v1.5.0"
        assert backend.initialized
        assert transport.calls == [("V_INFO", [])]

    @pytest.mark.asyncio
    async def test_init_backend_failure(self, backend, transport):
        transport.responses["V_INFO"] = BackendError("connection refused")

        with pytest.raises(BackendError):
            await backend.init_backend()
        assert not backend.initialized

    @pytest.mark.asyncio
    async def test_unexpected_transport_error_is_wrapped(self, backend, transport, ready_session):
        transport.responses["GENERAL_get_name"] = KeyError("name")

        with pytest.raises(BackendError):
            await backend.get_general_settings_name()


class TestDecoding:
    """Test conversion of raw responses into typed values."""

    @pytest.mark.asyncio
    async def test_limits(self, backend, ready_session):
        limits = await backend.get_limits()

        assert isinstance(limits, SettingsLimits)
        assert limits.cpu.count == 8
        assert limits.cpu.cpus[0].clock_max_limits.max == 3500
        assert limits.gpu.memory_control_capable

    @pytest.mark.asyncio
    async def test_clock_limit_pair(self, backend, transport, ready_session):
        assert await backend.get_cpu_clock_limits(0) == (800, 3500)
        assert transport.calls_to("CPU_get_clock_limits") == [[0]]

    @pytest.mark.asyncio
    async def test_short_pair_is_an_error(self, backend, transport, ready_session):
        transport.responses["GPU_get_ppt"] = [15]

        with pytest.raises(BackendError):
            await backend.get_gpu_ppt()

    @pytest.mark.asyncio
    async def test_nullable_values(self, backend, transport, ready_session):
        transport.responses["BATTERY_current_now"] = [None]
        transport.responses["BATTERY_charge_now"] = []

        assert await backend.get_battery_current() is None
        assert await backend.get_battery_charge_now() is None

    @pytest.mark.asyncio
    async def test_required_value_missing(self, backend, transport, ready_session):
        transport.responses["GENERAL_get_path"] = []

        with pytest.raises(BackendError):
            await backend.get_general_settings_path()

    @pytest.mark.asyncio
    async def test_variants(self, backend, ready_session):
        assert await backend.get_all_setting_variants() == [VariantInfo(0, "Primary"), VariantInfo(1, "Alt")]
        assert await backend.get_current_setting_variant() == VariantInfo(0, "Primary")

    @pytest.mark.asyncio
    async def test_cpu_lists(self, backend, transport, ready_session):
        transport.responses["CPU_get_onlines"] = [True, True, False, False]

        assert await backend.get_cpus_online() == [True, True, False, False]
        assert await backend.get_cpus_governor() == ["schedutil"] * 8

    @pytest.mark.asyncio
    async def test_store_search_sends_integer_app_id(self, backend, transport, ready_session):
        results = await backend.search_store_by_app_id("42")

        assert transport.calls_to("WEB_search_by_app") == [[42]]
        assert len(results) == 1
        assert isinstance(results[0], StoreMetadata)
        assert results[0].tags == frozenset({"battery", "quiet"})

    @pytest.mark.asyncio
    async def test_store_search_null_result(self, backend, transport, ready_session):
        transport.responses["WEB_search_by_app"] = [None]

        assert await backend.search_store_by_app_id("1") == []


class TestCommands:
    """Test parameters of state-changing calls."""

    @pytest.mark.asyncio
    async def test_load_settings_without_variant_name(self, backend, transport, ready_session):
        assert await backend.load_general_settings("42", "Game", "0", None)
        assert transport.calls_to("GENERAL_load_settings") == [["42", "Game", "0"]]

    @pytest.mark.asyncio
    async def test_load_settings_with_variant_name(self, backend, transport, ready_session):
        await backend.load_general_settings("42", "Game", "1", "Alt")
        assert transport.calls_to("GENERAL_load_settings") == [["42", "Game", "1", "Alt"]]

    @pytest.mark.asyncio
    async def test_set_persistent_returns_backend_echo(self, backend, transport, ready_session):
        transport.responses["GENERAL_set_persistent"] = [False]

        assert await backend.set_general_persistent(True) is False
        assert transport.calls_to("GENERAL_set_persistent") == [[True]]

    @pytest.mark.asyncio
    async def test_messages_since(self, backend, transport, ready_session):
        transport.responses["MESSAGE_get"] = [json.dumps({"id": 3, "title": "Hi", "body": "Welcome"})]

        messages = await backend.get_messages(2)

        assert transport.calls_to("MESSAGE_get") == [[2]]
        assert messages[0].title == "Hi"
        assert messages[0].url is None

    @pytest.mark.asyncio
    async def test_nullable_setter_sends_value_or_unsets(self, backend, transport, ready_session):
        assert await backend.set_battery_charge_limit(85) == 85
        assert await backend.set_battery_charge_limit(None) is None

        assert transport.calls_to("BATTERY_set_charge_limit") == [[85]]
        assert transport.calls_to("BATTERY_unset_charge_limit") == [[]]

    @pytest.mark.asyncio
    async def test_list_setters_spread_parameters(self, backend, transport, ready_session):
        await backend.set_cpus_online([True, False])
        await backend.set_cpus_governor(["performance", "powersave"])

        assert transport.calls_to("CPU_set_onlines") == [[True, False]]
        assert transport.calls_to("CPU_set_governors") == [["performance", "powersave"]]

    @pytest.mark.asyncio
    async def test_clock_setters(self, backend, transport, ready_session):
        assert await backend.set_cpu_clock_limits(1, 1000, 3000) == (1000, 3000)
        assert await backend.set_cpu_clock_limits(1, None, None) == (None, None)
        assert await backend.set_gpu_clock_limits(None, None) == (None, None)

        assert transport.calls_to("CPU_set_clock_limits") == [[1, 1000, 3000]]
        assert transport.calls_to("CPU_unset_clock_limits") == [[1]]
        assert transport.calls_to("GPU_unset_clock_limits") == [[]]

    @pytest.mark.asyncio
    async def test_ppt_setter_short_echo_is_an_error(self, backend, transport, ready_session):
        transport.responses["GPU_set_ppt"] = [12]

        with pytest.raises(BackendError):
            await backend.set_gpu_ppt(12, 10)

    @pytest.mark.asyncio
    async def test_smt_returns_online_status(self, backend, transport, ready_session):
        transport.responses["CPU_set_smt"] = [True, 0, True, 0]

        assert await backend.set_cpu_smt(False) == [True, False, True, False]
        assert transport.calls_to("CPU_set_smt") == [[False]]


class TestLogSink:
    """Test forwarding of log lines to the backend."""

    @pytest.mark.asyncio
    async def test_log_not_forwarded_before_ready(self, backend, transport):
        backend.log(LogLevel.INFO, "hello")
        await asyncio.sleep(0)
        assert transport.calls_to("LOG") == []

    @pytest.mark.asyncio
    async def test_log_forwarded_when_ready(self, backend, transport, ready_session):
        backend.log(LogLevel.WARN, "careful")
        for _ in range(3):
            await asyncio.sleep(0)
        assert transport.calls_to("LOG") == [[4, "careful"]]

    @pytest.mark.asyncio
    async def test_log_sink_failure_is_contained(self, backend, transport, ready_session):
        transport.responses["LOG"] = BackendError("sink down")
        backend.log(LogLevel.ERROR, "oops")
        for _ in range(3):
            await asyncio.sleep(0)
        assert transport.calls_to("LOG") == [[5, "oops"]]

    def test_log_without_event_loop(self, backend, ready_session):
        backend.log(LogLevel.INFO, "no loop running")


class TestUsdplTransport:
    """Test the HTTP transport."""

    def test_url(self):
        transport = UsdplTransport("127.0.0.1", 44443)
        assert transport.url == "http://127.0.0.1:44443/usdpl/call"

    @pytest.mark.asyncio
    async def test_call_returns_response_list(self):
        transport = UsdplTransport()
        body = json.dumps({"id": 1, "response": ["v1.5.0"]}).encode("utf-8")

        with patch.object(transport, "_post", return_value=body) as post:
            assert await transport.call("V_INFO", []) == ["v1.5.0"]

        sent = json.loads(post.call_args[0][0])
        assert sent == {"id": 1, "function": "V_INFO", "parameters": []}

    @pytest.mark.asyncio
    async def test_call_rejects_mismatched_id(self):
        transport = UsdplTransport()
        body = json.dumps({"id": 99, "response": []}).encode("utf-8")

        with patch.object(transport, "_post", return_value=body):
            with pytest.raises(BackendError):
                await transport.call("V_INFO", [])

    @pytest.mark.asyncio
    async def test_call_rejects_malformed_body(self):
        transport = UsdplTransport()

        with patch.object(transport, "_post", return_value=b"not json"):
            with pytest.raises(BackendError):
                await transport.call("V_INFO", [])

    def test_unreachable_backend(self):
        transport = UsdplTransport()

        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused")):
            with pytest.raises(BackendError):
                transport._post(b"{}")
