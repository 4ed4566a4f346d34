"""
PowerTools Backend Client
Async wrappers around every capability of the native PowerTools backend.

The backend speaks USDPL: each call is an HTTP POST carrying the function
name and a list of primitive parameters, answered with a list of primitive
results. Structured values travel as JSON strings inside that list.
"""
import asyncio
import itertools
import json
import logging
import urllib.error
import urllib.request
from typing import Any, List, Optional, Tuple

from backend_models import Message, Periodicals, SettingsLimits, StoreMetadata, VariantInfo
from plugin_consts import BACKEND_CALL_PATH, BACKEND_HOST, BACKEND_PORT, LOGGER_NAME
from plugin_enums import BackendError, BackendNotReady, LogLevel
from plugin_utils import decode_json_list, decode_json_primitive

logger = logging.getLogger(LOGGER_NAME)

_LOCAL_LEVELS = {
    LogLevel.TRACE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class UsdplTransport:
    """HTTP transport to the backend's USDPL endpoint"""

    def __init__(self, host: str = BACKEND_HOST, port: int = BACKEND_PORT, timeout: Optional[float] = None):
        self.url = f"http://{host}:{port}{BACKEND_CALL_PATH}"
        self.timeout = timeout
        self._ids = itertools.count(1)

    async def call(self, function: str, params: List[Any]) -> List[Any]:
        """Invoke a backend function and return its raw response list"""
        call_id = next(self._ids)
        payload = json.dumps({"id": call_id, "function": function, "parameters": params}).encode("utf-8")
        loop = asyncio.get_running_loop()
        body = await loop.run_in_executor(None, self._post, payload)
        try:
            data = json.loads(body)
        except ValueError as e:
            raise BackendError(f"{function}: malformed response: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("response"), list):
            raise BackendError(f"{function}: unexpected response shape")
        if data.get("id") not in (None, call_id):
            raise BackendError(f"{function}: response id {data.get('id')} does not match call {call_id}")
        return data["response"]

    def _post(self, payload: bytes) -> bytes:
        request = urllib.request.Request(
            self.url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            if self.timeout is None:
                response = urllib.request.urlopen(request)
            else:
                response = urllib.request.urlopen(request, timeout=self.timeout)
            with response:
                return response.read()
        except urllib.error.HTTPError as e:
            raise BackendError(f"HTTP {e.code} from {self.url}") from e
        except (urllib.error.URLError, OSError) as e:
            raise BackendError(f"Cannot reach backend at {self.url}: {e}") from e


class BackendClient:
    """Every backend capability as an awaitable; owns the init handshake"""

    def __init__(self, transport, session):
        self.transport = transport
        self.session = session
        self._initialized = False
        self._pending_logs = set()

    # Plumbing

    async def init_backend(self) -> str:
        """
        Perform the one-time handshake with the backend

        Returns:
            The backend version string

        Raises:
            BackendError: if the backend cannot be reached
        """
        info = await self._call("V_INFO", require_ready=False)
        version = self._required("V_INFO", info)
        if not self._initialized:
            self._initialized = True
            logger.info(f"Connected to PowerTools backend {version}")
        return version

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def _call(self, function: str, *params, require_ready: bool = True) -> List[Any]:
        if require_ready and not self.session.usdpl_ready:
            raise BackendNotReady(f"{function} called before backend handshake")
        try:
            return await self.transport.call(function, list(params))
        except BackendError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise BackendError(f"{function} failed: {e}") from e

    @staticmethod
    def _required(function: str, response: List[Any]) -> Any:
        if not response or response[0] is None:
            raise BackendError(f"{function} returned no value")
        return decode_json_primitive(response[0])

    @staticmethod
    def _nullable(response: List[Any]) -> Any:
        if not response:
            return None
        return decode_json_primitive(response[0])

    @staticmethod
    def _pair(function: str, response: List[Any]) -> Tuple[Any, Any]:
        if len(response) < 2:
            raise BackendError(f"{function} returned {len(response)} values, expected 2")
        return response[0], response[1]

    async def _bool(self, function: str, *params) -> bool:
        return bool(self._required(function, await self._call(function, *params)))

    # Logging sink

    def log(self, level: LogLevel, message: str) -> None:
        """Log locally and forward to the backend log; never raises"""
        logger.log(_LOCAL_LEVELS.get(level, logging.INFO), message)
        if not self.session.usdpl_ready:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._send_log(level, message))
        self._pending_logs.add(task)
        task.add_done_callback(self._pending_logs.discard)

    @property
    def pending_logs(self) -> int:
        return len(self._pending_logs)

    async def close(self) -> None:
        """Cancel log forwarding still in flight and wait for it to stop"""
        tasks = [task for task in self._pending_logs if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending_logs.clear()

    async def _send_log(self, level: LogLevel, message: str) -> None:
        try:
            await self._call("LOG", int(level), message)
        except BackendError as e:
            logger.debug(f"Backend log sink unavailable: {e}")

    # Info

    async def get_info(self) -> str:
        return str(self._required("V_INFO", await self._call("V_INFO")))

    async def get_driver_provider_name(self, domain: str) -> str:
        return str(self._required("GENERAL_get_provider", await self._call("GENERAL_get_provider", domain)))

    async def get_limits(self) -> SettingsLimits:
        return SettingsLimits.from_dict(self._required("GENERAL_get_limits", await self._call("GENERAL_get_limits")))

    async def get_periodicals(self) -> Periodicals:
        response = await self._call("GENERAL_get_periodicals")
        return Periodicals.from_dict(self._required("GENERAL_get_periodicals", response))

    async def get_messages(self, since: Optional[int] = None) -> List[Message]:
        params = [] if since is None else [since]
        response = await self._call("MESSAGE_get", *params)
        return [Message.from_dict(item) for item in decode_json_list(response)]

    async def dismiss_message(self, message_id: int) -> bool:
        return await self._bool("MESSAGE_dismiss", message_id)

    # Battery

    async def get_battery_current(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_current_now"))

    async def get_battery_charge_rate(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_get_charge_rate"))

    async def get_battery_charge_mode(self) -> Optional[str]:
        return self._nullable(await self._call("BATTERY_get_charge_mode"))

    async def get_battery_charge_limit(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_get_charge_limit"))

    async def get_battery_charge_now(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_charge_now"))

    async def get_battery_charge_full(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_charge_full"))

    async def get_battery_charge_design(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_charge_design"))

    async def get_battery_charge_power(self) -> Optional[float]:
        return self._nullable(await self._call("BATTERY_charge_power"))

    async def _set_or_unset(self, setter: str, unsetter: str, value: Any) -> Any:
        """None unsets the value on the backend; otherwise returns the echoed value"""
        if value is None:
            await self._call(unsetter)
            return None
        return self._nullable(await self._call(setter, value))

    async def set_battery_charge_rate(self, rate: Optional[int]) -> Optional[int]:
        return await self._set_or_unset("BATTERY_set_charge_rate", "BATTERY_unset_charge_rate", rate)

    async def set_battery_charge_mode(self, mode: Optional[str]) -> Optional[str]:
        return await self._set_or_unset("BATTERY_set_charge_mode", "BATTERY_unset_charge_mode", mode)

    async def set_battery_charge_limit(self, limit: Optional[float]) -> Optional[float]:
        return await self._set_or_unset("BATTERY_set_charge_limit", "BATTERY_unset_charge_limit", limit)

    # CPU

    async def get_cpus_online(self) -> List[bool]:
        return [bool(status) for status in await self._call("CPU_get_onlines")]

    async def get_cpu_smt(self) -> bool:
        return await self._bool("CPU_get_smt")

    async def get_cpu_clock_limits(self, index: int) -> Tuple[Optional[int], Optional[int]]:
        return self._pair("CPU_get_clock_limits", await self._call("CPU_get_clock_limits", index))

    async def get_cpus_governor(self) -> List[str]:
        return [str(governor) for governor in await self._call("CPU_get_governors")]

    async def set_cpu_online(self, index: int, online: bool) -> bool:
        return await self._bool("CPU_set_online", index, online)

    async def set_cpus_online(self, statii: List[bool]) -> List[bool]:
        return [bool(status) for status in await self._call("CPU_set_onlines", *statii)]

    async def set_cpu_smt(self, smt: bool) -> List[bool]:
        """Toggle SMT; the backend answers with the new online status of every CPU"""
        return [bool(status) for status in await self._call("CPU_set_smt", smt)]

    async def set_cpu_clock_limits(self, index: int, min_clock: Optional[int],
                                   max_clock: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        """Both clocks None unsets the limits of that CPU"""
        if min_clock is None and max_clock is None:
            await self._call("CPU_unset_clock_limits", index)
            return None, None
        return self._pair("CPU_set_clock_limits",
                          await self._call("CPU_set_clock_limits", index, min_clock, max_clock))

    async def set_cpu_governor(self, index: int, governor: str) -> str:
        return str(self._required("CPU_set_governor", await self._call("CPU_set_governor", index, governor)))

    async def set_cpus_governor(self, governors: List[str]) -> List[str]:
        return [str(governor) for governor in await self._call("CPU_set_governors", *governors)]

    # GPU

    async def get_gpu_ppt(self) -> Tuple[Optional[int], Optional[int]]:
        return self._pair("GPU_get_ppt", await self._call("GPU_get_ppt"))

    async def get_gpu_clock_limits(self) -> Tuple[Optional[int], Optional[int]]:
        return self._pair("GPU_get_clock_limits", await self._call("GPU_get_clock_limits"))

    async def get_gpu_slow_memory(self) -> Optional[int]:
        return self._nullable(await self._call("GPU_get_slow_memory"))

    async def set_gpu_ppt(self, fast_ppt: Optional[int], slow_ppt: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        """Both values None unsets the power limits"""
        if fast_ppt is None and slow_ppt is None:
            await self._call("GPU_unset_ppt")
            return None, None
        return self._pair("GPU_set_ppt", await self._call("GPU_set_ppt", fast_ppt, slow_ppt))

    async def set_gpu_clock_limits(self, min_clock: Optional[int],
                                   max_clock: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
        if min_clock is None and max_clock is None:
            await self._call("GPU_unset_clock_limits")
            return None, None
        return self._pair("GPU_set_clock_limits", await self._call("GPU_set_clock_limits", min_clock, max_clock))

    async def set_gpu_slow_memory(self, slow: bool) -> bool:
        return await self._bool("GPU_set_slow_memory", slow)

    # General

    async def get_general_persistent(self) -> bool:
        return await self._bool("GENERAL_get_persistent")

    async def set_general_persistent(self, persistent: bool) -> bool:
        return await self._bool("GENERAL_set_persistent", persistent)

    async def get_general_settings_name(self) -> str:
        return str(self._required("GENERAL_get_name", await self._call("GENERAL_get_name")))

    async def get_general_settings_path(self) -> str:
        return str(self._required("GENERAL_get_path", await self._call("GENERAL_get_path")))

    async def get_all_setting_variants(self) -> List[VariantInfo]:
        response = await self._call("GENERAL_get_all_variants")
        return [VariantInfo.from_dict(item) for item in decode_json_list(response)]

    async def get_current_setting_variant(self) -> VariantInfo:
        response = await self._call("GENERAL_get_current_variant")
        return VariantInfo.from_dict(self._required("GENERAL_get_current_variant", response))

    async def load_general_settings(self, app_id: str, name: str, variant_id: str,
                                    variant_name: Optional[str] = None) -> bool:
        params = [app_id, name, variant_id]
        if variant_name is not None:
            params.append(variant_name)
        return await self._bool("GENERAL_load_settings", *params)

    async def load_general_default_settings(self) -> bool:
        return await self._bool("GENERAL_load_default_settings")

    async def load_general_system_settings(self) -> bool:
        return await self._bool("GENERAL_load_system_settings")

    async def load_general_settings_variant(self, variant_id: Any, variant_name: str) -> bool:
        return await self._bool("GENERAL_load_variant", variant_id, variant_name)

    async def wait_for_complete(self) -> bool:
        """Barrier: resolves once the backend has applied every queued change"""
        return await self._bool("GENERAL_wait_for_unlocks")

    async def force_apply_settings(self) -> bool:
        return await self._bool("GENERAL_apply_now")

    # Community settings store

    async def search_store_by_app_id(self, app_id: str) -> List[StoreMetadata]:
        response = await self._call("WEB_search_by_app", int(app_id))
        results = self._nullable(response)
        if results is None:
            return []
        return [StoreMetadata.from_dict(item) for item in results]

    async def store_download_by_id(self, store_id: str) -> List[VariantInfo]:
        response = await self._call("WEB_download_new", str(store_id))
        return [VariantInfo.from_dict(item) for item in decode_json_list(response)]

    async def store_upload(self, steam_id: str, steam_username: str) -> bool:
        return await self._bool("WEB_upload_new", steam_id, steam_username)
