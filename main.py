import decky
import os
import sys
import json
import logging
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Dict, Any, Optional, List

# Add py_modules directory to Python path for dynamic imports
py_modules_path = os.path.join(os.path.dirname(__file__), 'py_modules')
if py_modules_path not in sys.path:
    sys.path.insert(0, py_modules_path)

from backend_models import AppLifetimeUpdate, AppOverview, LoginUser, StoreMetadata, UserChange, VariantInfo
from panel_core import PowerToolsPanel
from plugin_consts import LOGGER_NAME, OPEN_QUICK_ACCESS_EVENT, PROFILE_CHANGED_EVENT, RENDER_EVENT
from plugin_settings import get_settings

# Debug configuration
DEBUG_ENABLED = os.environ.get('POWERTOOLS_DEBUG', 'false').lower() == 'true'


# Version management
def get_plugin_version() -> str:
    """Get plugin version from VERSION file or plugin.json fallback"""
    try:
        version_file_path = os.path.join(os.path.dirname(__file__), "VERSION")
        if os.path.exists(version_file_path):
            with open(version_file_path, 'r') as f:
                version = f.read().strip()
                if version:
                    return version

        plugin_json_path = os.path.join(os.path.dirname(__file__), "plugin.json")
        if os.path.exists(plugin_json_path):
            with open(plugin_json_path, 'r') as f:
                plugin_data = json.load(f)
                return plugin_data.get("version", "unknown")

        return "unknown"
    except Exception as e:
        decky.logger.error(f"Failed to get plugin version: {e}")
        return "unknown"


def _configure_logging(level: int) -> None:
    """Route the panel core's logger into the Decky plugin log"""
    panel_logger = logging.getLogger(LOGGER_NAME)
    panel_logger.setLevel(logging.DEBUG if DEBUG_ENABLED else level)
    for handler in decky.logger.handlers:
        if handler not in panel_logger.handlers:
            panel_logger.addHandler(handler)
    if decky.logger.handlers:
        panel_logger.propagate = False


def _to_frontend(value: Any) -> Any:
    """Convert store values into JSON-friendly structures for the frontend"""
    if is_dataclass(value):
        return _to_frontend(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _to_frontend(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_frontend(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_to_frontend(item) for item in value)
    return value


class Plugin:
    def __init__(self):
        self.settings = None
        self.panel: Optional[PowerToolsPanel] = None

    async def _emit_render(self, token: str):
        await decky.emit(RENDER_EVENT, token)

    async def _emit_profile_changed(self, reason: str):
        await decky.emit(PROFILE_CHANGED_EVENT, reason)

    async def _emit_open_quick_access(self):
        await decky.emit(OPEN_QUICK_ACCESS_EVENT)

    async def _main(self):
        decky.logger.info("PowerTools initializing...")
        self.settings = get_settings(decky.DECKY_PLUGIN_SETTINGS_DIR)
        _configure_logging(self.settings.log_level)

        self.panel = PowerToolsPanel(self.settings)
        self.panel.host.quick_access_listener = self._emit_open_quick_access
        self.panel.session.add_observer(self._emit_profile_changed)

        # init USDPL connection to the back-end
        if await self.panel.start(self._emit_render):
            decky.logger.info(f"PowerTools {get_plugin_version()} connected to backend")
        else:
            decky.logger.warning("USDPL or PowerTools's backend did not start correctly!")

    async def _unload(self):
        decky.logger.info("PowerTools unloading...")
        if self.panel:
            try:
                await self.panel.stop()
            except Exception as e:
                decky.logger.error(f"Error stopping PowerTools panel: {e}")

    async def _uninstall(self):
        decky.logger.info("PowerTools uninstalling...")

    # Status

    async def get_startup_status(self) -> Dict[str, Any]:
        return {
            "ready": self.panel.session.usdpl_ready,
            "ok": self.panel.startup_ok(),
            "version": get_plugin_version(),
        }

    async def get_store_snapshot(self) -> Dict[str, Any]:
        snapshot = _to_frontend(self.panel.store.snapshot())
        snapshot["isVariantLoading"] = self.panel.variants.is_loading
        return snapshot

    async def retry_startup(self) -> bool:
        return await self.panel.actions.retry_startup()

    # Steam lifecycle forwarding

    async def on_app_lifetime(self, update: Dict[str, Any]) -> int:
        return self.panel.host.dispatch_app_lifetime(AppLifetimeUpdate.from_dict(update))

    async def on_game_action_start(self, action_type: int, game_id: str,
                                   app_overview: Optional[Dict[str, Any]] = None) -> int:
        if app_overview:
            self.panel.host.update_app_overview(game_id, AppOverview.from_dict(app_overview))
        return self.panel.host.dispatch_game_action_start(action_type, game_id)

    async def on_game_action_end(self, action_type: int) -> int:
        return self.panel.host.dispatch_game_action_end(action_type)

    async def on_current_user_changed(self, data: Dict[str, Any], login_users: List[Dict[str, Any]]) -> int:
        self.panel.host.set_login_users([LoginUser.from_dict(user) for user in login_users if user])
        return self.panel.host.dispatch_current_user_changed(UserChange.from_dict(data))

    # Variants and general settings

    async def create_variant(self, name: str) -> bool:
        return await self.panel.variants.create_variant(name)

    async def select_variant(self, variant: Dict[str, Any]) -> bool:
        return await self.panel.variants.select_variant(VariantInfo.from_dict(variant))

    async def set_persistent(self, persist: bool) -> bool:
        return await self.panel.actions.set_persistent(persist)

    async def load_system_defaults(self) -> bool:
        await self.panel.actions.load_system_defaults()
        return True

    async def reapply_settings(self) -> bool:
        return await self.panel.actions.reapply_settings()

    async def dismiss_message(self, message_id: int) -> bool:
        return await self.panel.actions.dismiss_message(message_id)

    # Community settings store

    async def get_store_results(self) -> Dict[str, Any]:
        state, results = self.panel.catalog.results_view()
        return {"state": state.value, "results": _to_frontend(results)}

    async def download_store_variant(self, meta: Dict[str, Any]) -> List[Dict[str, Any]]:
        variants = await self.panel.catalog.download(StoreMetadata.from_dict(meta))
        return _to_frontend(variants)

    async def upload_current_variant(self) -> bool:
        return await self.panel.catalog.upload_current()

    # Hardware settings

    async def set_charge_rate(self, rate: Optional[int]) -> Optional[int]:
        return await self.panel.hardware.set_charge_rate(rate)

    async def set_charge_mode(self, mode: Optional[str]) -> Optional[str]:
        return await self.panel.hardware.set_charge_mode(mode)

    async def set_charge_limit(self, limit: Optional[float]) -> Optional[float]:
        return await self.panel.hardware.set_charge_limit(limit)

    async def set_cpu_online(self, index: int, online: bool) -> bool:
        return await self.panel.hardware.set_cpu_online(index, online)

    async def set_cpus_online(self, statii: List[bool]) -> List[bool]:
        return await self.panel.hardware.set_cpus_online(statii)

    async def set_smt(self, smt: bool) -> List[bool]:
        return await self.panel.hardware.set_smt(smt)

    async def set_cpu_clock_limits(self, index: int, min_clock: Optional[int], max_clock: Optional[int]) -> List[Optional[int]]:
        return list(await self.panel.hardware.set_cpu_clock_limits(index, min_clock, max_clock))

    async def set_all_cpu_clock_limits(self, min_clock: Optional[int], max_clock: Optional[int]) -> Optional[List[Dict[str, Any]]]:
        return _to_frontend(await self.panel.hardware.set_all_cpu_clock_limits(min_clock, max_clock))

    async def set_cpu_governor(self, index: int, governor: str) -> str:
        return await self.panel.hardware.set_cpu_governor(index, governor)

    async def set_cpus_governor(self, governors: List[str]) -> List[str]:
        return await self.panel.hardware.set_cpus_governor(governors)

    async def set_gpu_ppt(self, fast_ppt: Optional[int], slow_ppt: Optional[int]) -> List[Optional[int]]:
        return list(await self.panel.hardware.set_gpu_ppt(fast_ppt, slow_ppt))

    async def set_gpu_clock_limits(self, min_clock: Optional[int], max_clock: Optional[int]) -> List[Optional[int]]:
        return list(await self.panel.hardware.set_gpu_clock_limits(min_clock, max_clock))

    async def set_gpu_slow_memory(self, slow: bool) -> bool:
        return await self.panel.hardware.set_gpu_slow_memory(slow)


# Global plugin instance
plugin = Plugin()


async def _guarded(name: str, coro, fallback=None):
    """Run a frontend call, logging failures instead of raising them into the shell"""
    try:
        return await coro
    except Exception as e:
        decky.logger.error(f"FRONTEND CALL {name} failed: {e}")
        return fallback


# Global functions for frontend calls
async def get_startup_status():
    """Global function called by frontend"""
    return await _guarded("get_startup_status", plugin.get_startup_status(), {"ready": False, "ok": False})

async def get_store_snapshot():
    """Global function called by frontend"""
    return await _guarded("get_store_snapshot", plugin.get_store_snapshot(), {})

async def retry_startup():
    """Global function called by frontend"""
    decky.logger.info("FRONTEND CALL: retry_startup()")
    return await _guarded("retry_startup", plugin.retry_startup(), False)

async def on_app_lifetime(update):
    """Global function called by frontend"""
    return await _guarded("on_app_lifetime", plugin.on_app_lifetime(update), 0)

async def on_game_action_start(action_type: int, game_id: str, app_overview=None):
    """Global function called by frontend"""
    return await _guarded("on_game_action_start", plugin.on_game_action_start(action_type, game_id, app_overview), 0)

async def on_game_action_end(action_type: int):
    """Global function called by frontend"""
    return await _guarded("on_game_action_end", plugin.on_game_action_end(action_type), 0)

async def on_current_user_changed(data, login_users):
    """Global function called by frontend"""
    return await _guarded("on_current_user_changed", plugin.on_current_user_changed(data, login_users), 0)

async def create_variant(name: str):
    """Global function called by frontend"""
    decky.logger.info(f"FRONTEND CALL: create_variant({name})")
    return await _guarded("create_variant", plugin.create_variant(name), False)

async def select_variant(variant):
    """Global function called by frontend"""
    return await _guarded("select_variant", plugin.select_variant(variant), False)

async def set_persistent(persist: bool):
    """Global function called by frontend"""
    return await _guarded("set_persistent", plugin.set_persistent(persist), False)

async def load_system_defaults():
    """Global function called by frontend"""
    return await _guarded("load_system_defaults", plugin.load_system_defaults(), False)

async def reapply_settings():
    """Global function called by frontend"""
    return await _guarded("reapply_settings", plugin.reapply_settings(), False)

async def dismiss_message(message_id: int):
    """Global function called by frontend"""
    return await _guarded("dismiss_message", plugin.dismiss_message(message_id), False)

async def get_store_results():
    """Global function called by frontend"""
    return await _guarded("get_store_results", plugin.get_store_results(), {"state": "failed", "results": []})

async def download_store_variant(meta):
    """Global function called by frontend"""
    return await _guarded("download_store_variant", plugin.download_store_variant(meta), [])

async def upload_current_variant():
    """Global function called by frontend"""
    return await _guarded("upload_current_variant", plugin.upload_current_variant(), False)

async def set_charge_rate(rate=None):
    """Global function called by frontend"""
    return await _guarded("set_charge_rate", plugin.set_charge_rate(rate))

async def set_charge_mode(mode=None):
    """Global function called by frontend"""
    return await _guarded("set_charge_mode", plugin.set_charge_mode(mode))

async def set_charge_limit(limit=None):
    """Global function called by frontend"""
    return await _guarded("set_charge_limit", plugin.set_charge_limit(limit))

async def set_cpu_online(index: int, online: bool):
    """Global function called by frontend"""
    return await _guarded("set_cpu_online", plugin.set_cpu_online(index, online))

async def set_cpus_online(statii):
    """Global function called by frontend"""
    return await _guarded("set_cpus_online", plugin.set_cpus_online(statii), [])

async def set_smt(smt: bool):
    """Global function called by frontend"""
    return await _guarded("set_smt", plugin.set_smt(smt), [])

async def set_cpu_clock_limits(index: int, min_clock=None, max_clock=None):
    """Global function called by frontend"""
    return await _guarded("set_cpu_clock_limits", plugin.set_cpu_clock_limits(index, min_clock, max_clock))

async def set_all_cpu_clock_limits(min_clock=None, max_clock=None):
    """Global function called by frontend"""
    return await _guarded("set_all_cpu_clock_limits", plugin.set_all_cpu_clock_limits(min_clock, max_clock))

async def set_cpu_governor(index: int, governor: str):
    """Global function called by frontend"""
    return await _guarded("set_cpu_governor", plugin.set_cpu_governor(index, governor))

async def set_cpus_governor(governors):
    """Global function called by frontend"""
    return await _guarded("set_cpus_governor", plugin.set_cpus_governor(governors), [])

async def set_gpu_ppt(fast_ppt=None, slow_ppt=None):
    """Global function called by frontend"""
    return await _guarded("set_gpu_ppt", plugin.set_gpu_ppt(fast_ppt, slow_ppt))

async def set_gpu_clock_limits(min_clock=None, max_clock=None):
    """Global function called by frontend"""
    return await _guarded("set_gpu_clock_limits", plugin.set_gpu_clock_limits(min_clock, max_clock))

async def set_gpu_slow_memory(slow: bool):
    """Global function called by frontend"""
    return await _guarded("set_gpu_slow_memory", plugin.set_gpu_slow_memory(slow))
