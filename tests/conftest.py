"""Shared pytest configuration and fixtures for the PowerTools panel test suite."""

import asyncio
import json
import sys
from pathlib import Path

import pytest

# The plugin loads its modules from py_modules/, so the tests do the same
PROJECT_ROOT = Path(__file__).parent.parent
PY_MODULES = PROJECT_ROOT / "py_modules"
if str(PY_MODULES) not in sys.path:
    sys.path.insert(0, str(PY_MODULES))

from backend_client import BackendClient  # noqa: E402
from host_events import HostEventHub  # noqa: E402
from panel_core import PowerToolsPanel  # noqa: E402
from panel_session import PanelSession  # noqa: E402
from plugin_enums import BackendError  # noqa: E402
from plugin_settings import PowerToolsSettings, reset_settings_instance  # noqa: E402
from state_store import StateStore  # noqa: E402


# =============================================================================
# Backend fixtures
# =============================================================================

CPU_COUNT = 8

SETTINGS_PATH = "/home/deck/.config/powertools/default_settings.ron"

LIMITS = {
    "battery": {
        "charge_current": {"min": 250, "max": 2500},
        "charge_current_step": 50,
        "charge_modes": ["normal", "discharge", "idle"],
        "charge_limit": {"min": 10, "max": 90},
        "charge_limit_step": 1,
    },
    "cpu": {
        "cpus": [
            {
                "clock_min_limits": {"min": 1400, "max": 3500},
                "clock_max_limits": {"min": 400, "max": 3500},
                "clock_step": 100,
                "governors": ["schedutil", "performance", "powersave"],
            }
            for _ in range(CPU_COUNT)
        ],
        "count": CPU_COUNT,
        "smt_capable": True,
        "governors": ["schedutil", "performance", "powersave"],
    },
    "gpu": {
        "fast_ppt_limits": {"min": 1, "max": 30},
        "slow_ppt_limits": {"min": 1, "max": 29},
        "ppt_step": 1,
        "clock_min_limits": {"min": 200, "max": 1600},
        "clock_max_limits": {"min": 200, "max": 1600},
        "clock_step": 100,
        "memory_control_capable": True,
    },
    "general": {},
}

STORE_ENTRY = {
    "id": "a1b2c3",
    "name": "Quiet fans",
    "steam_username": "deckfan",
    "tags": ["battery", "quiet"],
    "steam_app_id": 1,
}

PERIODICALS = {
    "battery_current": 1.2,
    "battery_charge_now": 30.5,
    "battery_charge_full": 40.0,
    "battery_charge_power": 9.8,
    "settings_path": SETTINGS_PATH,
}


def default_responses():
    """Raw USDPL responses of a healthy backend, keyed by function name"""
    return {
        "V_INFO": ["v1.5.0"],
        "LOG": [True],
        "GENERAL_get_provider": ["SteamDeck"],
        "GENERAL_get_limits": [json.dumps(LIMITS)],
        "GENERAL_get_periodicals": [json.dumps(PERIODICALS)],
        "MESSAGE_get": [],
        "MESSAGE_dismiss": [True],

        "BATTERY_current_now": [1.2],
        "BATTERY_get_charge_rate": [1000],
        "BATTERY_get_charge_mode": ["normal"],
        "BATTERY_get_charge_limit": [80],
        "BATTERY_charge_now": [30.5],
        "BATTERY_charge_full": [40.0],
        "BATTERY_charge_design": [40.0],
        "BATTERY_charge_power": [9.8],
        "BATTERY_set_charge_rate": lambda params: [params[0]],
        "BATTERY_unset_charge_rate": [],
        "BATTERY_set_charge_mode": lambda params: [params[0]],
        "BATTERY_unset_charge_mode": [],
        "BATTERY_set_charge_limit": lambda params: [params[0]],
        "BATTERY_unset_charge_limit": [],

        "CPU_get_onlines": [True] * CPU_COUNT,
        "CPU_get_smt": [True],
        "CPU_get_clock_limits": [800, 3500],
        "CPU_get_governors": ["schedutil"] * CPU_COUNT,
        "CPU_set_online": lambda params: [params[1]],
        "CPU_set_onlines": lambda params: list(params),
        "CPU_set_smt": lambda params: [True] * CPU_COUNT if params[0] else [True, False] * (CPU_COUNT // 2),
        "CPU_set_clock_limits": lambda params: [params[1], params[2]],
        "CPU_unset_clock_limits": [],
        "CPU_set_governor": lambda params: [params[1]],
        "CPU_set_governors": lambda params: list(params),

        "GPU_get_ppt": [15, 15],
        "GPU_get_clock_limits": [200, 1600],
        "GPU_get_slow_memory": [0],
        "GPU_set_ppt": lambda params: list(params),
        "GPU_unset_ppt": [],
        "GPU_set_clock_limits": lambda params: list(params),
        "GPU_unset_clock_limits": [],
        "GPU_set_slow_memory": lambda params: [params[0]],

        "GENERAL_get_persistent": [True],
        "GENERAL_set_persistent": lambda params: [params[0]],
        "GENERAL_get_name": ["Default Profile"],
        "GENERAL_get_path": [SETTINGS_PATH],
        "GENERAL_get_all_variants": [json.dumps({"id": 0, "name": "Primary"}),
                                     json.dumps({"id": 1, "name": "Alt"})],
        "GENERAL_get_current_variant": [json.dumps({"id": 0, "name": "Primary"})],
        "GENERAL_load_settings": [True],
        "GENERAL_load_default_settings": [True],
        "GENERAL_load_system_settings": [True],
        "GENERAL_load_variant": [True],
        "GENERAL_wait_for_unlocks": [True],
        "GENERAL_apply_now": [True],

        "WEB_search_by_app": [json.dumps([STORE_ENTRY])],
        "WEB_download_new": [json.dumps({"id": 0, "name": "Primary"}),
                             json.dumps({"id": 1, "name": "Alt"}),
                             json.dumps({"id": 2, "name": "Quiet fans"})],
        "WEB_upload_new": [True],
    }


class FakeTransport:
    """
    Stand-in for UsdplTransport

    A response can be a list (returned as-is), a callable taking the params
    list, or an exception instance to raise.
    """

    def __init__(self, responses=None):
        self.responses = default_responses()
        if responses:
            self.responses.update(responses)
        self.calls = []

    async def call(self, function, params):
        self.calls.append((function, list(params)))
        if function not in self.responses:
            raise BackendError(f"{function} is not a backend function")
        response = self.responses[function]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(params)
        return list(response)

    def calls_to(self, function):
        return [params for name, params in self.calls if name == function]

    def names(self):
        return [name for name, _ in self.calls if name != "LOG"]


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _fresh_settings_singleton():
    reset_settings_instance()
    yield
    reset_settings_instance()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session():
    return PanelSession()


@pytest.fixture
def ready_session(session):
    session.usdpl_ready = True
    return session


@pytest.fixture
def backend(transport, session):
    return BackendClient(transport, session)


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def hub():
    return HostEventHub()


@pytest.fixture
def settings(tmp_path):
    settings = PowerToolsSettings(str(tmp_path / "settings"))
    settings.set("automatic_reapply_wait_ms", 0)
    return settings


@pytest.fixture
def panel(settings, transport, hub):
    return PowerToolsPanel(settings, transport=transport, host=hub)


@pytest.fixture
def drain():
    """Wait until every task tracked by a session has finished"""
    async def _drain(session):
        for _ in range(20):
            tasks = session.pending_tasks
            if not tasks:
                break
            await asyncio.gather(*tasks, return_exceptions=True)
            await asyncio.sleep(0)
    return _drain
