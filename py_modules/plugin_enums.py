"""
PowerTools Enumerations
Core enums and exceptions for the PowerTools panel core
"""
from enum import Enum, IntEnum


class StoreKey(Enum):
    """Identifiers of every value the panel keeps in its state store"""
    BACKEND_INFO = "VINFO"
    DRIVER_INFO = "GENERAL_provider"

    LIMITS_INFO = "LIMITS_all"

    CURRENT_BATT = "BATTERY_current_now"
    CHARGE_RATE_BATT = "BATTERY_charge_rate"
    CHARGE_MODE_BATT = "BATTERY_charge_mode"
    CHARGE_LIMIT_BATT = "BATTERY_charge_limit"
    CHARGE_NOW_BATT = "BATTERY_charge_now"
    CHARGE_FULL_BATT = "BATTERY_charge_full"
    CHARGE_DESIGN_BATT = "BATTERY_charge_design"
    CHARGE_POWER_BATT = "BATTERY_charge_power"

    ONLINE_CPUS = "CPUs_online"
    ONLINE_STATUS_CPUS = "CPUs_status_online"
    SMT_CPU = "CPUs_SMT"
    CLOCK_MIN_CPU = "CPUs_min_clock"
    CLOCK_MAX_CPU = "CPUs_max_clock"
    CLOCK_MIN_MAX_CPU = "CPUs_minmax_clocks"
    GOVERNOR_CPU = "CPUs_governor"

    FAST_PPT_GPU = "GPU_fastPPT"
    SLOW_PPT_GPU = "GPU_slowPPT"
    CLOCK_MIN_GPU = "GPU_min_clock"
    CLOCK_MAX_GPU = "GPU_max_clock"
    SLOW_MEMORY_GPU = "GPU_slow_memory"

    PERSISTENT_GEN = "GENERAL_persistent"
    NAME_GEN = "GENERAL_name"
    PATH_GEN = "GENERAL_path"
    VARIANTS_GEN = "GENERAL_setting_variants"
    CURRENT_VARIANT_GEN = "GENERAL_current_variant"

    MESSAGE_LIST = "MESSAGE_messages"

    INTERNAL_STEAM_ID = "INTERNAL_steam_id"
    INTERNAL_STEAM_USERNAME = "INTERNAL_stream_username"

    STORE_RESULTS = "INTERNAL_store_results"


class LogLevel(IntEnum):
    """Log levels understood by the backend log sink"""
    TRACE = 1
    DEBUG = 2
    INFO = 3
    WARN = 4
    ERROR = 5


class LifecycleEvent(Enum):
    """Host lifecycle subscriptions"""
    APP_LIFETIME = "app_lifetime"
    GAME_ACTION_START = "game_action_start"
    GAME_ACTION_END = "game_action_end"
    CURRENT_USER = "current_user"


class CatalogState(Enum):
    """What the store results page can show"""
    FAILED = "failed"
    EMPTY = "empty"
    RESULTS = "results"


class PowerToolsError(Exception):
    """Base exception for the panel core"""
    pass


class BackendError(PowerToolsError):
    """A backend call failed or returned an unusable response"""
    pass


class BackendNotReady(BackendError):
    """Backend called before the initialization handshake completed"""
    pass


class StoreValidationError(PowerToolsError):
    """A value of the wrong type was written to the state store"""
    pass


class ValidationError(PowerToolsError):
    """Custom exception for settings validation errors"""
    pass
