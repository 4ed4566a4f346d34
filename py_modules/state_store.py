"""
PowerTools State Store
Typed, observable key-value store that hands backend state to the panel
"""
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from backend_models import Message, MinMax, SettingsLimits, StoreMetadata, VariantInfo
from plugin_consts import LOGGER_NAME
from plugin_enums import StoreKey, StoreValidationError

logger = logging.getLogger(LOGGER_NAME)

Observer = Callable[[StoreKey, Any], None]

_NUMBER = (int, float)


class _Field(NamedTuple):
    types: Tuple[type, ...]
    nullable: bool = False
    is_list: bool = False


_SCHEMA: Dict[StoreKey, _Field] = {
    StoreKey.BACKEND_INFO: _Field((str,)),
    StoreKey.DRIVER_INFO: _Field((str,)),
    StoreKey.LIMITS_INFO: _Field((SettingsLimits,)),

    StoreKey.CURRENT_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_RATE_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_MODE_BATT: _Field((str,), nullable=True),
    StoreKey.CHARGE_LIMIT_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_NOW_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_FULL_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_DESIGN_BATT: _Field(_NUMBER, nullable=True),
    StoreKey.CHARGE_POWER_BATT: _Field(_NUMBER, nullable=True),

    StoreKey.ONLINE_CPUS: _Field((int,)),
    StoreKey.ONLINE_STATUS_CPUS: _Field((bool,), is_list=True),
    StoreKey.SMT_CPU: _Field((bool,)),
    StoreKey.CLOCK_MIN_CPU: _Field(_NUMBER, nullable=True),
    StoreKey.CLOCK_MAX_CPU: _Field(_NUMBER, nullable=True),
    StoreKey.CLOCK_MIN_MAX_CPU: _Field((MinMax,), is_list=True),
    StoreKey.GOVERNOR_CPU: _Field((str,), is_list=True),

    StoreKey.FAST_PPT_GPU: _Field(_NUMBER, nullable=True),
    StoreKey.SLOW_PPT_GPU: _Field(_NUMBER, nullable=True),
    StoreKey.CLOCK_MIN_GPU: _Field(_NUMBER, nullable=True),
    StoreKey.CLOCK_MAX_GPU: _Field(_NUMBER, nullable=True),
    StoreKey.SLOW_MEMORY_GPU: _Field(_NUMBER, nullable=True),

    StoreKey.PERSISTENT_GEN: _Field((bool,)),
    StoreKey.NAME_GEN: _Field((str,)),
    StoreKey.PATH_GEN: _Field((str,)),
    StoreKey.VARIANTS_GEN: _Field((VariantInfo,), is_list=True),
    StoreKey.CURRENT_VARIANT_GEN: _Field((VariantInfo,)),

    StoreKey.MESSAGE_LIST: _Field((Message,), is_list=True),

    StoreKey.INTERNAL_STEAM_ID: _Field((str,)),
    StoreKey.INTERNAL_STEAM_USERNAME: _Field((str,)),

    StoreKey.STORE_RESULTS: _Field((StoreMetadata,), is_list=True),
}


def _check(key: StoreKey, value: Any) -> None:
    field = _SCHEMA[key]
    if value is None:
        if field.nullable:
            return
        raise StoreValidationError(f"{key.value} does not accept None")
    if field.is_list:
        if not isinstance(value, list):
            raise StoreValidationError(f"{key.value} expects a list, got {type(value).__name__}")
        for item in value:
            if not isinstance(item, field.types):
                raise StoreValidationError(
                    f"{key.value} expects items of {[t.__name__ for t in field.types]}, got {type(item).__name__}")
        return
    if not isinstance(value, field.types):
        raise StoreValidationError(
            f"{key.value} expects {[t.__name__ for t in field.types]}, got {type(value).__name__}")


class StateStore:
    """Last-known values keyed by StoreKey; writes replace, nothing is deleted"""

    def __init__(self):
        self._values: Dict[StoreKey, Any] = {}
        self._observers: List[Observer] = []

    def get(self, key: StoreKey, default: Any = None) -> Any:
        return self._values.get(key, default)

    def has(self, key: StoreKey) -> bool:
        """True once the key has been written, even if the value is None"""
        return key in self._values

    def set(self, key: StoreKey, value: Any) -> None:
        """Validate and store a value, then tell every observer"""
        if not isinstance(key, StoreKey):
            raise StoreValidationError(f"Unknown store key: {key!r}")
        _check(key, value)
        self._values[key] = value
        for observer in list(self._observers):
            try:
                observer(key, value)
            except Exception as e:
                logger.error(f"Store observer {getattr(observer, '__name__', observer)} failed on {key.value}: {e}")

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the store addressed by the raw key strings"""
        return {key.value: value for key, value in self._values.items()}

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns the function that removes it"""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # Typed accessors for the values most components need

    def limits(self) -> Optional[SettingsLimits]:
        return self._values.get(StoreKey.LIMITS_INFO)

    def variants(self) -> List[VariantInfo]:
        return self._values.get(StoreKey.VARIANTS_GEN) or []

    def current_variant(self) -> Optional[VariantInfo]:
        return self._values.get(StoreKey.CURRENT_VARIANT_GEN)
