"""
PowerTools Utility Functions
Common helpers shared by the panel core modules
"""
import inspect
import json
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from plugin_consts import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def count_cpus(statii: Sequence[bool]) -> int:
    """Count how many CPUs are reported online"""
    return sum(1 for status in statii if status)


def decode_json_primitive(value: Any) -> Any:
    """
    Decode a backend JSON primitive

    The backend ships structured values as JSON strings inside its response
    list; plain numbers, booleans and strings arrive as-is.

    Args:
        value: Raw response element

    Returns:
        The decoded object, or the value unchanged if it is not JSON text
    """
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ('{', '['):
            return json.loads(stripped)
    return value


def decode_json_list(values: List[Any]) -> List[Any]:
    """Decode every element of a backend response list"""
    return [decode_json_primitive(value) for value in values]


def render_token(prefix: str) -> str:
    """Unique string handed to render triggers so consumers see a new value"""
    return f"{prefix}{int(time.time() * 1000)}"


async def call_maybe_async(func: Callable, *args) -> Any:
    """Call a sync or async callable and return its result"""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def format_event(data: Any) -> str:
    """Pretty JSON for lifecycle event logging"""
    try:
        return json.dumps(data, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(data)


def ms_to_seconds(milliseconds: Optional[int]) -> float:
    """Convert a configured millisecond delay to asyncio seconds"""
    if not milliseconds:
        return 0.0
    return milliseconds / 1000.0
