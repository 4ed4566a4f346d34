"""
PowerTools Panel Session
Shared state of one running panel: readiness, the variant loading flag,
host hook handles, the periodic timer and profile-change observers
"""
import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from plugin_consts import LOGGER_NAME
from plugin_enums import LifecycleEvent
from plugin_utils import call_maybe_async

logger = logging.getLogger(LOGGER_NAME)


class PanelSession:
    """Owned by the composition root and handed to every component"""

    def __init__(self):
        # False until the backend handshake completes
        self.usdpl_ready: bool = False
        # True strictly between a variant switch request and its reload
        self.is_variant_loading: bool = False

        self.hooks: Dict[LifecycleEvent, Any] = {}
        self.periodic_task: Optional[asyncio.Task] = None

        self._observers: List[Callable] = []
        self._tasks: Set[asyncio.Task] = set()

    # Profile change observers

    def add_observer(self, observer: Callable) -> None:
        """Add a callable invoked with a reason string when the profile changed"""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: Callable) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def clear_observers(self) -> None:
        self._observers.clear()

    async def notify_profile_change(self, reason: str) -> None:
        """Tell the UI to re-render; observer failures are logged, not raised"""
        for observer in list(self._observers):
            try:
                await call_maybe_async(observer, reason)
            except Exception as e:
                logger.error(f"Profile change observer failed ({reason}): {e}")

    # Background tasks

    def spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        """Run a coroutine as a tracked task whose failure gets logged"""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Task {task.get_name()} failed: {error!r}")

    @property
    def pending_tasks(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    async def cancel_tasks(self) -> None:
        """Cancel every tracked task and wait for them to finish"""
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if not task.done() and task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    # Hooks

    @property
    def active_hooks(self) -> int:
        return sum(1 for handle in self.hooks.values() if handle is not None)

    @property
    def timer_armed(self) -> bool:
        return self.periodic_task is not None and not self.periodic_task.done()
