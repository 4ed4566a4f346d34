"""
Host Lifecycle Events
Python side of the Steam client notifications. The JavaScript shell
forwards SteamClient callbacks (app lifetime, game action start/end, user
changes) and app metadata here; panel components subscribe with
registrations they can unregister.
"""
import logging
from typing import Callable, Dict, List, Optional

from backend_models import AppLifetimeUpdate, AppOverview, LoginUser, UserChange
from plugin_consts import LOGGER_NAME
from plugin_enums import LifecycleEvent
from plugin_utils import call_maybe_async

logger = logging.getLogger(LOGGER_NAME)


class Registration:
    """Handle returned by every subscription"""

    def __init__(self, hub: 'HostEventHub', event: LifecycleEvent, callback: Callable):
        self.hub = hub
        self.event = event
        self.callback = callback
        self.active = True

    def unregister(self) -> None:
        if self.active:
            self.active = False
            self.hub._remove(self)


class HostEventHub:
    """Lifecycle notifier boundary between the Steam client and the panel"""

    def __init__(self):
        self._subscribers: Dict[LifecycleEvent, List[Registration]] = {event: [] for event in LifecycleEvent}
        self._app_overviews: Dict[str, AppOverview] = {}
        self._login_users: List[LoginUser] = []
        self.quick_access_listener: Optional[Callable[[], None]] = None

    # Subscriptions

    def _register(self, event: LifecycleEvent, callback: Callable) -> Registration:
        registration = Registration(self, event, callback)
        self._subscribers[event].append(registration)
        return registration

    def _remove(self, registration: Registration) -> None:
        subscribers = self._subscribers[registration.event]
        if registration in subscribers:
            subscribers.remove(registration)

    def register_for_app_lifetime_notifications(self, callback: Callable[[AppLifetimeUpdate], None]) -> Registration:
        return self._register(LifecycleEvent.APP_LIFETIME, callback)

    def register_for_game_action_start(self, callback: Callable[[int, str], None]) -> Registration:
        return self._register(LifecycleEvent.GAME_ACTION_START, callback)

    def register_for_game_action_end(self, callback: Callable[[int], None]) -> Registration:
        return self._register(LifecycleEvent.GAME_ACTION_END, callback)

    def register_for_current_user_changes(self, callback: Callable[[UserChange], None]) -> Registration:
        return self._register(LifecycleEvent.CURRENT_USER, callback)

    def subscriber_count(self, event: Optional[LifecycleEvent] = None) -> int:
        if event is not None:
            return len(self._subscribers[event])
        return sum(len(subscribers) for subscribers in self._subscribers.values())

    # Dispatch

    def _dispatch(self, event: LifecycleEvent, *args) -> int:
        delivered = 0
        for registration in list(self._subscribers[event]):
            try:
                registration.callback(*args)
                delivered += 1
            except Exception as e:
                logger.error(f"{event.value} subscriber failed: {e}")
        return delivered

    def dispatch_app_lifetime(self, update: AppLifetimeUpdate) -> int:
        return self._dispatch(LifecycleEvent.APP_LIFETIME, update)

    def dispatch_game_action_start(self, action_type: int, game_id: str) -> int:
        return self._dispatch(LifecycleEvent.GAME_ACTION_START, action_type, str(game_id))

    def dispatch_game_action_end(self, action_type: int) -> int:
        return self._dispatch(LifecycleEvent.GAME_ACTION_END, action_type)

    def dispatch_current_user_changed(self, change: UserChange) -> int:
        return self._dispatch(LifecycleEvent.CURRENT_USER, change)

    # App metadata and users

    def update_app_overview(self, game_id: str, overview: AppOverview) -> None:
        self._app_overviews[str(game_id)] = overview

    def get_app_overview_by_game_id(self, game_id: str) -> Optional[AppOverview]:
        return self._app_overviews.get(str(game_id))

    def set_login_users(self, users: List[LoginUser]) -> None:
        self._login_users = list(users)

    async def get_login_users(self) -> List[LoginUser]:
        return list(self._login_users)

    # Navigation

    async def open_quick_access_menu(self) -> None:
        """Ask the shell to return focus to the quick access menu"""
        if self.quick_access_listener is None:
            logger.debug("No quick access listener attached")
            return
        await call_maybe_async(self.quick_access_listener)
