"""
PowerTools Lifecycle Router
Turns Steam lifecycle events into settings loads, store refreshes and
re-applies. Every event spawns a task whose steps run strictly in order:
load -> reload -> wait for the backend to settle -> notify observers.
"""
import asyncio
import logging
from typing import Callable, Optional

from backend_models import AppLifetimeUpdate, UserChange
from plugin_consts import APP_START_VARIANT_ID, LOGGER_NAME
from plugin_enums import BackendError, LifecycleEvent, LogLevel, StoreKey
from plugin_utils import format_event

logger = logging.getLogger(LOGGER_NAME)


class LifecycleRouter:
    """Registers the four host subscriptions and reacts to them"""

    def __init__(self, session, backend, store, reload_engine, poller, host, settings):
        self.session = session
        self.backend = backend
        self.store = store
        self.reload_engine = reload_engine
        self.poller = poller
        self.host = host
        self.settings = settings
        self.render_trigger: Optional[Callable[[str], None]] = None
        # Game action end fires once right after registering; that call is skipped
        self._end_has_fired = False

    # Registration

    def register_callbacks(self, autoclear: bool = True) -> None:
        """
        Subscribe to the host lifecycle events and arm the periodic poller

        Args:
            autoclear: Run clear_hooks first so nothing is registered twice
        """
        if autoclear:
            self.clear_hooks()
        host = self.host
        hooks = self.session.hooks
        hooks[LifecycleEvent.APP_LIFETIME] = host.register_for_app_lifetime_notifications(self.on_app_lifetime)
        hooks[LifecycleEvent.GAME_ACTION_START] = host.register_for_game_action_start(self.on_game_action_start)
        self._end_has_fired = False
        hooks[LifecycleEvent.GAME_ACTION_END] = host.register_for_game_action_end(self.on_game_action_end)
        hooks[LifecycleEvent.CURRENT_USER] = host.register_for_current_user_changes(self.on_current_user_changed)

        if self.render_trigger is not None:
            self.poller.setup(self.render_trigger)

        self.backend.log(LogLevel.DEBUG, "Registered PowerTools callbacks, hello!")

    def clear_hooks(self) -> None:
        """Cancel the periodic timer and drop every host subscription"""
        self.poller.cancel()
        for event, handle in list(self.session.hooks.items()):
            if handle is not None:
                handle.unregister()
            self.session.hooks[event] = None
        self.backend.log(LogLevel.INFO, "Unregistered PowerTools callbacks, so long and thanks for all the fish.")

    async def shutdown(self) -> None:
        """Stop the timer and wait for it, clear_hooks, then cancel every in-flight event task"""
        await self.poller.stop()
        self.clear_hooks()
        await self.session.cancel_tasks()

    # Event handlers (called synchronously by the host hub)

    def on_app_lifetime(self, update: AppLifetimeUpdate) -> None:
        self.backend.log(LogLevel.INFO, f"RegisterForAppLifetimeNotifications callback({format_event(update.to_dict())})")
        if update.running:
            return
        self.session.spawn(self._load_defaults_after_exit(), name="powertools-app-exit")
        self.session.spawn(self.refresh_store_results(self.settings.main_app_id), name="powertools-store-main")

    def on_game_action_start(self, action_type: int, game_id: str) -> None:
        overview = self.host.get_app_overview_by_game_id(game_id)
        if overview is not None:
            app_id = str(overview.appid)
            display_name = overview.display_name
        else:
            logger.warning(f"No app overview for game {game_id}, using the game id as app id and name")
            app_id = str(game_id)
            display_name = str(game_id)

        self.backend.log(LogLevel.INFO, f"RegisterForGameActionStart callback({action_type}, {game_id})")
        self.session.spawn(self._load_app_settings(app_id, display_name), name=f"powertools-app-start-{app_id}")
        self.session.spawn(self.refresh_store_results(app_id), name=f"powertools-store-{app_id}")

    def on_game_action_end(self, action_type: int) -> None:
        if not self._end_has_fired:
            self._end_has_fired = True
            self.backend.log(LogLevel.DEBUG, f"RegisterForGameActionEnd immediately fired callback({action_type})")
            return
        self.backend.log(LogLevel.INFO, f"RegisterForGameActionEnd callback({action_type})")
        self.session.spawn(self._delayed_reapply(), name="powertools-reapply")

    def on_current_user_changed(self, change: UserChange) -> None:
        self.session.spawn(self._match_user(change), name="powertools-user")

    # Event tasks

    async def _load_defaults_after_exit(self) -> None:
        if not self.session.usdpl_ready:
            return
        ok = await self.backend.load_general_default_settings()
        self.backend.log(LogLevel.DEBUG, f"Loading default settings ok? {ok}")
        await self.reload_engine.reload()
        await self.backend.wait_for_complete()
        self.backend.log(LogLevel.DEBUG, "Trying to tell UI to re-render due to game exit")
        await self.session.notify_profile_change("GameExit")

    async def _load_app_settings(self, app_id: str, display_name: str) -> None:
        if not self.session.usdpl_ready:
            return
        ok = await self.backend.load_general_settings(app_id, display_name, APP_START_VARIANT_ID, None)
        self.backend.log(LogLevel.DEBUG, f"Loading settings ok? {ok}")
        await self.reload_engine.reload()
        await self.backend.wait_for_complete()
        self.backend.log(LogLevel.DEBUG, "Trying to tell UI to re-render due to new game launch")
        await self.session.notify_profile_change("GameStart")

    async def refresh_store_results(self, app_id: str) -> None:
        """Search the community store for an app and overwrite the cached results"""
        if not self.session.usdpl_ready:
            return
        try:
            results = await self.backend.search_store_by_app_id(app_id)
        except BackendError as e:
            self.backend.log(LogLevel.WARN, f"Store search for app {app_id} failed: {e}")
            return
        self.store.set(StoreKey.STORE_RESULTS, results)

    async def _delayed_reapply(self) -> None:
        await asyncio.sleep(self.settings.reapply_wait)
        if not self.session.usdpl_ready:
            return
        await self.backend.force_apply_settings()

    async def _match_user(self, change: UserChange) -> None:
        users = await self.host.get_login_users()
        for user in users:
            if user and user.account_name == change.account_name:
                self.store.set(StoreKey.INTERNAL_STEAM_ID, change.steam_id)
                self.store.set(StoreKey.INTERNAL_STEAM_USERNAME, user.display_name)
