"""
General panel actions: persistence, defaults, re-apply, startup retry and
developer message dismissal
"""
import logging

from plugin_consts import LOGGER_NAME
from plugin_enums import BackendError, LogLevel, StoreKey

logger = logging.getLogger(LOGGER_NAME)


class GeneralActions:

    def __init__(self, session, backend, store, reload_engine, router=None):
        self.session = session
        self.backend = backend
        self.store = store
        self.reload_engine = reload_engine
        self.router = router

    async def set_persistent(self, persist: bool) -> bool:
        """Toggle "save profile and load it next time"; stores what the backend echoes"""
        self.backend.log(LogLevel.DEBUG, f"Persist is now {persist}")
        value = await self.backend.set_general_persistent(persist)
        self.store.set(StoreKey.PERSISTENT_GEN, value)
        return value

    async def load_system_defaults(self) -> None:
        """Drop persistence and fall back to the system default settings"""
        self.backend.log(LogLevel.DEBUG, "Loading default PowerTools settings")
        value = await self.backend.set_general_persistent(False)
        self.store.set(StoreKey.PERSISTENT_GEN, value)
        await self.backend.load_general_system_settings()
        await self.reload_engine.reload()
        await self.backend.wait_for_complete()
        await self.session.notify_profile_change("LoadSystemDefaults")

    async def reapply_settings(self) -> bool:
        self.backend.log(LogLevel.DEBUG, "Reapplying PowerTools settings")
        return await self.backend.force_apply_settings()

    async def retry_startup(self) -> bool:
        """
        Manual reload offered when the backend did not start correctly

        Retries the handshake first if it never completed, and registers
        the lifecycle callbacks once it does.

        Returns:
            True when the backend is ready afterwards
        """
        logger.info("Manual reload after startup failure")
        if not self.session.usdpl_ready:
            try:
                await self.backend.init_backend()
            except BackendError as e:
                logger.error(f"Backend still unavailable: {e}")
                return False
            self.session.usdpl_ready = True
            await self.reload_engine.reload()
            if self.router is not None:
                self.router.register_callbacks(True)
        else:
            await self.reload_engine.reload()
        await self.backend.wait_for_complete()
        await self.session.notify_profile_change("LoadSystemDefaults")
        return True

    async def dismiss_message(self, message_id: int) -> bool:
        ok = await self.backend.dismiss_message(message_id)
        self.store.set(StoreKey.MESSAGE_LIST, await self.backend.get_messages(None))
        return ok
