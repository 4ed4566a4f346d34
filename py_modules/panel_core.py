"""
PowerTools Panel Core
Composition root: builds the session, store, backend client and the
components that keep the store in sync with the backend
"""
import logging
from typing import Callable, Optional

from backend_client import BackendClient, UsdplTransport
from general_actions import GeneralActions
from hardware_actions import HardwareActions
from host_events import HostEventHub
from lifecycle_router import LifecycleRouter
from panel_session import PanelSession
from periodic_poller import PeriodicPoller
from plugin_consts import LOGGER_NAME
from plugin_enums import BackendError, LogLevel
from reload_engine import ReloadEngine
from state_store import StateStore
from store_catalog import CatalogBrowser
from variant_manager import VariantManager

logger = logging.getLogger(LOGGER_NAME)


class PowerToolsPanel:
    """Everything one running panel needs, wired together"""

    def __init__(self, settings, transport=None, host: Optional[HostEventHub] = None):
        self.settings = settings
        self.session = PanelSession()
        self.store = StateStore()
        self.host = host if host is not None else HostEventHub()
        if transport is None:
            transport = UsdplTransport(settings.get("backend_host"), settings.get("backend_port"))
        self.backend = BackendClient(transport, self.session)

        self.reload_engine = ReloadEngine(self.session, self.backend, self.store, settings)
        self.poller = PeriodicPoller(self.session, self.backend, self.store, self.reload_engine, settings)
        self.router = LifecycleRouter(self.session, self.backend, self.store, self.reload_engine,
                                      self.poller, self.host, settings)
        self.variants = VariantManager(self.session, self.backend, self.store, self.reload_engine,
                                       self.host, settings)
        self.actions = GeneralActions(self.session, self.backend, self.store, self.reload_engine, self.router)
        self.catalog = CatalogBrowser(self.session, self.backend, self.store, settings)
        self.hardware = HardwareActions(self.backend, self.store)

    async def start(self, render_trigger: Optional[Callable[[str], None]] = None) -> bool:
        """
        Handshake with the backend, load everything and hook into Steam

        Args:
            render_trigger: Called with a fresh token after every periodic tick

        Returns:
            True if the backend answered the handshake
        """
        if render_trigger is not None:
            self.router.render_trigger = render_trigger
        try:
            await self.backend.init_backend()
        except BackendError as e:
            logger.error(f"PowerTools backend did not start correctly: {e}")
            return False
        self.session.usdpl_ready = True
        await self.reload_engine.reload()  # technically this is only a load
        self.router.register_callbacks(True)
        return True

    def startup_ok(self) -> bool:
        """False means the panel should offer the manual retry instead of its controls"""
        return self.session.usdpl_ready and self.store.limits() is not None

    async def stop(self) -> None:
        """Unhook everything, then stop talking to the backend"""
        self.session.clear_observers()
        self.backend.log(LogLevel.DEBUG, "PowerTools shutting down")
        await self.router.shutdown()
        self.session.usdpl_ready = False
        await self.backend.close()
