"""
Settings Variant Management
Create and select named settings variants of the current profile
"""
import logging
from typing import Callable, List, Optional

from backend_models import VariantInfo
from plugin_consts import LOGGER_NAME, NEW_VARIANT_ID
from plugin_enums import BackendError, LogLevel

logger = logging.getLogger(LOGGER_NAME)


class VariantManager:
    """
    Variant state machine: idle -> loading -> idle

    While loading the variant selector must not be shown; the panel shows a
    busy indicator instead (see show_selector).
    """

    def __init__(self, session, backend, store, reload_engine, host, settings):
        self.session = session
        self.backend = backend
        self.store = store
        self.reload_engine = reload_engine
        self.host = host
        self.settings = settings

    @property
    def is_loading(self) -> bool:
        return self.session.is_variant_loading

    @property
    def show_selector(self) -> bool:
        return not self.session.is_variant_loading

    # Selector view

    def variant_options(self) -> List[VariantInfo]:
        return self.store.variants()

    def selected_option(self) -> Optional[VariantInfo]:
        """The option matching the current variant id, if any"""
        current = self.store.current_variant()
        if current is None:
            return None
        self.backend.log(LogLevel.DEBUG, f"Looking for variant data.id {current.id}")
        for option in self.variant_options():
            if option.id == current.id:
                return option
        return None

    def default_label(self) -> Optional[str]:
        current = self.store.current_variant()
        if current is not None and current.name:
            return current.name
        options = self.variant_options()
        return options[0].name if options else None

    # Transitions

    async def create_variant(self, name: str, close_dialog: Optional[Callable[[], None]] = None) -> bool:
        """
        Create a new variant from the name typed into the text dialog

        The backend assigns the id. The loading flag stays set afterwards
        unless clear_variant_loading_on_create is enabled.

        Args:
            name: Name for the new variant
            close_dialog: Closes the text entry dialog, if one is open

        Returns:
            The backend's load result
        """
        if close_dialog is not None:
            close_dialog()
        logger.info(f"New variant name: {name}")
        self.session.is_variant_loading = True
        try:
            ok = await self.backend.load_general_settings_variant(NEW_VARIANT_ID, name)
        except BackendError:
            self.session.is_variant_loading = False
            raise
        try:
            await self.host.open_quick_access_menu()
        except Exception as e:
            logger.warning(f"Could not return to the quick access menu: {e}")

        self.backend.log(LogLevel.DEBUG, f"New settings variant ok? {ok}")
        await self.reload_engine.reload()
        if self.settings.get("clear_variant_loading_on_create", False):
            self.session.is_variant_loading = False
        await self.backend.wait_for_complete()
        self.backend.log(LogLevel.DEBUG, "Trying to tell UI to re-render due to new settings variant")
        await self.session.notify_profile_change("VariantCreated")
        return ok

    async def select_variant(self, target: VariantInfo) -> bool:
        """
        Switch to another existing variant

        Returns:
            False when target is already the current variant (nothing is
            sent to the backend), True once the switch completed
        """
        current = self.store.current_variant()
        if current is not None and target.id == current.id:
            return False

        self.session.is_variant_loading = True
        self.backend.log(LogLevel.DEBUG, f"Profile variant dropdown selected {target.id}")
        try:
            ok = await self.backend.load_general_settings_variant(target.id, target.name)
            self.backend.log(LogLevel.DEBUG, f"Loaded settings variant ok? {ok}")
            await self.reload_engine.reload()
        finally:
            self.session.is_variant_loading = False
        await self.backend.wait_for_complete()
        self.backend.log(LogLevel.DEBUG, "Trying to tell UI to re-render due to newly-selected settings variant")
        await self.session.notify_profile_change("VariantSelected")
        return True
