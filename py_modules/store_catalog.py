"""
Community Settings Store
Search results, downloads and uploads of shared settings variants
"""
import logging
from typing import List, Optional, Tuple

from backend_models import StoreMetadata, VariantInfo
from plugin_consts import LOGGER_NAME
from plugin_enums import CatalogState, LogLevel, StoreKey

logger = logging.getLogger(LOGGER_NAME)


class CatalogBrowser:
    """Backs the store results page"""

    def __init__(self, session, backend, store, settings):
        self.session = session
        self.backend = backend
        self.store = store
        self.settings = settings

    def results_view(self) -> Tuple[CatalogState, List[StoreMetadata]]:
        """
        What the results page should show

        Returns:
            FAILED when nothing was cached (the store did not pre-load),
            EMPTY for an empty result list, RESULTS otherwise
        """
        results: Optional[List[StoreMetadata]] = self.store.get(StoreKey.STORE_RESULTS)
        if results is None:
            self.backend.log(LogLevel.WARN, "Store failed to load; got null from cache")
            return CatalogState.FAILED, []
        if len(results) == 0:
            self.backend.log(LogLevel.WARN, "No store results; got array with length 0 from cache")
            return CatalogState.EMPTY, []
        return CatalogState.RESULTS, list(results)

    async def refresh(self, app_id: Optional[str] = None) -> List[StoreMetadata]:
        """Search by app id (the main app id by default) and cache the results"""
        app_id = app_id if app_id is not None else self.settings.main_app_id
        results = await self.backend.search_store_by_app_id(app_id)
        self.store.set(StoreKey.STORE_RESULTS, results)
        return results

    async def download(self, meta: StoreMetadata) -> List[VariantInfo]:
        """Download a shared variant; the backend's full variant list replaces ours"""
        self.backend.log(LogLevel.INFO, f"Downloading settings {meta.name} ({meta.id})")
        variants = await self.backend.store_download_by_id(meta.id)
        self.store.set(StoreKey.VARIANTS_GEN, variants)
        await self.session.notify_profile_change("VariantDownloaded")
        return variants

    async def upload_current(self) -> bool:
        """Upload the loaded variant under the signed-in Steam user"""
        steam_id = self.store.get(StoreKey.INTERNAL_STEAM_ID)
        steam_name = self.store.get(StoreKey.INTERNAL_STEAM_USERNAME)
        if steam_id and steam_name:
            return await self.backend.store_upload(steam_id, steam_name)
        self.backend.log(
            LogLevel.WARN,
            f"Cannot upload with null steamID (is null: {not steam_id}) and/or username (is null: {not steam_name})")
        return False
