# archive_viewer/core/state.py

import logging
from typing import Optional

from archive_viewer.core.cache import Caches
from archive_viewer.core.config import ApplicationConfig
from archive_viewer.database import ArchiveManager


class ApplicationState:
    """
    Process-wide context: configuration, the archive connection, the
    count caches and whether full-text search is active.

    Nothing needs flushing on exit; all persistent state lives in the
    archive database.
    """

    def __init__(self):
        self.config: Optional[ApplicationConfig] = None
        self.archive: Optional[ArchiveManager] = None
        self.caches = Caches()
        self.full_text_search = False

        self._initialized = False
        self._shutting_down = False

    async def initialize(self, config: Optional[ApplicationConfig] = None,
                         create: bool = False) -> None:
        """Open the archive, sync the search index and start with empty caches"""
        if self._initialized:
            return

        try:
            logging.info("Starting application initialization...")

            self.config = config or ApplicationConfig.from_env()

            self.archive = ArchiveManager(str(self.config.database_path))
            await self.archive.initialize(create=create)

            self.full_text_search = await self.archive.sync_full_text_search(
                self.config.full_text_search
            )

            self.caches = Caches()

            self._initialized = True
            logging.info("Application initialization complete")

        except Exception as e:
            logging.error(f"Application initialization failed: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        if self._shutting_down:
            return

        self._shutting_down = True
        logging.info("Starting application shutdown...")

        if self.archive:
            try:
                await self.archive.close()
                logging.info("Shut down Archive Manager")
            except Exception as e:
                logging.error(f"Error shutting down Archive Manager: {e}")

        self.archive = None
        self._initialized = False
        self._shutting_down = False
        logging.info("Application shutdown complete")

    def is_ready(self) -> bool:
        return (self._initialized and
                self.config is not None and
                self.archive is not None and
                self.archive.is_open)

app_state = ApplicationState()
