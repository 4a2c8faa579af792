"""
Structure Store.

Holds the validated AppStructure for the session.

Lifecycle:
    - load(): read and validate once; later calls return the cached structure
    - refresh(): explicit re-read and re-validation. If the new document is
      invalid, StructureInvalid is raised and the previous structure stays
      active
    - There is no automatic polling of the structure itself

Concurrent load()/refresh() calls are serialized with an asyncio.Lock.

Usage:
    store = StructureStore(FileStructureSource("config/"), app_version="1.0.0")
    await store.load()

    page = store.page("home")
    tabs = store.navigation()
"""

from __future__ import annotations

import asyncio
import logging
import time

from blockwork.errors import BlockworkError
from blockwork.schema import (
    AppMeta,
    AppStructure,
    BuildingBlockDescriptor,
    NavigationItem,
    PageDefinition,
    validate_structure,
)

from .sources import StructureSource

logger = logging.getLogger(__name__)


class StructureNotLoaded(BlockworkError):
    """Raised when the structure is accessed before load()."""

    def __init__(self) -> None:
        super().__init__("App structure is not loaded; call load() first")


class StructureStore:
    """Session-wide holder of the validated app structure."""

    def __init__(self, source: StructureSource, app_version: str = "1.0.0"):
        self.source = source
        self.app_version = app_version
        self._structure: AppStructure | None = None
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._structure is not None

    @property
    def loaded_at(self) -> float | None:
        """Wall-clock time of the last successful load/refresh."""
        return self._loaded_at

    @property
    def structure(self) -> AppStructure:
        """
        Raises:
            StructureNotLoaded: Before the first successful load()
        """
        if self._structure is None:
            raise StructureNotLoaded()
        return self._structure

    async def load(self) -> AppStructure:
        """Load once. StructureInvalid propagates; nothing is stored."""
        if self._structure is not None:
            return self._structure

        async with self._lock:
            if self._structure is None:
                self._set(await self._read())
        return self._structure

    async def refresh(self) -> AppStructure:
        """
        Re-read and re-validate.

        Raises:
            StructureInvalid: The previous structure (if any) stays active
        """
        async with self._lock:
            structure = await self._read()
            previous = self._structure
            self._set(structure)

        if previous is not None and previous.version != structure.version:
            logger.info(f"[structure] Refreshed v{previous.version} -> v{structure.version}")
        return structure

    async def _read(self) -> AppStructure:
        document = await self.source.fetch_structure(self.app_version)
        return validate_structure(document)

    def _set(self, structure: AppStructure) -> None:
        self._structure = structure
        self._loaded_at = time.time()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def meta(self) -> AppMeta:
        return self.structure.meta

    def page(self, page_id: str) -> PageDefinition | None:
        return self.structure.page(page_id)

    def block(self, block_id: str) -> BuildingBlockDescriptor | None:
        return self.structure.block(block_id)

    def pages(self) -> list[PageDefinition]:
        return list(self.structure.pages)

    def navigation(self) -> list[NavigationItem]:
        """Visible navigation items sorted by order."""
        return self.structure.visible_navigation()
