"""
Structure sources.

A source returns the raw structure document for an app version. The
document is validated by the StructureStore, not by the source.

- FileStructureSource: JSON files on disk (development, previews)
- MemoryStructureSource: documents held in memory (tests)
- ContentApiClient: the backend (see blockwork.integrations)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

StructureDocument = Mapping[str, Any] | str | bytes


@runtime_checkable
class StructureSource(Protocol):
    """Reads the structure document for an app version."""

    async def fetch_structure(self, version: str) -> StructureDocument: ...


class FileStructureSource:
    """
    Directory of structure files.

    Lookup order for version "1.2.0":
        <directory>/structure-1.2.0.json
        <directory>/structure.json
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def candidates(self, version: str) -> list[Path]:
        return [
            self.directory / f"structure-{version}.json",
            self.directory / "structure.json",
        ]

    async def fetch_structure(self, version: str) -> str:
        """
        Raises:
            FileNotFoundError: If no candidate file exists
        """
        for path in self.candidates(version):
            if path.is_file():
                logger.debug(f"[structure] Reading {path}")
                return await asyncio.to_thread(path.read_text, encoding="utf-8")

        raise FileNotFoundError(
            f"No structure file for version {version} in {self.directory}"
        )


class MemoryStructureSource:
    """
    In-memory documents, optionally per version.

    Example:
        source = MemoryStructureSource(document)
        source.set(updated_document)   # picked up by store.refresh()
    """

    def __init__(
        self,
        document: StructureDocument | None = None,
        *,
        versions: Mapping[str, StructureDocument] | None = None,
    ):
        self._default = document
        self._versions: dict[str, StructureDocument] = dict(versions or {})
        self.fetch_count = 0

    def set(self, document: StructureDocument, version: str | None = None) -> None:
        if version is None:
            self._default = document
        else:
            self._versions[version] = document

    async def fetch_structure(self, version: str) -> StructureDocument:
        """
        Raises:
            LookupError: If there is no document for version
        """
        self.fetch_count += 1
        document = self._versions.get(version, self._default)
        if document is None:
            raise LookupError(f"No structure document for version {version}")
        return document
