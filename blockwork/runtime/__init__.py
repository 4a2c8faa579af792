"""Structure loading and session storage."""

from .sources import (
    FileStructureSource,
    MemoryStructureSource,
    StructureDocument,
    StructureSource,
)
from .store import StructureNotLoaded, StructureStore

__all__ = [
    "FileStructureSource",
    "MemoryStructureSource",
    "StructureDocument",
    "StructureNotLoaded",
    "StructureSource",
    "StructureStore",
]
