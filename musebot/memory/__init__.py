"""Memory system for musebot - session buffer, archive, experiences, projects."""

from musebot.memory.store import MemoryStore
from musebot.memory.types import (
    MemoryContext,
    MemoryKind,
    MemoryRecord,
    Project,
    ProjectStatus,
)

__all__ = [
    "MemoryContext",
    "MemoryKind",
    "MemoryRecord",
    "MemoryStore",
    "Project",
    "ProjectStatus",
]
