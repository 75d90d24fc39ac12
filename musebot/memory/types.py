"""Memory types (Pydantic models with camelCase JSON aliases)."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_serializer


class MemoryKind(str, Enum):
    """Kind of a memory record."""
    THOUGHT = "thought"
    REFLECTION = "reflection"
    DECISION = "decision"
    CURIOSITY = "curiosity"
    ACHIEVEMENT = "achievement"
    ACTION = "action"
    # Emitted by the creative handlers
    CREATIVITY = "creativity"
    HUMOR = "humor"
    PHILOSOPHY = "philosophy"


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class MemoryRecord(BaseModel):
    """A single timestamped event."""

    id: int
    timestamp: str
    kind: MemoryKind = MemoryKind.THOUGHT
    content: str = ""
    action: str | None = Field(None, alias="actionName")
    outcome: str | None = None
    details: str | None = None
    scope: Literal["session", "archived"] = "session"

    model_config = {"populate_by_name": True}

    @property
    def is_action(self) -> bool:
        return self.kind == MemoryKind.ACTION

    @property
    def succeeded(self) -> bool:
        return self.is_action and self.outcome == "success"


class Project(BaseModel):
    """A unit of longer-running creative work."""

    id: int
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    created: str
    last_worked: str = Field(alias="lastWorked")
    notes: list[str] = []
    files: set[str] = set()

    model_config = {"populate_by_name": True}

    @field_serializer("files")
    def _serialize_files(self, files: set[str]) -> list[str]:
        return sorted(files)

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE


@dataclass
class MemoryContext:
    """Read-only snapshot used to build the next decision request."""

    recent_thoughts: list[MemoryRecord] = field(default_factory=list)
    active_projects: list[Project] = field(default_factory=list)
    recent_actions: list[MemoryRecord] = field(default_factory=list)
    session_length: int = 0
