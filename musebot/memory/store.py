"""Two-tier memory store: session buffer, long-term archive, experiences, projects."""

import json
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from musebot.config.schema import MemoryConfig
from musebot.errors import PersistenceFailure
from musebot.memory.types import (
    MemoryContext,
    MemoryKind,
    MemoryRecord,
    Project,
    ProjectStatus,
)

LONG_TERM_FILE = "long-term.json"
EXPERIENCES_FILE = "experiences.json"
PROJECTS_FILE = "projects.json"

RECENT_THOUGHT_WINDOW = 5
RECENT_ACTION_WINDOW = 3

_CONSOLIDATED_KINDS = {MemoryKind.REFLECTION, MemoryKind.ACHIEVEMENT}


def _trim(items: list, high_water: int, low_water: int) -> list:
    """Keep the most recent `low_water` items once `high_water` is exceeded."""
    if len(items) > high_water:
        return items[-low_water:]
    return items


class MemoryStore:
    """
    Memory system for the agent.

    The session buffer lives only for the current run. The archive, the
    experience log and the project registry are persisted as three JSON
    resources under `memory_path`.
    """

    def __init__(
        self,
        memory_path: Path,
        config: MemoryConfig | None = None,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        self.memory_path = Path(memory_path)
        self.config = config or MemoryConfig()
        self._now = now_fn
        self._last_id = 0

        self.session: list[MemoryRecord] = []
        self.archive: list[MemoryRecord] = []
        self.experiences: list[MemoryRecord] = []
        self.projects: list[Project] = []

        try:
            self.memory_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Memory initialization error: {e}")

    # ----- identity & time -----

    def _next_id(self) -> int:
        """Creation-time derived id, strictly increasing for the process lifetime."""
        candidate = time.time_ns() // 1_000_000
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def _timestamp(self) -> str:
        return self._now().isoformat()

    # ----- records -----

    def add_thought(self, content: str, kind: MemoryKind | str = MemoryKind.THOUGHT) -> MemoryRecord:
        """Append a thought to the session buffer."""
        record = MemoryRecord(
            id=self._next_id(),
            timestamp=self._timestamp(),
            kind=MemoryKind(kind),
            content=content,
        )
        self._append_session(record)
        return record

    def add_action(self, action: str, outcome: str, details: str = "") -> MemoryRecord:
        """Append an action outcome to the session buffer and the experience log."""
        record = MemoryRecord(
            id=self._next_id(),
            timestamp=self._timestamp(),
            kind=MemoryKind.ACTION,
            content=f"{action}: {outcome}",
            action=action,
            outcome=outcome,
            details=details,
        )
        self._append_session(record)
        self.experiences.append(record)
        self.experiences = _trim(
            self.experiences,
            self.config.experience_high_water,
            self.config.experience_low_water,
        )
        return record

    def _append_session(self, record: MemoryRecord) -> None:
        self.session.append(record)
        self.session = _trim(
            self.session,
            self.config.session_high_water,
            self.config.session_low_water,
        )

    def get_recent_memories(self, count: int = 10) -> list[MemoryRecord]:
        return self.session[-count:] if count > 0 else []

    def get_recent_experiences(self, count: int = 5) -> list[MemoryRecord]:
        return self.experiences[-count:] if count > 0 else []

    # ----- projects -----

    def add_project(
        self,
        name: str,
        description: str,
        status: ProjectStatus | str = ProjectStatus.ACTIVE,
    ) -> Project:
        """Register a new project."""
        now = self._timestamp()
        project = Project(
            id=self._next_id(),
            name=name,
            description=description,
            status=ProjectStatus(status),
            created=now,
            last_worked=now,
        )
        self.projects.append(project)
        logger.debug(f"Project added: {project.name} ({project.status.value})")
        return project

    def get_project(self, project_id: int) -> Project | None:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def get_active_projects(self) -> list[Project]:
        return [p for p in self.projects if p.is_active]

    def find_active_project(self, name: str, exclude_id: int | None = None) -> Project | None:
        """Case-insensitive name lookup among active projects."""
        key = name.casefold()
        for project in self.get_active_projects():
            if project.id != exclude_id and project.name.casefold() == key:
                return project
        return None

    def update_project(self, project_id: int, **updates: Any) -> Project | None:
        """
        Merge `updates` into a project.

        Fields present in `updates` replace existing ones and `last_worked` is
        always refreshed. Returns None when the id is unknown or when a rename
        would duplicate another active project's name.
        """
        for index, project in enumerate(self.projects):
            if project.id != project_id:
                continue

            updates.pop("id", None)
            new_name = updates.get("name")
            if new_name is not None and self.find_active_project(new_name, exclude_id=project_id):
                logger.warning(f"Rejected duplicate project name: {new_name}")
                return None

            data = project.model_dump()
            data.update(updates)
            data["last_worked"] = self._timestamp()
            try:
                updated = Project.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Invalid project update for {project_id}: {e}")
                return None
            self.projects[index] = updated
            return updated
        return None

    def cleanup_projects(self) -> int:
        """Demote active projects beyond the most recent `max_active_projects`."""
        self.projects.sort(key=lambda p: datetime.fromisoformat(p.created), reverse=True)

        cleaned = 0
        for project in self.get_active_projects()[self.config.max_active_projects:]:
            project.status = ProjectStatus.COMPLETED
            cleaned += 1

        if cleaned:
            logger.info(f"Marked {cleaned} old projects as completed")
        return cleaned

    # ----- consolidation & context -----

    def consolidate(self) -> int:
        """Promote qualifying session records into the archive."""
        archived_ids = {r.id for r in self.archive}
        promoted = [
            r.model_copy(update={"scope": "archived"})
            for r in self.session
            if r.id not in archived_ids
            and (r.kind in _CONSOLIDATED_KINDS or r.succeeded)
        ]

        self.archive.extend(promoted)
        self.archive = _trim(
            self.archive,
            self.config.archive_high_water,
            self.config.archive_low_water,
        )

        if promoted:
            logger.debug(f"Consolidated {len(promoted)} memories into long-term storage")
        return len(promoted)

    def get_context(self) -> MemoryContext:
        recent = self.get_recent_memories(RECENT_THOUGHT_WINDOW)
        return MemoryContext(
            recent_thoughts=[r for r in recent if r.kind == MemoryKind.THOUGHT],
            active_projects=list(self.get_active_projects()),
            recent_actions=self.get_recent_experiences(RECENT_ACTION_WINDOW),
            session_length=len(self.session),
        )

    def format_for_oracle(self) -> list[dict[str, str]]:
        """Render the context as chat messages for the decision oracle."""
        context = self.get_context()
        messages = [
            {"role": "assistant", "content": thought.content}
            for thought in context.recent_thoughts
        ]

        if context.recent_actions:
            actions_text = ", ".join(
                f"{r.action}: {r.outcome}" for r in context.recent_actions
            )
            messages.append({"role": "user", "content": f"Recent actions: {actions_text}"})

        return messages

    # ----- persistence -----

    def load(self) -> None:
        """Load archive, experiences and projects. Each resource degrades independently."""
        self.archive = self._read_list(LONG_TERM_FILE, MemoryRecord)
        self.experiences = self._read_list(EXPERIENCES_FILE, MemoryRecord)
        self.projects = self._read_list(PROJECTS_FILE, Project)

        known_ids = [r.id for r in self.archive + self.experiences] + [p.id for p in self.projects]
        if known_ids:
            self._last_id = max(self._last_id, max(known_ids))

        logger.info(
            f"Loaded {len(self.archive)} memories, {len(self.experiences)} experiences, "
            f"{len(self.projects)} projects"
        )

    def persist(self) -> bool:
        """Write archive, experiences and projects. Returns False if any write failed."""
        ok = True
        for filename, items in (
            (LONG_TERM_FILE, self.archive),
            (EXPERIENCES_FILE, self.experiences),
            (PROJECTS_FILE, self.projects),
        ):
            payload = [item.model_dump(mode="json", by_alias=True) for item in items]
            try:
                self._write_json(filename, payload)
            except PersistenceFailure as e:
                logger.error(str(e))
                ok = False
        return ok

    def stats(self) -> dict[str, int]:
        return {
            "session_memories": len(self.session),
            "long_term_memories": len(self.archive),
            "experiences": len(self.experiences),
            "active_projects": len(self.get_active_projects()),
            "total_projects": len(self.projects),
        }

    def create_snapshot(self) -> dict[str, Any]:
        """Write a timestamped diagnostics snapshot and return it."""
        snapshot = {"timestamp": self._timestamp(), **self.stats()}
        try:
            self._write_json(f"snapshot-{time.time_ns() // 1_000_000}.json", snapshot)
        except PersistenceFailure as e:
            logger.error(str(e))
        return snapshot

    def _read_list(self, filename: str, model: type) -> list:
        path = self.memory_path / filename
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading {filename}: {e}")
            return []

        items = []
        for entry in data:
            try:
                items.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid entry in {filename}: {e.error_count()} errors")
        return items

    def _write_json(self, filename: str, payload: Any) -> None:
        """Write JSON to a temp file and atomically replace the target. Raises PersistenceFailure."""
        target = self.memory_path / filename
        tmp_path = None
        try:
            self.memory_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{filename}.", dir=str(self.memory_path))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            raise PersistenceFailure(f"Error saving {filename}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
