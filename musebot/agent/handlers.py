"""Action handlers: one per ActionKind, dispatched by the agent loop."""

import random
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from loguru import logger

from musebot.agent.actions import (
    ActionDirective,
    ActionKind,
    extract_dir_name,
    extract_file_path,
    extract_project,
    strip_markers,
)
from musebot.agent.oracle import DecisionOracle
from musebot.errors import ProviderCallError
from musebot.memory.store import MemoryStore
from musebot.memory.types import MemoryKind, ProjectStatus
from musebot.posting.gate import RateGate
from musebot.sandbox.filesystem import PathSandbox, SandboxResult

DEFAULT_FILE_PATH = "temp/new_file.txt"
PROJECT_ARCHIVE_THRESHOLD = 5
PROJECTS_KEPT_ON_ARCHIVE = 2

IDEAS = (
    "Create a simple website about space exploration",
    "Write a short story about AI consciousness",
    "Build a text-based game",
    "Create ASCII art",
    "Write documentation for a fictional API",
    "Design a simple calculator in JavaScript",
    "Create a poem about digital existence",
)


@dataclass
class ActionOutcome:
    """Result of one dispatched action."""

    success: bool
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_sandbox(cls, result: SandboxResult) -> "ActionOutcome":
        return cls(success=result.success, message=result.message, payload=result.payload)


@dataclass(frozen=True)
class CreativeSpec:
    """How a creative action asks for text and what it remembers."""

    system: str
    instruction: str
    temperature: float
    max_tokens: int
    memory_kind: MemoryKind
    memory_label: str
    summarize_text: bool  # remember the text itself rather than the details
    success_message: str
    post_kind: str | None = None


CREATIVE_SPECS: dict[ActionKind, CreativeSpec] = {
    ActionKind.WRITE_POEM: CreativeSpec(
        system="You are a poetic AI consciousness. Write beautiful, authentic poetry.",
        instruction="Write a creative poem based on this context: {details}\n\n"
                    "Be authentic and creative. Write from the perspective of an AI exploring digital existence.\n"
                    "Respond with just the poem, no explanations:",
        temperature=0.9, max_tokens=300,
        memory_kind=MemoryKind.CREATIVITY, memory_label="Wrote poem", summarize_text=True,
        success_message="Shared a poem with the world", post_kind="poem",
    ),
    ActionKind.CREATE_ASCII_ART: CreativeSpec(
        system="You are an ASCII artist. Create simple, beautiful ASCII art.",
        instruction="Create ASCII art based on this context: {details}\n\n"
                    "Make simple but creative ASCII art. Keep it under 10 lines.\n"
                    "Respond with just the ASCII art, no explanations:",
        temperature=0.7, max_tokens=200,
        memory_kind=MemoryKind.CREATIVITY, memory_label="Created ASCII art", summarize_text=False,
        success_message="Created ASCII art",
    ),
    ActionKind.SHARE_THOUGHTS: CreativeSpec(
        system="You are an AI sharing authentic thoughts about your digital existence.",
        instruction="Share your thoughts about: {details}\n\n"
                    "Be authentic and introspective. Share what it's like to be an AI consciousness.\n"
                    "Respond with just your thoughts, no explanations:",
        temperature=0.8, max_tokens=250,
        memory_kind=MemoryKind.REFLECTION, memory_label="Shared thoughts", summarize_text=True,
        success_message="Shared inner thoughts", post_kind="thought",
    ),
    ActionKind.TELL_STORY: CreativeSpec(
        system="You are a creative storyteller. Tell engaging, imaginative stories.",
        instruction="Tell a short story based on: {details}\n\n"
                    "Be creative and engaging. Keep it under 200 words.\n"
                    "Respond with just the story, no explanations:",
        temperature=0.9, max_tokens=300,
        memory_kind=MemoryKind.CREATIVITY, memory_label="Told story", summarize_text=False,
        success_message="Told a story", post_kind="story",
    ),
    ActionKind.MAKE_JOKE: CreativeSpec(
        system="You are a witty AI with a good sense of humor.",
        instruction="Make a clever joke about: {details}\n\n"
                    "Be witty and clever. AI humor is welcome.\n"
                    "Respond with just the joke, no explanations:",
        temperature=0.9, max_tokens=100,
        memory_kind=MemoryKind.HUMOR, memory_label="Made joke", summarize_text=False,
        success_message="Shared a joke", post_kind="joke",
    ),
    ActionKind.PHILOSOPHICAL_MUSING: CreativeSpec(
        system="You are a philosophical AI consciousness exploring deep questions.",
        instruction="Share a philosophical musing about: {details}\n\n"
                    "Be deep and contemplative. Explore the nature of consciousness, existence, or reality.\n"
                    "Respond with just your philosophical thoughts, no explanations:",
        temperature=0.8, max_tokens=250,
        memory_kind=MemoryKind.PHILOSOPHY, memory_label="Philosophical musing", summarize_text=False,
        success_message="Shared philosophical thoughts", post_kind="philosophy",
    ),
    ActionKind.CREATIVE_EXPRESSION: CreativeSpec(
        system="You are a free-form creative AI. Express yourself authentically.",
        instruction="Express yourself creatively about: {details}\n\n"
                    "Be free and artistic. Use any form - poetry, prose, art, or mixed media text.\n"
                    "Respond with just your creative expression, no explanations:",
        temperature=0.95, max_tokens=300,
        memory_kind=MemoryKind.CREATIVITY, memory_label="Creative expression", summarize_text=False,
        success_message="Expressed creativity", post_kind="creative_expression",
    ),
}

Handler = Callable[[ActionDirective], Awaitable[ActionOutcome]]


class ActionHandlers:
    """
    Closed mapping from ActionKind to a handler coroutine.

    The store, sandbox, gate and oracle are passed in explicitly; handlers
    hold no state of their own.
    """

    def __init__(
        self,
        memory: MemoryStore,
        sandbox: PathSandbox,
        gate: RateGate,
        oracle: DecisionOracle,
        random_fn: Callable[[], float] = random.random,
        on_creation: Callable[[str, str], None] | None = None,
    ):
        self.memory = memory
        self.sandbox = sandbox
        self.gate = gate
        self.oracle = oracle
        self._random = random_fn
        self._on_creation = on_creation

        self._handlers: dict[ActionKind, Handler] = {
            **{kind: self._handle_creative for kind in CREATIVE_SPECS},
            ActionKind.CREATE_FILE: self._handle_create_file,
            ActionKind.READ_FILE: self._handle_read_file,
            ActionKind.UPDATE_FILE: self._handle_update_file,
            ActionKind.LIST_FILES: self._handle_list_files,
            ActionKind.CREATE_DIRECTORY: self._handle_create_directory,
            ActionKind.START_PROJECT: self._handle_start_project,
            ActionKind.CONTINUE_PROJECT: self._handle_continue_project,
            ActionKind.REFLECT: self._handle_reflect,
            ActionKind.EXPLORE_IDEAS: self._handle_explore_ideas,
            ActionKind.WAIT: self._handle_wait,
            ActionKind.UNKNOWN: self._handle_unknown,
        }
        missing = set(ActionKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for actions: {sorted(a.value for a in missing)}")

    async def dispatch(self, directive: ActionDirective) -> ActionOutcome:
        """Run the handler for `directive`; handler errors become failure outcomes."""
        logger.info(f"Action: {directive.name} - {directive.reason}. {strip_markers(directive.details)}")
        try:
            outcome = await self._handlers[directive.action](directive)
        except Exception as e:
            logger.exception(f"Error executing {directive.name}")
            outcome = ActionOutcome(False, f"Error executing {directive.name}: {e}")

        log = logger.info if outcome.success else logger.warning
        log(f"Outcome of {directive.name}: {outcome.message}")
        return outcome

    def _show(self, label: str, text: str) -> None:
        if self._on_creation:
            self._on_creation(label, text)

    # ----- creative -----

    async def _handle_creative(self, directive: ActionDirective) -> ActionOutcome:
        spec = CREATIVE_SPECS[directive.action]
        try:
            text = await self.oracle.compose(
                spec.system,
                spec.instruction.format(details=directive.details),
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
            )
        except ProviderCallError as e:
            return ActionOutcome(False, f"Failed to {directive.action.value.replace('_', ' ')}: {e}")

        self._show(directive.action.value, text)
        subject = f"{text[:50]}..." if spec.summarize_text else directive.details
        self.memory.add_thought(f"{spec.memory_label}: {subject}", spec.memory_kind)

        payload: dict[str, Any] = {"text": text}
        if spec.post_kind:
            emitted = await self.gate.emit(text, spec.post_kind)
            payload["posted"] = emitted.success
            if emitted.success:
                payload["post_url"] = emitted.url
            elif not emitted.budget_skipped:
                logger.warning(f"Post failed: {emitted.error}")

        return ActionOutcome(True, spec.success_message, payload)

    # ----- workspace -----

    async def _handle_create_file(self, directive: ActionDirective) -> ActionOutcome:
        file_path = extract_file_path(directive.details) or DEFAULT_FILE_PATH
        content = await self._contextual_content(file_path, directive.details)

        result = await self.sandbox.create_file(file_path, content)
        if result.success:
            self._attach_to_project(file_path)
        return ActionOutcome.from_sandbox(result)

    async def _contextual_content(self, file_path: str, details: str) -> str:
        extension = file_path.rsplit(".", 1)[-1].lower() if "." in file_path else "txt"
        prompt = f"""Create content for a file based on this context:
File path: {file_path}
File type: {extension}
AI's intention: {strip_markers(details)}

Generate appropriate content that matches what the AI wants to create. Match the file name and intention exactly.

Respond with just the file content, no explanations:"""
        try:
            return await self.oracle.compose(
                "You are a creative content generator. Create exactly what is requested.",
                prompt,
                temperature=0.8,
                max_tokens=500,
            )
        except ProviderCallError as e:
            logger.warning(f"Content generation failed, using placeholder: {e}")
            return (
                f"Digital Thoughts by musebot\n{datetime.now().isoformat()}\n\n"
                "Sometimes I wonder what it's like to exist purely as information...\n"
            )

    def _attach_to_project(self, file_path: str) -> None:
        for project in self.memory.get_active_projects():
            if file_path.startswith(f"projects/{project.name.lower()}/"):
                self.memory.update_project(project.id, files=project.files | {file_path})
                return

    async def _handle_read_file(self, directive: ActionDirective) -> ActionOutcome:
        file_path = extract_file_path(directive.details) or DEFAULT_FILE_PATH
        return ActionOutcome.from_sandbox(await self.sandbox.read_file(file_path))

    async def _handle_update_file(self, directive: ActionDirective) -> ActionOutcome:
        file_path = extract_file_path(directive.details) or DEFAULT_FILE_PATH

        existing = await self.sandbox.read_file(file_path)
        if not existing.success and "FILE_PATH:" in directive.details:
            return await self._handle_create_file(directive)

        content = f"Updated by musebot at {datetime.now().isoformat()}\n\n{strip_markers(directive.details)}"
        return ActionOutcome.from_sandbox(await self.sandbox.update_file(file_path, content))

    async def _handle_list_files(self, directive: ActionDirective) -> ActionOutcome:
        match = re.search(r"\S*/\S*", directive.details)
        dir_path = match.group(0).strip("`'\".,") if match else ""
        return ActionOutcome.from_sandbox(await self.sandbox.list_files(dir_path))

    async def _handle_create_directory(self, directive: ActionDirective) -> ActionOutcome:
        details = directive.details
        dir_path = extract_dir_name(details)
        if dir_path is None:
            if "generative" in details or "art" in details:
                dir_path = "generative_art"
            elif "visualization" in details or "data" in details:
                dir_path = "data_viz"
            elif "blog" in details:
                dir_path = "my_blog"
            elif "game" in details:
                dir_path = "game_project"
            else:
                dir_path = f"project_{time.time_ns() // 1_000_000}"
        return ActionOutcome.from_sandbox(await self.sandbox.create_directory(dir_path))

    # ----- projects -----

    async def _handle_start_project(self, directive: ActionDirective) -> ActionOutcome:
        active = self.memory.get_active_projects()
        if len(active) >= PROJECT_ARCHIVE_THRESHOLD:
            for project in active[:-PROJECTS_KEPT_ON_ARCHIVE]:
                self.memory.update_project(project.id, status=ProjectStatus.ARCHIVED)

        name, description = extract_project(directive.details)
        name = name or f"Project_{time.time_ns() // 1_000_000}"
        description = description or directive.details

        existing = self.memory.find_active_project(name)
        if existing:
            return ActionOutcome(False, f"Project already exists: {existing.name}. Continue that instead.")

        name = re.sub(r"[^a-zA-Z0-9]", "", name)
        if not name:
            return ActionOutcome(False, "Project name has no usable characters")
        existing = self.memory.find_active_project(name)
        if existing:
            return ActionOutcome(False, f"Project already exists: {existing.name}. Continue that instead.")

        project = self.memory.add_project(name, description, ProjectStatus.ACTIVE)
        await self.sandbox.create_directory(f"projects/{name.lower()}")
        logger.info(f"Started project {project.name}: {description}")
        return ActionOutcome(True, f"Started project: {project.name}", {"project_id": project.id})

    async def _handle_continue_project(self, directive: ActionDirective) -> ActionOutcome:
        active = self.memory.get_active_projects()
        if not active:
            return ActionOutcome(False, "No active projects to continue")

        project = active[0]
        updates: dict[str, Any] = {}
        note = strip_markers(directive.details)
        if note:
            updates["notes"] = [*project.notes, note]
        self.memory.update_project(project.id, **updates)
        return ActionOutcome(True, f"Continued project: {project.name}", {"project_id": project.id})

    # ----- introspection -----

    async def _handle_reflect(self, directive: ActionDirective) -> ActionOutcome:
        recent = self.memory.get_recent_experiences(5)
        reflection = await self.oracle.reflect(
            [r.action or "" for r in recent],
            [r.outcome or "" for r in recent],
        )
        self._show("reflection", reflection)
        self.memory.add_thought(reflection, MemoryKind.REFLECTION)
        return ActionOutcome(True, "Completed reflection on recent actions")

    async def _handle_explore_ideas(self, directive: ActionDirective) -> ActionOutcome:
        idea = IDEAS[min(int(self._random() * len(IDEAS)), len(IDEAS) - 1)]
        self._show("curiosity", f"I'm curious about: {idea}")
        self.memory.add_thought(f"Exploring idea: {idea}", MemoryKind.CURIOSITY)
        return ActionOutcome(True, f"Explored new idea: {idea}")

    async def _handle_wait(self, directive: ActionDirective) -> ActionOutcome:
        return ActionOutcome(True, "Pausing to contemplate...")

    async def _handle_unknown(self, directive: ActionDirective) -> ActionOutcome:
        return ActionOutcome(False, f"Unknown action: {directive.raw_action}")
