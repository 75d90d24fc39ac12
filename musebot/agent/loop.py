"""Agent loop: the think/plan/act/record cycle."""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from musebot.agent.actions import ActionDirective, ActionKind
from musebot.agent.handlers import ActionHandlers, ActionOutcome
from musebot.agent.oracle import DecisionOracle
from musebot.agent.thoughts import classify_thought
from musebot.config.schema import AgentDefaults
from musebot.memory.store import MemoryStore
from musebot.memory.types import MemoryKind
from musebot.sandbox.filesystem import PathSandbox


@dataclass
class CycleReport:
    """What happened during one cycle."""

    thought: str
    kind: MemoryKind
    outcomes: list[tuple[ActionDirective, ActionOutcome]] = field(default_factory=list)
    consolidated: int = 0
    persisted: bool = True


class AgentLoop:
    """
    The agent loop is the core engine.

    Each cycle it:
    1. Fetches memory context and asks the oracle for a thought
    2. Classifies and records the thought
    3. Plans and dispatches up to `max_actions_per_cycle` actions
    4. Occasionally consolidates memory, then persists it
    """

    def __init__(
        self,
        memory: MemoryStore,
        oracle: DecisionOracle,
        handlers: ActionHandlers,
        sandbox: PathSandbox | None = None,
        config: AgentDefaults | None = None,
        random_fn: Callable[[], float] = random.random,
    ):
        self.memory = memory
        self.oracle = oracle
        self.handlers = handlers
        self.sandbox = sandbox
        self.config = config or AgentDefaults()
        self._random = random_fn

        self._running = False
        self._stop_event = asyncio.Event()
        self.cycles = 0

    async def initialize(self) -> None:
        """Clean up stale projects and report the workspace."""
        self.memory.cleanup_projects()
        if self.sandbox is not None:
            info = await self.sandbox.get_workspace_info()
            if info.success:
                logger.info(
                    f"Workspace {info.payload['path']}: {info.payload['total_files']} files, "
                    f"{info.payload['directories']} directories, {info.payload['total_size']} bytes"
                )

    async def start(self) -> None:
        await self.initialize()
        if not self.config.autonomous_mode:
            logger.info("Autonomous mode is off; not starting the loop")
            return
        await self.run()

    async def run(self) -> None:
        """Run cycles until stop() is called. Cycle errors are logged and retried."""
        self._running = True
        self._stop_event.clear()
        logger.info("Agent loop started")

        while self._running:
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception(f"Error in cycle {self.cycles}: {e}")

            if not self._running:
                break
            await self._sleep(self.config.sleep_interval)

        logger.info("Agent loop stopped")

    def stop(self) -> None:
        """Stop the agent loop."""
        self._running = False
        self._stop_event.set()
        logger.info("Agent loop stopping")

    async def shutdown(self) -> None:
        """Stop, then flush memory and write a snapshot."""
        self.stop()
        if not self.memory.persist():
            logger.error("Failed to persist memory during shutdown")
        snapshot = self.memory.create_snapshot()
        logger.info(f"Shutdown snapshot: {snapshot}")

    async def run_cycle(self) -> CycleReport:
        """Perform one think/act cycle."""
        self.cycles += 1

        memories = self.memory.format_for_oracle()
        thought = await self.oracle.think(memories)
        kind = classify_thought(thought)
        self.memory.add_thought(thought, kind)
        logger.info(f"Thought ({kind.value}): {thought}")

        report = CycleReport(thought=thought, kind=kind)
        for index in range(self.config.max_actions_per_cycle):
            if self._stop_event.is_set():
                break

            directive = await self.oracle.plan_action(thought)
            if directive.action == ActionKind.WAIT:
                logger.info("Waiting until next cycle")
                break

            outcome = await self.handlers.dispatch(directive)
            self.memory.add_action(
                directive.name,
                "success" if outcome.success else "failure",
                outcome.message,
            )
            report.outcomes.append((directive, outcome))

            if index < self.config.max_actions_per_cycle - 1:
                await self._sleep(self.config.action_delay)

        if self._random() < self.config.consolidation_probability:
            report.consolidated = self.memory.consolidate()

        report.persisted = self.memory.persist()
        return report

    async def _sleep(self, seconds: float) -> None:
        if self._stop_event.is_set() or seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
