"""Agent core module.

Keep this package import-light: the loop pulls in the provider stack, so the
public symbols are exposed via lazy imports and `import musebot.agent.actions`
stays cheap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = ["ActionHandlers", "AgentLoop", "DecisionOracle"]

if TYPE_CHECKING:
    from musebot.agent.handlers import ActionHandlers as ActionHandlers
    from musebot.agent.loop import AgentLoop as AgentLoop
    from musebot.agent.oracle import DecisionOracle as DecisionOracle


def __getattr__(name: str) -> Any:
    if name == "AgentLoop":
        from musebot.agent.loop import AgentLoop

        return AgentLoop
    if name == "ActionHandlers":
        from musebot.agent.handlers import ActionHandlers

        return ActionHandlers
    if name == "DecisionOracle":
        from musebot.agent.oracle import DecisionOracle

        return DecisionOracle
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
