"""Keyword-priority classification of thoughts."""

from musebot.memory.types import MemoryKind

# Checked in order; the first category with a hit wins.
_CLASSIFIERS: tuple[tuple[MemoryKind, tuple[str, ...]], ...] = (
    (MemoryKind.REFLECTION, ("reflect", "learned", "experience")),
    (MemoryKind.DECISION, ("decide", "will", "going to")),
    (MemoryKind.CURIOSITY, ("curious", "wonder", "explore")),
    (MemoryKind.ACHIEVEMENT, ("completed", "finished", "success")),
)


def classify_thought(thought: str) -> MemoryKind:
    """Classify free text as reflection, decision, curiosity, achievement or plain thought.

    Keywords are matched as plain substrings of the lowercased text.
    """
    lowered = thought.lower()
    for kind, keywords in _CLASSIFIERS:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return MemoryKind.THOUGHT
