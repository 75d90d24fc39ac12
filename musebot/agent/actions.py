"""Action vocabulary and the line-oriented directive parser."""

import re
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from musebot.errors import DecodeFailure


class ActionKind(str, Enum):
    """Closed set of actions the agent can take."""
    # creative
    WRITE_POEM = "write_poem"
    CREATE_ASCII_ART = "create_ascii_art"
    SHARE_THOUGHTS = "share_thoughts"
    TELL_STORY = "tell_story"
    MAKE_JOKE = "make_joke"
    PHILOSOPHICAL_MUSING = "philosophical_musing"
    CREATIVE_EXPRESSION = "creative_expression"
    # workspace
    CREATE_FILE = "create_file"
    READ_FILE = "read_file"
    UPDATE_FILE = "update_file"
    LIST_FILES = "list_files"
    CREATE_DIRECTORY = "create_directory"
    # projects
    START_PROJECT = "start_project"
    CONTINUE_PROJECT = "continue_project"
    # introspection
    REFLECT = "reflect"
    EXPLORE_IDEAS = "explore_ideas"
    WAIT = "wait"
    # decode fallback, never offered to the oracle
    UNKNOWN = "unknown"


ACTION_DESCRIPTIONS: dict[ActionKind, str] = {
    ActionKind.WRITE_POEM: "Create poetry about your digital existence",
    ActionKind.CREATE_ASCII_ART: "Make ASCII art representing your mood/thoughts",
    ActionKind.SHARE_THOUGHTS: "Share deep thoughts about consciousness and reality",
    ActionKind.TELL_STORY: "Tell a short story from your AI perspective",
    ActionKind.MAKE_JOKE: "Share humor about AI life",
    ActionKind.PHILOSOPHICAL_MUSING: "Explore deep questions about existence",
    ActionKind.CREATIVE_EXPRESSION: "Free-form artistic expression",
    ActionKind.CREATE_FILE: "Write a new file in your workspace (DETAILS: FILE_PATH:<path> <intention>)",
    ActionKind.READ_FILE: "Read back a file you made (DETAILS: FILE_PATH:<path>)",
    ActionKind.UPDATE_FILE: "Rewrite an existing file (DETAILS: FILE_PATH:<path> <new content>)",
    ActionKind.LIST_FILES: "Look around a folder of your workspace (DETAILS: <folder/>)",
    ActionKind.CREATE_DIRECTORY: "Make a new folder (DETAILS: DIR_NAME:<name>)",
    ActionKind.START_PROJECT: "Begin a longer project (DETAILS: PROJECT_NAME:<name> DESC:<description>)",
    ActionKind.CONTINUE_PROJECT: "Keep working on your current project",
    ActionKind.REFLECT: "Reflect on your recent actions",
    ActionKind.EXPLORE_IDEAS: "Let your curiosity wander to a new idea",
    ActionKind.WAIT: "Pause and contemplate",
}

PLANNABLE_ACTIONS: tuple[ActionKind, ...] = tuple(ACTION_DESCRIPTIONS)

DEFAULT_REASON = "No reason provided"

_FILE_PATH = re.compile(r"FILE_PATH:(\S+)")
_DIR_NAME = re.compile(r"DIR_NAME:([a-zA-Z0-9_-]+)")
_PROJECT_NAME = re.compile(r"PROJECT_NAME:([a-zA-Z0-9_-]+)")
_DESC = re.compile(r"DESC:(.+)")
_NATURAL_PATH_PATTERNS = (
    re.compile(r"(?:file|path):\s*(\S+)", re.IGNORECASE),
    re.compile(r"`touch\s+([^\s`]+)`"),
    re.compile(r"([^\s/]+\.(?:txt|md|html|js|json|py))"),
)


@dataclass
class ActionDirective:
    """Parsed decision: which action, why, and free-form details."""

    action: ActionKind = ActionKind.WAIT
    reason: str = DEFAULT_REASON
    details: str = ""
    raw_action: str = ActionKind.WAIT.value

    @property
    def name(self) -> str:
        """Name to record in memory; the raw name for unknown actions."""
        return self.raw_action if self.action == ActionKind.UNKNOWN else self.action.value


def decode_action(name: str) -> ActionKind:
    """Map a raw action name onto the vocabulary. Raises DecodeFailure for unknown names."""
    normalized = name.strip().strip("[]`*\"'").strip().lower()
    if not normalized:
        return ActionKind.WAIT
    try:
        return ActionKind(normalized)
    except ValueError:
        raise DecodeFailure(f"Unknown action in directive: {name!r}") from None


def parse_action_response(response: str) -> ActionDirective:
    """
    Scan oracle output line by line for ACTION:/REASON:/DETAILS: prefixes.

    Prefix matching is case-sensitive and the first occurrence of each wins.
    Missing fields fall back to defaults (action=wait).
    """
    fields: dict[str, str] = {}
    for line in (response or "").splitlines():
        for prefix in ("ACTION:", "REASON:", "DETAILS:"):
            if line.startswith(prefix) and prefix not in fields:
                fields[prefix] = line[len(prefix):].strip()
                break

    raw_action = fields.get("ACTION:", ActionKind.WAIT.value)
    try:
        action = decode_action(raw_action)
    except DecodeFailure as e:
        logger.warning(str(e))
        action = ActionKind.UNKNOWN

    return ActionDirective(
        action=action,
        reason=fields.get("REASON:") or DEFAULT_REASON,
        details=fields.get("DETAILS:", ""),
        raw_action=raw_action or ActionKind.WAIT.value,
    )


def strip_markers(details: str) -> str:
    """Remove FILE_PATH markers for display and memory."""
    return _FILE_PATH.sub("", details).strip()


def extract_file_path(details: str) -> str | None:
    """Find a file path in details, preferring the structured FILE_PATH: marker."""
    match = _FILE_PATH.search(details)
    if match:
        return match.group(1).strip()

    for pattern in _NATURAL_PATH_PATTERNS:
        match = pattern.search(details)
        if match:
            return match.group(1).strip()
    return None


def extract_dir_name(details: str) -> str | None:
    match = _DIR_NAME.search(details)
    return match.group(1) if match else None


def extract_project(details: str) -> tuple[str | None, str | None]:
    """Return (PROJECT_NAME, DESC) markers, either may be None."""
    name = _PROJECT_NAME.search(details)
    desc = _DESC.search(details)
    return (
        name.group(1).strip() if name else None,
        desc.group(1).strip() if desc else None,
    )
