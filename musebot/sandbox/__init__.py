"""Sandboxed workspace: containment-checked file CRUD and command execution."""

from musebot.sandbox.filesystem import (
    ALLOWED_EXTENSIONS,
    PathSandbox,
    SandboxResult,
    validate_sandbox_path,
)
from musebot.sandbox.shell import SAFE_COMMANDS, SandboxCommandRunner

__all__ = [
    "ALLOWED_EXTENSIONS",
    "PathSandbox",
    "SAFE_COMMANDS",
    "SandboxCommandRunner",
    "SandboxResult",
    "validate_sandbox_path",
]
