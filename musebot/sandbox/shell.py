"""Command execution inside the sandbox.

Security Features:
- Allowlist: only read-only/informational commands run
- No shell: arguments are split with shlex and executed directly
- Argument fence: absolute or parent-traversing arguments must stay in the root
- Wall-clock timeout; the process is killed once output passes the ceiling
"""

import asyncio
import contextlib
import os
import shlex
from pathlib import Path

from loguru import logger

from musebot.sandbox.filesystem import SandboxResult

SAFE_COMMANDS = frozenset({"dir", "ls", "echo", "type", "cat", "head", "tail", "find", "grep"})

# find predicates that write, delete or spawn processes
BLOCKED_FIND_ARGS = frozenset({
    "-exec", "-execdir", "-ok", "-okdir", "-delete",
    "-fprint", "-fprint0", "-fprintf", "-fls",
})

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_OUTPUT = 1024 * 1024  # 1 MiB
MAX_COMMAND_LENGTH = 2000
READ_CHUNK_SIZE = 64 * 1024


class SandboxCommandRunner:
    """Runs allow-listed commands with the sandbox root as the fence."""

    def __init__(
        self,
        root: Path,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT,
        allowed_commands: frozenset[str] = SAFE_COMMANDS,
    ):
        self.root = Path(root).resolve()
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.allowed_commands = allowed_commands

    def _guard_command(self, args: list[str], cwd: Path) -> str | None:
        """Return a rejection reason, or None when the command may run."""
        base_command = args[0].lower()
        if base_command not in self.allowed_commands:
            return "Command not allowed in sandbox"

        for arg in args[1:]:
            if base_command == "find" and arg in BLOCKED_FIND_ARGS:
                return f"Argument not allowed in sandbox: {arg}"
            if arg.startswith("-"):
                continue
            if os.path.isabs(arg) or ".." in Path(arg).parts:
                target = (cwd / arg).resolve()
                try:
                    target.relative_to(self.root)
                except ValueError:
                    logger.warning(f"SECURITY: Command argument escape blocked - arg={arg!r}")
                    return "Command argument outside sandbox not allowed"
        return None

    async def run(self, command: str, cwd: Path) -> SandboxResult:
        """Execute `command` in `cwd`, which the caller has already fenced."""
        command = command.strip()
        if not command:
            return SandboxResult.fail("Empty command", "Failed to execute command")
        if len(command) > MAX_COMMAND_LENGTH:
            return SandboxResult.fail(
                f"Command too long (max {MAX_COMMAND_LENGTH} characters)",
                "Failed to execute command",
            )

        try:
            args = shlex.split(command)
        except ValueError as e:
            return SandboxResult.fail(f"Could not parse command: {e}", "Failed to execute command")

        reason = self._guard_command(args, cwd)
        if reason:
            return SandboxResult.fail(reason, "Failed to execute command")

        logger.info(f"Sandbox command: {command[:100]}{'...' if len(command) > 100 else ''}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
            )
        except OSError as e:
            return SandboxResult.fail(str(e), "Failed to execute command")

        try:
            stdout, stderr, exceeded = await asyncio.wait_for(
                self._collect_output(process), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            _kill(process)
            await process.wait()
            return SandboxResult.fail(
                f"Command timed out after {self.timeout} seconds",
                "Failed to execute command",
            )

        stdout_text = self._clip(stdout, self.max_output_bytes)
        stderr_text = self._clip(stderr, max(self.max_output_bytes - len(stdout), 0))

        if exceeded:
            logger.warning(f"Sandbox command killed after {self.max_output_bytes} bytes of output")
            result = SandboxResult.fail(
                f"Output exceeded {self.max_output_bytes} bytes",
                "Failed to execute command",
            )
            result.payload = {"stdout": stdout_text, "stderr": stderr_text, "exit_code": process.returncode}
            return result

        if process.returncode != 0:
            result = SandboxResult.fail(
                f"Exit code {process.returncode}",
                "Failed to execute command",
            )
            result.payload = {"stdout": stdout_text, "stderr": stderr_text, "exit_code": process.returncode}
            return result

        return SandboxResult.ok(
            f"Executed: {command}",
            stdout=stdout_text,
            stderr=stderr_text,
            exit_code=process.returncode,
        )

    async def _collect_output(self, process: asyncio.subprocess.Process) -> tuple[bytes, bytes, bool]:
        """Read both pipes until exit, killing the process once combined output passes the ceiling."""
        stdout = bytearray()
        stderr = bytearray()
        exceeded = False

        async def drain(stream: asyncio.StreamReader, buffer: bytearray) -> None:
            nonlocal exceeded
            while not exceeded:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    return
                buffer.extend(chunk)
                if len(stdout) + len(stderr) > self.max_output_bytes:
                    exceeded = True
                    _kill(process)

        await asyncio.gather(
            drain(process.stdout, stdout),
            drain(process.stderr, stderr),
        )
        await process.wait()
        return bytes(stdout), bytes(stderr), exceeded

    @staticmethod
    def _clip(data: bytes, limit: int) -> str:
        if len(data) <= limit:
            return data.decode("utf-8", errors="replace")
        return data[:limit].decode("utf-8", errors="replace") + f"\n... (truncated, {len(data) - limit} more bytes)"


def _kill(process: asyncio.subprocess.Process) -> None:
    # the process may already have exited on its own
    with contextlib.suppress(ProcessLookupError):
        process.kill()
