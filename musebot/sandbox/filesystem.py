"""Sandboxed file system: containment-checked CRUD under a fixed root."""

import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from musebot.errors import ContainmentViolation

ALLOWED_EXTENSIONS = frozenset({
    ".txt", ".md", ".json", ".js", ".html", ".css", ".py", ".java", ".cpp", ".c",
    ".xml", ".yaml", ".yml", ".csv", ".log", ".sh", ".bat", ".ps1", ".sql",
})
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_MAX_WALK_DEPTH = 32
SANDBOX_SUBDIRS = ("projects", "experiments", "writings", "temp")


@dataclass
class SandboxResult:
    """Uniform result of a sandbox operation."""

    success: bool
    message: str
    error: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **payload: Any) -> "SandboxResult":
        return cls(success=True, message=message, payload=payload)

    @classmethod
    def fail(cls, error: str, message: str) -> "SandboxResult":
        return cls(success=False, message=f"{message}: {error}", error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error is not None:
            data["error"] = self.error
        data.update(self.payload)
        return data


def validate_sandbox_path(path_str: str, root: Path, allow_root: bool = False) -> Path:
    """
    Resolve a sandbox-relative path and ensure it stays within the root.

    Args:
        path_str: Requested path (relative to the root; may contain .., ~ is not expanded)
        root: Resolved sandbox root
        allow_root: Whether the root itself is an acceptable target

    Returns:
        Resolved absolute Path object

    Raises:
        ContainmentViolation: If the path escapes the sandbox root
    """
    if "\x00" in path_str:
        raise ContainmentViolation("Invalid characters in path")

    if not path_str.strip():
        if allow_root:
            return root
        raise ContainmentViolation("Empty path is not allowed")

    # An absolute input replaces the root in the join and fails the check below
    resolved = (root / path_str).resolve()

    if resolved == root:
        if allow_root:
            return resolved
        raise ContainmentViolation("Path outside sandbox not allowed")

    try:
        resolved.relative_to(root)
    except ValueError:
        logger.warning(f"SECURITY: Path escape blocked - input={path_str!r} resolved={resolved} root={root}")
        raise ContainmentViolation("Path outside sandbox not allowed")

    return resolved


class PathSandbox:
    """
    File operations confined to a single root directory.

    Every operation returns a SandboxResult and never raises past this class.
    """

    def __init__(
        self,
        root: Path,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        allowed_extensions: frozenset[str] = ALLOWED_EXTENSIONS,
        max_walk_depth: int = DEFAULT_MAX_WALK_DEPTH,
        command_runner: "SandboxCommandRunner | None" = None,
    ):
        from musebot.sandbox.shell import SandboxCommandRunner

        self.root = Path(root).expanduser().resolve()
        self.max_file_size = max_file_size
        self.allowed_extensions = allowed_extensions
        self.max_walk_depth = max_walk_depth
        self.command_runner = command_runner or SandboxCommandRunner(self.root)
        self._init_dirs()

    def _init_dirs(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            for name in SANDBOX_SUBDIRS:
                (self.root / name).mkdir(exist_ok=True)
            logger.info(f"Sandbox initialized at {self.root}")
        except OSError as e:
            logger.error(f"Sandbox initialization error: {e}")

    # ----- policy checks -----

    def is_extension_allowed(self, path: Path | str) -> bool:
        ext = Path(path).suffix.lower()
        return ext == "" or ext in self.allowed_extensions

    def _check_writable(self, file_path: Path, content: str) -> int:
        if not self.is_extension_allowed(file_path):
            raise ContainmentViolation("File extension not allowed")
        size = len(content.encode("utf-8"))
        if size > self.max_file_size:
            raise ContainmentViolation("File size exceeds limit")
        return size

    # ----- CRUD -----

    async def create_file(self, path: str, content: str = "") -> SandboxResult:
        try:
            file_path = validate_sandbox_path(path, self.root)
            size = self._check_writable(file_path, content)
            if file_path.is_dir():
                return SandboxResult.fail("Path is a directory", "Failed to create file")

            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
            return SandboxResult.ok(f"Created file: {path}", path=path, size=size)
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to create file")

    async def read_file(self, path: str) -> SandboxResult:
        try:
            file_path = validate_sandbox_path(path, self.root)
            if not file_path.exists():
                return SandboxResult.fail("File does not exist", "Failed to read file")
            if not file_path.is_file():
                return SandboxResult.fail("Not a file", "Failed to read file")

            size = file_path.stat().st_size
            if size > self.max_file_size:
                return SandboxResult.fail("File too large to read", "Failed to read file")

            content = file_path.read_text(encoding="utf-8", errors="replace")
            return SandboxResult.ok(f"Read file: {path}", path=path, content=content, size=size)
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to read file")

    async def update_file(self, path: str, content: str) -> SandboxResult:
        try:
            file_path = validate_sandbox_path(path, self.root)
            if not file_path.is_file():
                return SandboxResult.fail("File does not exist", "Failed to update file")
            size = self._check_writable(file_path, content)

            file_path.write_text(content, encoding="utf-8")
            return SandboxResult.ok(f"Updated file: {path}", path=path, size=size)
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to update file")

    async def delete_file(self, path: str) -> SandboxResult:
        try:
            target = self._resolve_for_removal(path)
            if not (target.exists() or target.is_symlink()):
                return SandboxResult.fail("File does not exist", "Failed to delete file")

            if target.is_symlink() or not target.is_dir():
                target.unlink()
            else:
                shutil.rmtree(target)
            return SandboxResult.ok(f"Deleted file: {path}", path=path)
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to delete file")

    def _resolve_for_removal(self, path: str) -> Path:
        """Resolve the parent but not the final component, so links are removed rather than followed."""
        if "\x00" in path or not path.strip():
            raise ContainmentViolation("Invalid path")
        joined = Path(os.path.normpath(self.root / path))
        candidate = joined.parent.resolve() / joined.name
        try:
            candidate.relative_to(self.root)
        except ValueError:
            logger.warning(f"SECURITY: Delete outside sandbox blocked - input={path!r}")
            raise ContainmentViolation("Path outside sandbox not allowed")
        if candidate == self.root or not joined.name:
            raise ContainmentViolation("Refusing to delete the sandbox root")
        return candidate

    async def list_files(self, path: str = "") -> SandboxResult:
        try:
            dir_path = validate_sandbox_path(path, self.root, allow_root=True)
            if not dir_path.exists():
                return SandboxResult.fail("Directory does not exist", "Failed to list files")
            if not dir_path.is_dir():
                return SandboxResult.fail("Not a directory", "Failed to list files")

            files: list[dict[str, Any]] = []
            directories: list[str] = []
            for item in sorted(dir_path.iterdir()):
                if item.is_dir():
                    directories.append(item.name)
                else:
                    stats = item.stat(follow_symlinks=False)
                    files.append({
                        "name": item.name,
                        "size": stats.st_size,
                        "modified": datetime.fromtimestamp(stats.st_mtime).isoformat(),
                    })

            return SandboxResult.ok(
                f"Listed contents of: {path or 'root'}",
                files=files,
                directories=directories,
            )
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to list files")

    async def create_directory(self, path: str) -> SandboxResult:
        try:
            dir_path = validate_sandbox_path(path, self.root)
            dir_path.mkdir(parents=True, exist_ok=True)
            return SandboxResult.ok(f"Created directory: {path}", path=path)
        except (ContainmentViolation, OSError) as e:
            return SandboxResult.fail(str(e), "Failed to create directory")

    async def execute_command(self, command: str, working_dir: str = "") -> SandboxResult:
        try:
            cwd = validate_sandbox_path(working_dir, self.root, allow_root=True)
        except ContainmentViolation:
            return SandboxResult.fail(
                "Working directory outside sandbox not allowed",
                "Failed to execute command",
            )
        return await self.command_runner.run(command, cwd)

    # ----- stats -----

    async def get_workspace_info(self) -> SandboxResult:
        try:
            file_count, dir_count, total_size = self._walk(self.root, depth=0)
            return SandboxResult.ok(
                "Workspace info retrieved",
                path=str(self.root),
                total_files=file_count,
                total_size=total_size,
                directories=dir_count,
            )
        except OSError as e:
            return SandboxResult.fail(str(e), "Failed to get workspace info")

    get_stats = get_workspace_info

    def _walk(self, dir_path: Path, depth: int) -> tuple[int, int, int]:
        """Count files, directories and bytes. Symlinked directories are not followed."""
        file_count = dir_count = total_size = 0
        if depth >= self.max_walk_depth:
            logger.warning(f"Workspace walk depth limit reached at {dir_path}")
            return file_count, dir_count, total_size

        with os.scandir(dir_path) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    dir_count += 1
                    sub_files, sub_dirs, sub_size = self._walk(Path(entry.path), depth + 1)
                    file_count += sub_files
                    dir_count += sub_dirs
                    total_size += sub_size
                else:
                    file_count += 1
                    total_size += entry.stat(follow_symlinks=False).st_size

        return file_count, dir_count, total_size

    @staticmethod
    def available_actions() -> list[str]:
        return [
            "create_file",
            "read_file",
            "update_file",
            "delete_file",
            "list_files",
            "create_directory",
            "execute_command",
            "get_workspace_info",
        ]
