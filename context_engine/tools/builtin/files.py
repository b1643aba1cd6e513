"""File tools operating under the project root (``context.cwd``)."""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path

from context_engine.tools.base import Tool, ToolContext, ToolScope
from context_engine.types import ErrorCode, ToolResult

_SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache"}
_MAX_LISTED = 1000


class PathError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def resolve_path(context: ToolContext, file_path: str, *, write: bool = False) -> Path:
    """
    Resolve *file_path* against the project root.

    Raises ``PathError`` when the path leaves the root, or when *write* is
    set and the path is outside ``context.allowed_paths``.
    """
    root = Path(context.cwd).resolve()
    target = (root / file_path).resolve()
    if target != root and root not in target.parents:
        raise PathError(
            f"Path {file_path!r} is outside the project root",
            ErrorCode.PERMISSION_DENIED,
        )

    if write and context.allowed_paths:
        allowed = [(root / p).resolve() for p in context.allowed_paths]
        if not any(target == a or a in target.parents for a in allowed):
            raise PathError(
                f"Permission denied: can only write to {', '.join(context.allowed_paths)}",
                ErrorCode.PERMISSION_DENIED,
            )
    return target


def _number(lines: list[str], start: int = 1) -> str:
    return "\n".join(f"{i}: {line}" for i, line in enumerate(lines, start=start))


class GetFileContentTool(Tool):
    @property
    def name(self) -> str:
        return "getFileContent"

    @property
    def description(self) -> str:
        return (
            "Get the full content of a file in the project. Adds line numbers "
            "by default to help with editing."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "filePath": {
                    "type": "string",
                    "description": 'Path of the file to read, e.g. "src/index.py"',
                },
                "lineNumbers": {
                    "type": "boolean",
                    "description": "Prefix every line with its number (default true)",
                },
            },
            "required": ["filePath"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        try:
            target = resolve_path(context, file_path)
        except PathError as e:
            return ToolResult.failure(str(e), e.code, filePath=file_path)
        if not target.is_file():
            return ToolResult.failure(
                f'File not found at path "{file_path}".',
                ErrorCode.NOT_FOUND,
                filePath=file_path,
            )

        content = target.read_text(encoding="utf-8", errors="replace")
        if not params.get("lineNumbers", True):
            return ToolResult.ok(filePath=file_path, content=content)

        lines = content.split("\n")
        return ToolResult.ok(
            filePath=file_path,
            content=_number(lines),
            message=f"Read {len(lines)} lines from {file_path}",
        )


class ReadLinesTool(Tool):
    @property
    def name(self) -> str:
        return "readLines"

    @property
    def description(self) -> str:
        return "Read a range of lines (1-based, inclusive) from a file."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "filePath": {"type": "string"},
                "startLine": {"type": "integer", "minimum": 1},
                "endLine": {"type": "integer", "minimum": 1},
            },
            "required": ["filePath", "startLine", "endLine"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        start, end = params["startLine"], params["endLine"]
        try:
            target = resolve_path(context, file_path)
        except PathError as e:
            return ToolResult.failure(str(e), e.code)
        if not target.is_file():
            return ToolResult.failure(f"File not found: {file_path}", ErrorCode.NOT_FOUND)

        lines = target.read_text(encoding="utf-8", errors="replace").split("\n")
        if start > end or end > len(lines):
            return ToolResult.failure(
                f"Invalid line range: {start}-{end} (file has {len(lines)} lines)",
                ErrorCode.INVALID_ARGUMENTS,
            )
        return ToolResult.ok(
            filePath=file_path,
            content=_number(lines[start - 1:end], start),
            message=f"Read lines {start}-{end} of {file_path}",
        )


class CreateFileTool(Tool):
    @property
    def name(self) -> str:
        return "createFile"

    @property
    def description(self) -> str:
        return "Create or overwrite a file with the given content."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "filePath": {
                    "type": "string",
                    "description": "Path relative to the project root",
                },
                "content": {
                    "type": "string",
                    "description": "The complete content to write",
                },
                "successMessage": {
                    "type": "string",
                    "description": 'Message shown on success, e.g. "README.md created"',
                },
            },
            "required": ["filePath", "content"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        try:
            target = resolve_path(context, file_path, write=True)
        except PathError as e:
            return ToolResult.failure(str(e), e.code)

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(params["content"], encoding="utf-8")
        return ToolResult.ok(
            filePath=file_path,
            message=params.get("successMessage") or f"Created {file_path}",
        )


class EditFileTool(Tool):
    @property
    def name(self) -> str:
        return "editFile"

    @property
    def description(self) -> str:
        return (
            "Edit an existing file by replacing the first exact occurrence of "
            "oldContent with newContent."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "filePath": {"type": "string"},
                "oldContent": {
                    "type": "string",
                    "description": "Exact content to replace",
                },
                "newContent": {"type": "string"},
            },
            "required": ["filePath", "oldContent", "newContent"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        try:
            target = resolve_path(context, file_path, write=True)
        except PathError as e:
            return ToolResult.failure(str(e), e.code)
        if not target.is_file():
            return ToolResult.failure(f"File not found: {file_path}", ErrorCode.NOT_FOUND)

        current = target.read_text(encoding="utf-8")
        old = params["oldContent"]
        if not old or old not in current:
            return ToolResult.failure(
                "Old content not found in file. Content must match exactly.",
                ErrorCode.NOT_FOUND,
            )
        target.write_text(current.replace(old, params["newContent"], 1), encoding="utf-8")
        return ToolResult.ok(filePath=file_path, message=f"Successfully edited {file_path}")


class DeleteFileTool(Tool):
    @property
    def name(self) -> str:
        return "deleteFile"

    @property
    def description(self) -> str:
        return "Delete a file from the project."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"filePath": {"type": "string"}},
            "required": ["filePath"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        try:
            target = resolve_path(context, file_path, write=True)
        except PathError as e:
            return ToolResult.failure(str(e), e.code)
        if not target.is_file():
            return ToolResult.failure(f"File not found: {file_path}", ErrorCode.NOT_FOUND)
        target.unlink()
        return ToolResult.ok(filePath=file_path, message=f"Successfully deleted {file_path}")


class ListFilesTool(Tool):
    @property
    def name(self) -> str:
        return "listFiles"

    @property
    def description(self) -> str:
        return 'List project files, optionally filtered by a glob pattern such as "*.py".'

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Optional glob filter"},
            },
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        root = Path(context.cwd).resolve()
        pattern = params.get("pattern")
        files: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for fname in sorted(filenames):
                rel = (Path(dirpath) / fname).relative_to(root).as_posix()
                if pattern and not (
                    fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(fname, pattern)
                ):
                    continue
                files.append(rel)
        truncated = len(files) > _MAX_LISTED
        return ToolResult.ok(
            files=files[:_MAX_LISTED], count=len(files), truncated=truncated
        )


class ReadGeneratedFileTool(Tool):
    """Lets a sub-agent re-read only the files it created itself."""

    @property
    def name(self) -> str:
        return "readGeneratedFile"

    @property
    def description(self) -> str:
        return "Read a file previously created by this sub-agent."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"filePath": {"type": "string"}},
            "required": ["filePath"],
        }

    @property
    def scope(self) -> ToolScope:
        return ToolScope.SUBAGENT

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        file_path = params["filePath"]
        generated = context.extra.get("generated_files") or set()
        if file_path not in generated:
            return ToolResult.failure(
                f'File "{file_path}" was not generated by this sub-agent.',
                ErrorCode.PERMISSION_DENIED,
            )
        try:
            target = resolve_path(context, file_path)
        except PathError as e:
            return ToolResult.failure(str(e), e.code)
        if not target.is_file():
            return ToolResult.failure(f"File not found: {file_path}", ErrorCode.NOT_FOUND)
        return ToolResult.ok(
            filePath=file_path, content=target.read_text(encoding="utf-8", errors="replace")
        )
