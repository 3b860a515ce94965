"""Per-tool interpretation of tool-call inputs, keyed by tool name."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from ..patch import ParsedFile, parse_patch
from ..paths import make_relative
from . import ToolUseBlock

Preview = Callable[[dict, str | None], str | None]

_BREAK = re.compile(r"[&|;]")
_NPX = re.compile(r"^npx\s+(\S+)")
_NPM = re.compile(r"^npm\s+(run\s+)?(\S+)")
_PREVIEW_FIELDS = ("path", "file_path", "pattern", "query", "command", "description")
_PATH_FIELDS = ("path", "file_path")


@dataclass(frozen=True)
class ToolSpec:
    """How to summarize a tool call, and where its patch text lives if any."""

    preview: Preview
    patch_text: Callable[[dict], str | None] | None = None


def _truncate(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def _until_break(command: str) -> str:
    match = _BREAK.search(command)
    return command[:match.start()].strip() if match else command


def _string(inp: dict, key: str) -> str | None:
    value = inp.get(key)
    return value if isinstance(value, str) and value else None


def _path_field(*keys: str) -> Preview:
    def preview(inp: dict, cwd: str | None) -> str | None:
        for key in keys:
            value = _string(inp, key)
            if value:
                return make_relative(value, cwd)
        return None
    return preview


def _field(key: str, template: str = "{}") -> Preview:
    def preview(inp: dict, cwd: str | None) -> str | None:
        value = _string(inp, key)
        return template.format(value) if value else None
    return preview


def _counted(key: str, noun: str) -> Preview:
    def preview(inp: dict, cwd: str | None) -> str | None:
        items = inp.get(key)
        if not isinstance(items, list):
            return None
        return f"{len(items)} {noun}{'' if len(items) == 1 else 's'}"
    return preview


def _bash_preview(inp: dict, cwd: str | None) -> str | None:
    command = _string(inp, "command")
    if not command:
        return None
    trimmed = command.strip()
    if trimmed.startswith("npx "):
        match = _NPX.match(trimmed)
        return f"npx {match.group(1)}" if match else "npx"
    if trimmed.startswith("npm "):
        match = _NPM.match(trimmed)
        if not match:
            return "npm"
        return f"npm run {match.group(2)}" if match.group(1) else f"npm {match.group(2)}"
    return _truncate(_until_break(command), 50)


def _shell_command(inp: dict) -> str | None:
    """Codex shell commands arrive as ``["bash", "-lc", "..."]`` or a string."""
    command = inp.get("command")
    if isinstance(command, list):
        return " ".join(str(arg) for arg in command if arg not in ("bash", "-lc"))
    if isinstance(command, str):
        return command
    return None


def _shell_preview(inp: dict, cwd: str | None) -> str | None:
    command = _shell_command(inp)
    if not command:
        return None
    first_line = command.strip().split("\n")[0]
    return _truncate(_until_break(first_line), 60)


def _apply_patch_text(inp: dict) -> str | None:
    return _string(inp, "input") or _string(inp, "patch")


def _shell_patch_text(inp: dict) -> str | None:
    command = inp.get("command")
    if isinstance(command, list) and len(command) >= 2 and command[0] == "apply_patch":
        return command[1] if isinstance(command[1], str) else None
    return None


def _patch_preview(inp: dict, cwd: str | None) -> str | None:
    files = parse_patch(_apply_patch_text(inp) or "")
    return make_relative(files[0].file_path, cwd) if files else None


def _shell_or_patch_preview(inp: dict, cwd: str | None) -> str | None:
    patch_text = _shell_patch_text(inp)
    if patch_text:
        files = parse_patch(patch_text)
        if files:
            return make_relative(files[0].file_path, cwd)
    return _shell_preview(inp, cwd)


def _opaque_preview(inp: dict, cwd: str | None) -> str | None:
    for key in _PREVIEW_FIELDS:
        value = _string(inp, key)
        if value:
            return make_relative(value, cwd) if key in _PATH_FIELDS else value
    return None


OPAQUE = ToolSpec(preview=_opaque_preview)

_FILE_PATH = ToolSpec(preview=_path_field("file_path"))

TOOLS: dict[str, ToolSpec] = {
    # Claude Code
    "Read": _FILE_PATH,
    "Write": _FILE_PATH,
    "Edit": _FILE_PATH,
    "Bash": ToolSpec(preview=_bash_preview),
    "Glob": ToolSpec(preview=_field("pattern")),
    "Grep": ToolSpec(preview=_field("pattern", '"{}"')),
    "WebFetch": ToolSpec(preview=_field("url")),
    "Task": ToolSpec(preview=_field("description")),
    "SlashCommand": ToolSpec(preview=_field("command")),
    "TodoWrite": ToolSpec(preview=_counted("todos", "todo")),
    # Codex
    "shell": ToolSpec(preview=_shell_or_patch_preview, patch_text=_shell_patch_text),
    "update_plan": ToolSpec(preview=_counted("plan", "step")),
    "apply_patch": ToolSpec(preview=_patch_preview, patch_text=_apply_patch_text),
    # Gemini CLI
    "write_file": _FILE_PATH,
    "replace": _FILE_PATH,
    "read_file": ToolSpec(preview=_path_field("absolute_path", "file_path")),
    # Copilot CLI
    "view": ToolSpec(preview=_path_field("path")),
    "edit": ToolSpec(preview=_path_field("path")),
}


def lookup(name: str) -> ToolSpec:
    """The ToolSpec registered for ``name``, or the opaque default."""
    return TOOLS.get(name, OPAQUE)


def tool_preview(block: ToolUseBlock, cwd: str | None = None) -> str | None:
    """One-line summary of a tool call for collapsed tool headers."""
    return lookup(block.name).preview(block.input, cwd)


def patch_files(block: ToolUseBlock) -> list[ParsedFile]:
    """Files changed by a patch-carrying tool call; empty for other tools."""
    tool = lookup(block.name)
    if tool.patch_text is None:
        return []
    text = tool.patch_text(block.input)
    return parse_patch(text) if text else []


def tool_input_summary(block: ToolUseBlock, cwd: str | None = None) -> str:
    """``[Name: preview]`` label used in plain-text transcript listings."""
    preview = tool_preview(block, cwd)
    return f"[{block.name}: {preview}]" if preview else f"[{block.name}]"

