"""Parse Codex ``apply_patch`` payloads into before/after file contents."""

from __future__ import annotations

import re
from dataclasses import dataclass

_ENVELOPE = re.compile(r"\*\*\* Begin Patch\n([\s\S]*?)\n?\*\*\* End Patch")

ADD_FILE = "*** Add File: "
UPDATE_FILE = "*** Update File: "
DELETE_FILE = "*** Delete File: "
_FILE_MARKERS = (ADD_FILE, UPDATE_FILE, DELETE_FILE)


@dataclass(frozen=True)
class ParsedFile:
    """One file touched by a patch."""

    file_path: str
    old_string: str  # "" when the patch creates the file
    new_string: str

    def to_dict(self) -> dict:
        return {
            "filePath": self.file_path,
            "oldString": self.old_string,
            "newString": self.new_string,
        }


def _block_lines(lines: list[str], start: int) -> list[str]:
    """Lines after the marker at ``start`` up to the next file marker."""
    block = []
    for line in lines[start + 1:]:
        if line.startswith(_FILE_MARKERS):
            break
        block.append(line)
    return block


def _parse_added(path: str, body: list[str]) -> ParsedFile:
    new_lines = [line[1:] for line in body if line.startswith("+")]
    return ParsedFile(file_path=path, old_string="", new_string="\n".join(new_lines))


def _parse_updated(path: str, body: list[str]) -> ParsedFile:
    old_lines: list[str] = []
    new_lines: list[str] = []
    for line in body:
        if line.startswith("@@") or line.startswith("*** "):
            continue
        if line.startswith("-"):
            old_lines.append(line[1:])
        elif line.startswith("+"):
            new_lines.append(line[1:])
        elif line:
            context = line[1:] if line.startswith(" ") else line
            old_lines.append(context)
            new_lines.append(context)
    return ParsedFile(
        file_path=path,
        old_string="\n".join(old_lines),
        new_string="\n".join(new_lines),
    )


def parse_patch(patch: str) -> list[ParsedFile]:
    """Parse the first Add File / Update File block of an ``apply_patch`` body.

    Args:
        patch: Text containing a ``*** Begin Patch`` ... ``*** End Patch`` envelope.

    Returns:
        A single-element list with the parsed file, or an empty list when the
        envelope or a recognized file block is missing. Never raises.
    """
    if not isinstance(patch, str):
        return []

    match = _ENVELOPE.search(patch.replace("\r\n", "\n"))
    if not match or not match.group(1).strip():
        return []

    lines = match.group(1).split("\n")
    for index, line in enumerate(lines):
        if line.startswith(ADD_FILE):
            path = line[len(ADD_FILE):].strip()
            if path:
                return [_parse_added(path, _block_lines(lines, index))]
        elif line.startswith(UPDATE_FILE):
            path = line[len(UPDATE_FILE):].strip()
            if path:
                return [_parse_updated(path, _block_lines(lines, index))]

    return []
