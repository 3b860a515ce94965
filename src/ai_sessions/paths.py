"""Path helpers: relative display paths and project-hash resolution."""

from __future__ import annotations

import hashlib
import posixpath
import re
from pathlib import PurePosixPath, PureWindowsPath

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:[/\\]")
_DRIVE_LETTER = re.compile(r"^[A-Za-z]:")


def is_absolute(path: str) -> bool:
    """True for Unix absolute paths and Windows drive paths (``C:\\`` or ``C:/``)."""
    return path.startswith("/") or bool(_DRIVE_PATTERN.match(path))


def _normalize(path: str) -> str:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    # Drive letters compare case-insensitively
    if _DRIVE_LETTER.match(normalized):
        normalized = normalized[0].lower() + normalized[1:]
    return normalized


def make_relative(path: str, cwd: str | None = None) -> str:
    """Convert an absolute path to one relative to ``cwd`` for display.

    Args:
        path: File path as recorded by the transcript.
        cwd: Working directory of the session, if known.

    Returns:
        The path relative to ``cwd`` (always ``/``-separated) when ``path``
        lies strictly inside ``cwd``; otherwise ``path`` unchanged.

    >>> make_relative("/Users/dev/project/src/index.ts", "/Users/dev/project")
    'src/index.ts'
    >>> make_relative("/Users/dev/project-backup/file.ts", "/Users/dev/project")
    '/Users/dev/project-backup/file.ts'
    """
    if not cwd or not path or not is_absolute(path):
        return path

    normalized_path = _normalize(path)
    normalized_cwd = _normalize(cwd)

    if normalized_path == normalized_cwd:
        return path

    prefix = normalized_cwd if normalized_cwd.endswith("/") else normalized_cwd + "/"
    if not normalized_path.startswith(prefix):
        return path

    relative = normalized_path[len(prefix):]
    return relative or path


def project_hash(path: str) -> str:
    """Hash a project directory the way Gemini CLI names its session folders."""
    return hashlib.sha256(path.encode("utf-8")).hexdigest()


def _ancestors(path: str) -> list[str]:
    pure = PureWindowsPath(path) if _DRIVE_PATTERN.match(path) else PurePosixPath(path)
    # .parents stops at the anchor, so the walk always terminates
    return [str(pure), *(str(parent) for parent in pure.parents)]


def infer_project_path(target_hash: str, candidates: list[str]) -> str | None:
    """Find the project directory whose hash matches ``target_hash``.

    Each absolute candidate (and then each of its ancestors, up to the
    filesystem root) is hashed and compared against the target.

    Args:
        target_hash: Hex digest recorded by the session.
        candidates: File or directory paths mentioned in the session.

    Returns:
        The first matching directory, or None when nothing matches.
    """
    if not target_hash or not candidates:
        return None

    wanted = target_hash.lower()
    seen: set[str] = set()
    for candidate in candidates:
        if not isinstance(candidate, str) or not is_absolute(candidate):
            continue
        for directory in _ancestors(candidate):
            if directory in seen:
                continue
            seen.add(directory)
            if project_hash(directory) == wanted:
                return directory
    return None
