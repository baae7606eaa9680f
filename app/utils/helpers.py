"""
Helper utilities for heic-drop.

Path and directory-listing functions shared by the watcher and converter.
"""

from pathlib import Path
from typing import Set


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""

    try:
        return path.expanduser().resolve()
    except FileNotFoundError:
        return path.expanduser().absolute()


def matches_suffix(name: str, suffix: str) -> bool:
    """Check if a file name ends with ``suffix``, ignoring case."""
    return name.lower().endswith(suffix.lower())


def list_matching(directory: Path, suffix: str) -> Set[str]:
    """
    List names of immediate children of ``directory`` matching ``suffix``.

    Args:
        directory: Directory to list (not recursed into)
        suffix: Name suffix such as ".heic", compared case-insensitively

    Returns:
        Set of bare file names, directories excluded

    Raises:
        OSError: If the directory cannot be listed
    """
    return {
        entry.name
        for entry in directory.iterdir()
        if matches_suffix(entry.name, suffix) and not entry.is_dir()
    }
