"""
Folder-relative path helpers.

Every path inside the core is a folder-relative, ``/``-separated string.
The empty string is the folder root.
"""

import os
import posixpath
from pathlib import Path
from typing import Iterator, Tuple

ROOT = ""


def normalize_path(path: str) -> str:
    """Clean a folder-relative path: ``./a//b/`` -> ``a/b``, ``.`` -> ``""``."""
    if not path:
        return ROOT
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    path = posixpath.normpath(path).lstrip("/")
    if path == ".":
        return ROOT
    return path


def relative_path(path: str | Path, root: str | Path) -> str:
    """Express an absolute ``path`` relative to the folder ``root``."""
    path = str(path)
    root = str(root).rstrip(os.sep)
    if path == root:
        return ROOT
    if path.startswith(root + os.sep):
        path = path[len(root) + 1:]
    return normalize_path(path)


def path_components(path: str) -> Tuple[str, ...]:
    """Sort key placing a directory right before all of its descendants."""
    if not path:
        return ()
    return tuple(path.split("/"))


def parent_path(path: str) -> str:
    return posixpath.dirname(path)


def is_strict_descendant(path: str, ancestor: str) -> bool:
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


def strict_ancestors(path: str) -> Iterator[str]:
    """Yield ``a/b`` then ``a`` then ``""`` for ``a/b/c``."""
    while path:
        path = parent_path(path)
        yield path
