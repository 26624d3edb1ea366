"""
Destination path handling.

sanitize_path neutralizes traversal; it never decides permission.
is_path_allowed decides permission and always compares sanitized forms on
both sides, so "images/", "/images" and "images/./" all mean the same
directory.
"""

from typing import Sequence

WILDCARD = "*"


def sanitize_path(path: str) -> str:
    """
    Normalize a client-supplied relative path.

    Empty and "." segments are dropped, ".." removes the previously
    resolved segment (or nothing, at the root), so the result can never
    climb above the bucket root. An empty result means the root.
    """
    resolved: list[str] = []

    for segment in path.split("/"):
        if segment == "..":
            if resolved:
                resolved.pop()
        elif segment and segment != ".":
            resolved.append(segment)

    return "/".join(resolved)


def is_path_allowed(requested_path: str, allowed_paths: Sequence[str]) -> bool:
    """
    Check a requested directory against a bucket's allow-list.

    A requested path matches an entry when it is the entry itself or lies
    beneath it. Matching is per segment, so "images2" does not match an
    allowed "images".
    """
    if WILDCARD in allowed_paths:
        return True

    clean_path = sanitize_path(requested_path)

    # root uploads need an explicit root entry
    if not clean_path:
        return "" in allowed_paths or "/" in allowed_paths

    for allowed_path in allowed_paths:
        clean_allowed = sanitize_path(allowed_path)
        if not clean_allowed:
            continue
        if clean_path == clean_allowed or clean_path.startswith(clean_allowed + "/"):
            return True

    return False


def join_key(path: str, file_name: str) -> str:
    """Object key for a file inside an already sanitized directory."""
    return f"{path}/{file_name}" if path else file_name
