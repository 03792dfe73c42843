"""Materialized path utilities for the goal hierarchy."""
import re

_WEEKLY_PATH = re.compile(r"^/[a-z0-9;]+$", re.IGNORECASE)
_DAILY_PATH = re.compile(r"^/[a-z0-9;]+/[a-z0-9;]+$", re.IGNORECASE)


def join_path(*parts: str) -> str:
    """
    Join path segments, collapsing doubled separators.

    Examples:
        >>> join_path("/", "abc")
        '/abc'
        >>> join_path("/abc", "def")
        '/abc/def'
    """
    return "/".join(parts).replace("//", "/")


def get_next_path(path: str) -> str:
    """
    Exclusive upper bound for a prefix range scan over paths.

    Every descendant path of ``path`` sorts in ``[path, get_next_path(path))``
    because ``"/"`` sorts below every character an id can contain.

    Examples:
        >>> get_next_path("/abc")
        '/abc0'
    """
    return f"{path}0"


def validate_goal_path(depth: int, in_path: str) -> bool:
    """
    Check that a goal's parent path matches its depth.

    Args:
        depth: 0 for quarterly, 1 for weekly, 2 for daily
        in_path: Parent path stored on the goal

    Returns:
        True if the path has the right shape for the depth

    Examples:
        >>> validate_goal_path(0, "/")
        True
        >>> validate_goal_path(1, "/65f0c0ffee")
        True
        >>> validate_goal_path(2, "/65f0c0ffee")
        False
    """
    if not in_path:
        return False

    if depth == 0:
        return in_path == "/"
    if depth == 1:
        return bool(_WEEKLY_PATH.match(in_path))
    if depth == 2:
        return bool(_DAILY_PATH.match(in_path))
    return False
