"""Category-filtered debug output for the inspector and the remote bridge.

``PYMSXVIEW_DEBUG`` holds a comma separated list of categories, or ``all``::

    PYMSXVIEW_DEBUG=sync,push python run.py --transport push

Categories in use: ``sync`` (store mutations), ``transport`` and ``push``
(client wire traffic), ``remote`` and ``openmsx`` (bridge side), ``ui`` and
``perf`` (front end).
"""

from __future__ import annotations

import os

_ENV_VAR = "PYMSXVIEW_DEBUG"
_WILDCARD = "all"
_enabled: frozenset[str] | None = None


def _parse(value: str) -> frozenset[str]:
    return frozenset(name.strip().lower() for name in value.split(",") if name.strip())


def _categories() -> frozenset[str]:
    global _enabled
    if _enabled is None:
        _enabled = _parse(os.environ.get(_ENV_VAR, ""))
    return _enabled


def reload_categories() -> frozenset[str]:
    """Re-read the environment, e.g. after a test changed it."""

    global _enabled
    _enabled = None
    return _categories()


def debug_enabled(category: str | None = None) -> bool:
    """``category=None`` asks whether any debug output is on at all."""

    enabled = _categories()
    if not enabled:
        return False
    if category is None or _WILDCARD in enabled:
        return True
    return category.lower() in enabled


def debug_log(category: str, message: str, *args) -> None:
    if not debug_enabled(category):
        return
    if args:
        try:
            message = message % args
        except (TypeError, ValueError):
            message = f"{message} {args!r}"
    print(f"[PYMSXVIEW][{category}] {message}")


__all__ = ["debug_enabled", "debug_log", "reload_categories"]
