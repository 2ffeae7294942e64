"""voxa.core.reference_resolver

Resolves semantic selectors against the live WindowRegistry:

- "newest" / "latest" -> most recent creation time
- "oldest"            -> earliest creation time
- "active"            -> highest focus ordinal
- "all"               -> every registered window (fan-out)

HARD RULES:
- No guessing: a selector that matches nothing raises SelectorResolutionError
- Read-only: the registry is never mutated here
"""

from __future__ import annotations

from typing import Any, Dict, List

from voxa.core.errors import SelectorResolutionError
from voxa.world.window_registry import WindowRegistry

SELECTOR_KEY = "selector"
TARGET_KEY = "windowId"

# Single-target selectors
_SINGLE = {
    "newest": WindowRegistry.get_newest,
    "latest": WindowRegistry.get_newest,
    "oldest": WindowRegistry.get_oldest,
    "active": WindowRegistry.get_active,
}

FAN_OUT = "all"


def is_fan_out(selector: Any) -> bool:
    return isinstance(selector, str) and selector.strip().lower() == FAN_OUT


def resolve_selector(windows: WindowRegistry, selector: str) -> List[str]:
    """
    Resolve a selector to concrete window ids.

    Returns:
        One id for single-target selectors, every id (oldest first) for "all"

    Raises:
        SelectorResolutionError: Unknown selector, or nothing to target
    """
    key = (selector or "").strip().lower()

    if key == FAN_OUT:
        ids = [view.id for view in windows.snapshot()]
        if not ids:
            raise SelectorResolutionError("No target: there are no open windows")
        return ids

    getter = _SINGLE.get(key)
    if getter is None:
        raise SelectorResolutionError(f"No target: unknown selector {selector!r}")

    entry = getter(windows)
    if entry is None:
        raise SelectorResolutionError(f"No target: no window matches selector {key!r}")
    return [entry.id]


def bind_target(parameters: Dict[str, Any], window_id: str) -> Dict[str, Any]:
    """Parameters for one concrete target: windowId set, selector removed"""
    bound = {k: v for k, v in parameters.items() if k != SELECTOR_KEY}
    bound[TARGET_KEY] = window_id
    return bound
