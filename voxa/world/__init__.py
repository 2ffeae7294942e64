"""
voxa.world - live directory of addressable windows.

Modules:
- window_registry: WindowRegistry, mutated only by reported lifecycle events
- window_diff: Pure diff logic turning a context push into lifecycle events
"""

from voxa.world.window_diff import diff_snapshots
from voxa.world.window_registry import EntityView, WindowRegistry

__all__ = ["diff_snapshots", "EntityView", "WindowRegistry"]
