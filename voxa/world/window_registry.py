"""
voxa.world.window_registry

Live directory of addressable entities (on-screen windows).

The registry is mutated ONLY by externally reported lifecycle events
(opened / closed / focused / reordered / moved / resized /
title_changed / content_changed / minimized / restored). The pipeline
reads it to resolve selectors and to build the UI-context snapshot;
dispatched commands only *request* changes through the outbound channel.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from voxa.core.logger import get_logger


# Event types accepted by apply_event()
EVENT_TYPES = (
    "opened",
    "closed",
    "focused",
    "reordered",
    "moved",
    "resized",
    "title_changed",
    "content_changed",
    "minimized",
    "restored",
)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class WindowEntry:
    """
    One live entity.

    Fields:
        id: Host-assigned identifier
        type: Window type (sticky-note, search-results, webview, ...)
        title: Display title
        content: Text content (may be large; compacted before leaving)
        created_at: Creation time in ms; drives newest/oldest
        z_index: Focus ordinal; highest is the active window
        is_minimized: Minimized flag
        metadata: Free-form host metadata (search results, image url, ...)
    """
    id: str
    type: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    created_at: int = field(default_factory=_now_ms)
    z_index: int = 0
    is_minimized: bool = False
    position: Optional[Dict[str, Any]] = None
    size: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_view(self) -> "EntityView":
        return EntityView(
            id=self.id,
            title=self.title,
            type=self.type,
            content=self.content,
            created_at=self.created_at,
            z_index=self.z_index,
            is_minimized=self.is_minimized,
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class EntityView:
    """Read-only projection of a registry entry, as carried in a snapshot"""
    id: str
    title: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    created_at: int = 0
    z_index: int = 0
    is_minimized: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["EntityView"]:
        """Build from a host payload; accepts camelCase or snake_case keys"""
        if not isinstance(data, dict):
            return None
        entity_id = data.get("id") or data.get("windowId")
        if not entity_id:
            return None

        def _int(*keys: str) -> int:
            for k in keys:
                v = data.get(k)
                if isinstance(v, (int, float)) and not isinstance(v, bool):
                    return int(v)
            return 0

        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            context = data.get("context")
            metadata = context.get("metadata") if isinstance(context, dict) else None
        return cls(
            id=str(entity_id),
            title=data.get("title") if isinstance(data.get("title"), str) else None,
            type=data.get("type") if isinstance(data.get("type"), str) else None,
            content=data.get("content") if isinstance(data.get("content"), str) else None,
            created_at=_int("createdAt", "created_at"),
            z_index=_int("zIndex", "z_index"),
            is_minimized=bool(data.get("isMinimized", data.get("is_minimized", False))),
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "createdAt": self.created_at,
            "zIndex": self.z_index,
        }
        if self.title is not None:
            data["title"] = self.title
        if self.type is not None:
            data["type"] = self.type
        if self.content is not None:
            data["content"] = self.content
        if self.is_minimized:
            data["isMinimized"] = True
        if self.metadata:
            data["metadata"] = self.metadata
        return data


EntitySnapshot = List[EntityView]


def parse_snapshot(payload: Any) -> EntitySnapshot:
    """
    Parse an inbound context push.

    Accepts either a list of window dicts or {"windows": [...]}.
    Entries without an id are skipped.
    """
    if isinstance(payload, dict):
        payload = payload.get("windows", [])
    if not isinstance(payload, list):
        return []
    views = []
    for item in payload:
        view = EntityView.from_dict(item)
        if view is not None:
            views.append(view)
    return views


class WindowRegistry:
    """Thread-safe registry of live windows keyed by id (insertion ordered)"""

    def __init__(self):
        self._windows: Dict[str, WindowEntry] = {}
        self._lock = threading.Lock()
        self._focus_counter = 0
        self.logger = get_logger()

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    def apply_event(self, event: Dict[str, Any]) -> bool:
        """
        Apply one lifecycle event.

        Event shape: {"type": <EVENT_TYPES>, "id": str, ...fields}
        Returns True if the registry changed.
        """
        etype = event.get("type")
        entity_id = event.get("id") or event.get("windowId")
        if etype not in EVENT_TYPES or not entity_id:
            self.logger.debug(f"[REGISTRY] ignored event {event!r}")
            return False
        entity_id = str(entity_id)

        with self._lock:
            if etype == "opened":
                return self._opened(entity_id, event)
            entry = self._windows.get(entity_id)
            if entry is None:
                self.logger.debug(f"[REGISTRY] {etype} for unknown id={entity_id}")
                return False
            if etype == "closed":
                del self._windows[entity_id]
            elif etype == "focused":
                entry.z_index = self._next_z(event)
                entry.is_minimized = False
            elif etype == "reordered":
                entry.z_index = self._next_z(event)
            elif etype == "moved":
                entry.position = event.get("position", entry.position)
            elif etype == "resized":
                entry.size = event.get("size", entry.size)
            elif etype == "title_changed":
                entry.title = event.get("title", entry.title)
            elif etype == "content_changed":
                entry.content = event.get("content", entry.content)
            elif etype == "minimized":
                entry.is_minimized = True
            elif etype == "restored":
                entry.is_minimized = False

        self.logger.debug(f"[REGISTRY] {etype} id={entity_id}")
        return True

    def apply_events(self, events: Iterable[Dict[str, Any]]) -> int:
        """Apply events in order; returns how many changed the registry"""
        return sum(1 for ev in events if self.apply_event(ev))

    def _opened(self, entity_id: str, event: Dict[str, Any]) -> bool:
        created_at = event.get("createdAt") or event.get("created_at") or _now_ms()
        z_index = self._next_z(event)
        metadata = event.get("metadata")
        self._windows[entity_id] = WindowEntry(
            id=entity_id,
            type=event.get("windowType") or event.get("kind") or event.get("entityType"),
            title=event.get("title"),
            content=event.get("content"),
            created_at=int(created_at),
            z_index=int(z_index),
            is_minimized=bool(event.get("isMinimized", False)),
            position=event.get("position"),
            size=event.get("size"),
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )
        self.logger.debug(f"[REGISTRY] opened id={entity_id}")
        return True

    def _max_z(self) -> int:
        return max((w.z_index for w in self._windows.values()), default=0)

    def _next_z(self, event: Dict[str, Any]) -> int:
        """Pushed zIndex as given, else one above everything registered"""
        z_index = event.get("zIndex", event.get("z_index"))
        if z_index is None:
            z_index = max(self._focus_counter, self._max_z()) + 1
        z_index = int(z_index)
        self._focus_counter = max(self._focus_counter, z_index)
        return z_index

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, entity_id: str) -> Optional[WindowEntry]:
        with self._lock:
            return self._windows.get(entity_id)

    def get_newest(self) -> Optional[WindowEntry]:
        """Most recent creation time; ties go to the later registration"""
        with self._lock:
            best = None
            for w in self._windows.values():
                if best is None or w.created_at >= best.created_at:
                    best = w
            return best

    def get_oldest(self) -> Optional[WindowEntry]:
        """Earliest creation time; ties go to the earlier registration"""
        with self._lock:
            best = None
            for w in self._windows.values():
                if best is None or w.created_at < best.created_at:
                    best = w
            return best

    def get_active(self) -> Optional[WindowEntry]:
        """Highest focus ordinal"""
        with self._lock:
            best = None
            for w in self._windows.values():
                if best is None or w.z_index >= best.z_index:
                    best = w
            return best

    def get_by_type(self, window_type: str) -> List[WindowEntry]:
        with self._lock:
            return [w for w in self._windows.values() if w.type == window_type]

    def find_by_title(self, title_match: str) -> Optional[WindowEntry]:
        """Case-insensitive title match: exact first, then substring (newest wins)"""
        needle = (title_match or "").strip().lower()
        if not needle:
            return None
        with self._lock:
            windows = sorted(self._windows.values(), key=lambda w: w.created_at, reverse=True)
        for w in windows:
            if (w.title or "").strip().lower() == needle:
                return w
        for w in windows:
            if needle in (w.title or "").lower():
                return w
        return None

    def snapshot(self) -> EntitySnapshot:
        """Ordered projection (oldest first) used as the UI context"""
        with self._lock:
            windows = sorted(self._windows.values(), key=lambda w: w.created_at)
        return [w.to_view() for w in windows]

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()
            self._focus_counter = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._windows
