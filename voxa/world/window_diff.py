"""
voxa.world.window_diff

Pure diff logic for entity snapshots.

An inbound context push replaces the stored snapshot wholesale. Diffing it
against the previous one yields the lifecycle events the WindowRegistry
understands, so the registry and the stored snapshot stay in agreement.

Event Types:
- opened: id appeared in new snapshot but not in old
- closed: id in old snapshot but not in new
- title_changed: same id, title differs
- content_changed: same id, content differs
- minimized / restored: same id, minimized flag flipped
- reordered: same id, zIndex differs (carries the pushed zIndex)

Usage:
    events = diff_snapshots(build_id_dict(prev), build_id_dict(next))
    registry.apply_events(events)
"""

from __future__ import annotations

import time
from typing import Any, Dict, List

from voxa.world.window_registry import EntityView

EventRecord = Dict[str, Any]


def diff_snapshots(
    prev_by_id: Dict[str, EntityView],
    next_by_id: Dict[str, EntityView],
) -> List[EventRecord]:
    """
    Compute diff between two entity snapshots.

    Pure function. Events come out in a stable order: closed, opened (by
    creation time), then per-entity changes including z-order.

    Args:
        prev_by_id: Previous snapshot as {id: view}
        next_by_id: Current snapshot as {id: view}

    Returns:
        List of event dicts
    """
    events: List[EventRecord] = []
    ts = time.time()

    prev_ids = set(prev_by_id.keys())
    next_ids = set(next_by_id.keys())

    # CLOSED: in prev but not in next
    for entity_id in sorted(prev_ids - next_ids):
        rec = prev_by_id[entity_id]
        events.append({
            "ts": ts,
            "type": "closed",
            "id": entity_id,
            "title": rec.title or "",
        })

    # OPENED: in next but not in prev
    opened = sorted((next_by_id[i] for i in next_ids - prev_ids), key=lambda v: (v.created_at, v.id))
    for rec in opened:
        events.append({
            "ts": ts,
            "type": "opened",
            "id": rec.id,
            "title": rec.title,
            "windowType": rec.type,
            "content": rec.content,
            "createdAt": rec.created_at or None,
            "zIndex": rec.z_index,
            "isMinimized": rec.is_minimized,
            "metadata": dict(rec.metadata),
        })

    # EXISTING: title, content, minimized flag, z-order
    for entity_id in sorted(prev_ids & next_ids):
        prev_rec = prev_by_id[entity_id]
        next_rec = next_by_id[entity_id]

        if (prev_rec.title or "").strip() != (next_rec.title or "").strip():
            events.append({
                "ts": ts,
                "type": "title_changed",
                "id": entity_id,
                "title": next_rec.title or "",
            })

        if (prev_rec.content or "") != (next_rec.content or ""):
            events.append({
                "ts": ts,
                "type": "content_changed",
                "id": entity_id,
                "content": next_rec.content or "",
            })

        if prev_rec.is_minimized != next_rec.is_minimized:
            events.append({
                "ts": ts,
                "type": "minimized" if next_rec.is_minimized else "restored",
                "id": entity_id,
            })

        if prev_rec.z_index != next_rec.z_index:
            events.append({
                "ts": ts,
                "type": "reordered",
                "id": entity_id,
                "zIndex": next_rec.z_index,
            })

    return events


def build_id_dict(views: List[EntityView]) -> Dict[str, EntityView]:
    """
    Build a dict keyed by id from a snapshot list.

    Later entries win when an id repeats.
    """
    result: Dict[str, EntityView] = {}
    for v in views:
        if v is not None and v.id:
            result[v.id] = v
    return result
