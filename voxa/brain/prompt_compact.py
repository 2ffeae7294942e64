"""
Prompt and context compaction for parser requests.

Deterministic and safe: bounds what is sent to the language model and keeps
non-shareable payloads (embedded image data, long URLs) out of it.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

from voxa.core.config import Config
from voxa.core.logger import get_logger
from voxa.world.window_registry import EntityView

URL_MARKER = "[URL] <truncated>"

_WS_RE = re.compile(r"\s+")
_URL_RE = re.compile(r"^(?:https?|ftp|data|blob|file):\S*$", re.IGNORECASE)
_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)

# Metadata keys that may carry an image reference
_IMAGE_KEYS = ("imageUrl", "image_url", "image", "thumbnail", "src")


def compact_prompt(prompt: str, max_chars: int = 8000) -> Tuple[str, bool]:
    """
    Compact a prompt by keeping critical parts (system + user input) while
    omitting middle content if necessary.

    Strategy:
    - If prompt length <= max_chars: return as-is (no compaction)
    - Otherwise:
        - Keep first 1200 chars (system prompt + key rules)
        - Keep last 1800 chars (directive + immediate context)
        - Replace middle with "...[omitted for length]...\n"
        - Ensure final length <= max_chars

    Args:
        prompt: Full prompt text
        max_chars: Maximum character limit (default 8000)

    Returns:
        Tuple of (compacted_prompt, was_compacted)
    """
    logger = get_logger()

    if len(prompt) <= max_chars:
        return prompt, False

    prefix_size = 1200
    suffix_size = 1800
    omission_marker = "\n...[omitted for length]...\n"

    compacted = prompt[:prefix_size] + omission_marker + prompt[-suffix_size:]

    # Still too long: split what is left evenly
    if len(compacted) > max_chars:
        available = max(0, max_chars - len(omission_marker))
        prefix_chars = available // 2
        suffix_chars = available - prefix_chars
        prefix = prompt[:prefix_chars]
        suffix = prompt[-suffix_chars:] if suffix_chars > 0 else ""
        compacted = prefix + omission_marker + suffix

    logger.debug(f"Prompt compacted: {len(prompt)} -> {len(compacted)} chars")
    return compacted, True


def compact_content(content: Optional[str], max_chars: int = 600) -> str:
    """
    Normalize one entity's content for a parser request.

    Whitespace is collapsed, URL-valued content is replaced by a short marker,
    and the result is hard-capped at max_chars.
    """
    if not content:
        return ""
    text = _WS_RE.sub(" ", content).strip()
    if _URL_RE.match(text):
        return URL_MARKER
    if len(text) > max_chars:
        text = text[:max_chars]
    return text


def _safe_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only http(s) image references; nothing else from metadata leaves"""
    safe: Dict[str, Any] = {}
    for key in _IMAGE_KEYS:
        value = metadata.get(key)
        if isinstance(value, str) and _HTTP_RE.match(value.strip()):
            safe[key] = value.strip()
    return safe


def compact_context(
    snapshot: List[EntityView],
    max_entities: Optional[int] = None,
    max_content_chars: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Reduce a UI-context snapshot to a bounded, shareable payload.

    Keeps the most recent max_entities entities (by creation time) in
    creation order. Each entry carries id/title/type and compacted content.

    Args:
        snapshot: EntityView list (any order)
        max_entities: Entity cap (default Config.CONTEXT_MAX_ENTITIES)
        max_content_chars: Content cap (default Config.CONTEXT_CONTENT_MAX_CHARS)

    Returns:
        List of plain dicts ready for JSON encoding
    """
    if max_entities is None:
        max_entities = Config.CONTEXT_MAX_ENTITIES
    if max_content_chars is None:
        max_content_chars = Config.CONTEXT_CONTENT_MAX_CHARS

    ordered = sorted(snapshot or [], key=lambda v: v.created_at)
    if max_entities <= 0:
        return []
    recent = ordered[-max_entities:]

    compacted = []
    for view in recent:
        entry: Dict[str, Any] = {"id": view.id}
        if view.title:
            entry["title"] = view.title
        if view.type:
            entry["type"] = view.type
        content = compact_content(view.content, max_content_chars)
        if content:
            entry["content"] = content
        image = _safe_metadata(view.metadata or {})
        if image:
            entry.update(image)
        compacted.append(entry)
    return compacted
