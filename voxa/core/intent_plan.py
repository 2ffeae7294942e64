"""
Tool call candidates, adapter response decoding, and candidate validation.

The adapter's output is untrusted. decode_adapter_response() is a strict
decoder that turns whatever came back into exactly one of:

    ValidCallList        - zero or more well-formed candidates
    ConversationalReply  - a reply string and no calls
    ParseFailure         - nothing usable (degrades to an empty call list)

so a non-empty call list and a non-empty reply can never coexist.
"""
from __future__ import annotations

import json
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from voxa.core.logger import get_logger


# Allowed top-level keys of an adapter response
CALLS_KEY = "new_tool_calls"
REPLY_KEY = "conversational_response"
_ALLOWED_KEYS = {CALLS_KEY, REPLY_KEY}


# ============================================================================
# TOOL ALIAS NORMALIZATION
# ============================================================================
# Common model-invented tool names mapped to canonical names.
# Aliases are only applied if the target tool EXISTS in the registry.

TOOL_ALIAS_MAP: Dict[str, str] = {
    # Window lifecycle
    "open": "open_window",
    "create_window": "open_window",
    "show_window": "open_window",
    "new_window": "open_window",
    "close": "close_window",
    "dismiss_window": "close_window",
    "hide_window": "close_window",
    "edit": "edit_window",
    "update_window": "edit_window",
    "rename_window": "edit_window",

    # Layout
    "organize": "organize_windows",
    "arrange_windows": "organize_windows",
    "tidy_windows": "organize_windows",
    "reorganize_windows": "organize_windows",

    # Search
    "web_search": "search",
    "google_search": "search",
    "search_web": "search",
    "lookup": "search",
    "research": "search",

    # Webview
    "open_url": "open_webview",
    "open_link": "open_webview",
    "open_result": "open_search_result",

    # Grouping
    "create_category": "create_group",
    "make_group": "create_group",
    "assign_category": "assign_group",
    "add_to_group": "assign_group",
    "collapse_category": "collapse_group",
    "expand_category": "expand_group",

    # Tasks and reminders
    "add_task": "create_task",
    "list_tasks": "view_tasks",
    "show_tasks": "view_tasks",
    "remind_me": "set_reminder",
    "reminder": "set_reminder",
}


def canonical_parameters(parameters: Dict[str, Any]) -> str:
    """Order-independent serialization of a parameter map"""
    return json.dumps(parameters, sort_keys=True, separators=(",", ":"), default=str)


def call_signature(tool: str, parameters: Dict[str, Any]) -> str:
    """Deduplication key: tool name + canonical parameters"""
    return f"{tool}:{canonical_parameters(parameters or {})}"


@dataclass
class ToolCallCandidate:
    """A proposed tool call from either parser"""
    tool: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    source_text: str = ""
    origin: str = "adapter"  # adapter | local | fallback

    def signature(self) -> str:
        return call_signature(self.tool, self.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "parameters": self.parameters,
            "sourceText": self.source_text,
        }


@dataclass
class ActionRecord:
    """A successfully dispatched call; append-only dedup corpus"""
    action_id: str
    tool: str
    parameters: Dict[str, Any]
    source_text: str
    timestamp: int

    @classmethod
    def from_candidate(cls, candidate: ToolCallCandidate, action_id: Optional[str] = None) -> "ActionRecord":
        return cls(
            action_id=action_id or uuid.uuid4().hex[:12],
            tool=candidate.tool,
            parameters=dict(candidate.parameters),
            source_text=candidate.source_text,
            timestamp=int(time.time() * 1000),
        )

    def signature(self) -> str:
        return call_signature(self.tool, self.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionId": self.action_id,
            "tool": self.tool,
            "parameters": self.parameters,
            "sourceText": self.source_text,
            "timestamp": self.timestamp,
        }


@dataclass
class ExecutionResult:
    """Result of executing a single call (or one fan-out branch)"""
    task_id: str
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    tool: str = ""
    error_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "taskId": self.task_id,
            "success": self.success,
            "timestamp": self.timestamp,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data


# ============================================================================
# ADAPTER OUTCOME VARIANTS
# ============================================================================

@dataclass
class ValidCallList:
    calls: List[ToolCallCandidate] = field(default_factory=list)
    dropped: int = 0


@dataclass
class ConversationalReply:
    text: str


@dataclass
class ParseFailure:
    reason: str


AdapterOutcome = Union[ValidCallList, ConversationalReply, ParseFailure]


def outcome_calls(outcome: AdapterOutcome) -> List[ToolCallCandidate]:
    """Calls carried by an outcome; replies and failures carry none"""
    if isinstance(outcome, ValidCallList):
        return list(outcome.calls)
    return []


_FENCE_RE = re.compile(r"^```(?:json)?\s*(?P<body>.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _load_json_text(text: str) -> Any:
    body = text.strip()
    m = _FENCE_RE.match(body)
    if m:
        body = m.group("body")
    return json.loads(body)


def _from_chat_completion(payload: Dict[str, Any]) -> Union[Dict[str, Any], str, ParseFailure]:
    """Unwrap an OpenAI-style chat completion into a response object or content string"""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ParseFailure("completion has no choices")
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ParseFailure("completion choice has no message")

    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls:
        entries: List[Any] = []
        for tc in tool_calls:
            fn = tc.get("function") if isinstance(tc, dict) else None
            if not isinstance(fn, dict):
                entries.append(None)
                continue
            args = fn.get("arguments", {})
            if isinstance(args, str):
                try:
                    args = json.loads(args) if args.strip() else {}
                except ValueError:
                    entries.append(None)
                    continue
            entries.append({"tool": fn.get("name"), "parameters": args, "sourceText": ""})
        return {CALLS_KEY: entries}

    content = message.get("content")
    if isinstance(content, str):
        return content
    return ParseFailure("completion message has no content")


def _decode_call_entry(entry: Any) -> Optional[ToolCallCandidate]:
    if not isinstance(entry, dict):
        return None
    tool = entry.get("tool")
    if not isinstance(tool, str) or not tool.strip():
        return None
    params = entry.get("parameters", {})
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return None
    source = entry.get("sourceText", "")
    return ToolCallCandidate(
        tool=tool.strip(),
        parameters=params,
        source_text=source if isinstance(source, str) else "",
        origin="adapter",
    )


def decode_adapter_response(raw: Any) -> AdapterOutcome:
    """
    Decode an untrusted adapter response.

    Accepts the response object itself, its JSON text (optionally inside a
    Markdown code fence), or an OpenAI-style chat completion wrapping either.
    Malformed call entries are dropped individually. When a model breaks the
    contract and sends calls together with a reply, the calls win and the
    reply is discarded.

    Args:
        raw: dict, str, or None

    Returns:
        ValidCallList, ConversationalReply, or ParseFailure
    """
    logger = get_logger()

    if raw is None:
        return ParseFailure("empty response")

    if isinstance(raw, dict) and "choices" in raw:
        unwrapped = _from_chat_completion(raw)
        if isinstance(unwrapped, ParseFailure):
            return unwrapped
        raw = unwrapped

    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        if not text.strip():
            return ParseFailure("empty response")
        try:
            raw = _load_json_text(text)
        except ValueError as e:
            return ParseFailure(f"non-JSON response: {e}")

    if not isinstance(raw, dict):
        return ParseFailure(f"response is {type(raw).__name__}, expected object")

    extra = set(raw.keys()) - _ALLOWED_KEYS
    if extra:
        return ParseFailure(f"unexpected top-level keys: {sorted(extra)}")

    raw_calls = raw.get(CALLS_KEY, [])
    if raw_calls is None:
        raw_calls = []
    if not isinstance(raw_calls, list):
        return ParseFailure(f"{CALLS_KEY} is {type(raw_calls).__name__}, expected list")

    reply = raw.get(REPLY_KEY)
    if reply is not None and not isinstance(reply, str):
        return ParseFailure(f"{REPLY_KEY} is {type(reply).__name__}, expected string")

    calls: List[ToolCallCandidate] = []
    dropped = 0
    for entry in raw_calls:
        candidate = _decode_call_entry(entry)
        if candidate is None:
            dropped += 1
            continue
        calls.append(candidate)

    if dropped:
        logger.debug(f"[PARSE] dropped {dropped} malformed call entr{'y' if dropped == 1 else 'ies'}")

    if calls:
        if reply and reply.strip():
            logger.warning("[PARSE] adapter sent calls and a reply together; keeping calls")
        return ValidCallList(calls=calls, dropped=dropped)

    if reply and reply.strip():
        return ConversationalReply(text=reply.strip())

    return ValidCallList(calls=[], dropped=dropped)


# ============================================================================
# NORMALIZATION AND VALIDATION
# ============================================================================

def normalize_tool_aliases(
    candidates: List[ToolCallCandidate], tool_registry
) -> Tuple[List[ToolCallCandidate], List[str]]:
    """
    Rewrite known tool aliases to canonical names.

    Only applied when the canonical tool exists in the registry; anything else
    is left for filter_valid_candidates() to drop.

    Returns:
        Tuple of (normalized_candidates, list of alias log messages)
    """
    logger = get_logger()
    normalized = []
    log_messages = []

    for cand in candidates:
        canonical = TOOL_ALIAS_MAP.get(cand.tool)
        if canonical and not tool_registry.has_tool(cand.tool) and tool_registry.has_tool(canonical):
            msg = f"[ALIAS_NORM] '{cand.tool}' -> '{canonical}'"
            logger.debug(msg)
            log_messages.append(msg)
            normalized.append(ToolCallCandidate(
                tool=canonical,
                parameters=cand.parameters,
                source_text=cand.source_text,
                origin=cand.origin,
            ))
        else:
            normalized.append(cand)

    return normalized, log_messages


def is_valid_candidate(candidate: Any, tool_registry) -> bool:
    """Tool name exists in the registry and parameters is a key-value map"""
    if not isinstance(candidate, ToolCallCandidate):
        return False
    if not isinstance(candidate.tool, str) or not candidate.tool:
        return False
    if not tool_registry.has_tool(candidate.tool):
        return False
    return isinstance(candidate.parameters, dict)


def filter_valid_candidates(
    candidates: List[ToolCallCandidate], tool_registry
) -> Tuple[List[ToolCallCandidate], List[str]]:
    """
    Silently drop candidates that fail schema validation.

    Returns:
        Tuple of (valid_candidates, rejected tool names)
    """
    valid = []
    rejected = []
    for cand in candidates:
        if is_valid_candidate(cand, tool_registry):
            valid.append(cand)
        else:
            rejected.append(getattr(cand, "tool", None) or "<empty>")
    return valid, rejected


_EDU_TYPES = [
    # (trigger regex, window type)
    (re.compile(r"\b(?:explain|explainer|step by step)\b", re.IGNORECASE), "explainer"),
    (re.compile(r"\blesson\b", re.IGNORECASE), "lesson"),
    (re.compile(r"\bquiz\b", re.IGNORECASE), "quiz"),
    (re.compile(r"\bhint\b", re.IGNORECASE), "hint"),
]

_EXPLAIN_TOPIC_RE = re.compile(r"explain(?:\s+(?:about|the|how to))?\s*[\"']?([^\"'.!?]+)", re.IGNORECASE)


def normalize_education_intent(text: str, candidate: ToolCallCandidate) -> ToolCallCandidate:
    """
    Map education phrasing onto open_window types.

    When the utterance mentions explain/lesson/quiz/hint and the parsed
    window type is empty or "general", the type is rewritten.
    """
    if candidate.tool != "open_window":
        return candidate
    params = candidate.parameters
    context = params.get("context")
    if not isinstance(context, dict):
        return candidate

    current = str(params.get("windowType") or context.get("type") or "").lower()
    if current not in ("", "general"):
        return candidate

    for trigger, window_type in _EDU_TYPES:
        if not trigger.search(text or ""):
            continue
        new_context = dict(context)
        new_context["type"] = window_type
        if window_type == "explainer":
            if not new_context.get("title"):
                m = _EXPLAIN_TOPIC_RE.search(text)
                topic = m.group(1).strip() if m else ""
                new_context["title"] = topic[:1].upper() + topic[1:] if topic else "Explainer"
            if not new_context.get("content"):
                new_context["content"] = "Explanation"
        new_params = dict(params)
        new_params["windowType"] = window_type
        new_params["context"] = new_context
        return ToolCallCandidate(
            tool=candidate.tool,
            parameters=new_params,
            source_text=candidate.source_text,
            origin=candidate.origin,
        )

    return candidate
