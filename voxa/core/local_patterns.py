"""
Local pattern fallback parser.

Deterministic, regex-based detection of a fixed set of phrasings. Runs on
every cycle alongside the language-model adapter, over the full transcript.

Rules live in an ordered table of PatternRule(matcher, build). Each family
(edit, group_create, group_assign, ...) yields at most one candidate per
cycle: the first rule of the family that matches wins, and within a rule the
LAST occurrence in the transcript is used (the most recent thing said).
New phrasings are added as new rows.

A second tier only runs when both the adapter and the first tier produced
nothing. It reads the current directive: WINDOW_RULES turn open/close
phrasing into open_window / close_window, and failing those SEARCH_RULES
turn information-seeking phrasing into one search.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from voxa.core.intent_plan import ToolCallCandidate
from voxa.core.logger import get_logger

Built = Optional[Tuple[str, Dict[str, Any]]]


@dataclass(frozen=True)
class PatternRule:
    """One row of the rule table"""
    name: str
    family: str
    matcher: re.Pattern
    build: Callable[[re.Match], Built]


# Quotes as dictated or typed
_OQ = r"[\"“]"
_CQ = r"[\"”]"
# Up to a sentence terminator followed by space/end, or the end
_TO_END = r"(?=[.!?](?:\s|$)|$)"
# Up to any clause boundary (punctuation, "and"/"then", or the end)
_TO_BOUNDARY = r"(?=\s*[.!?,;](?:\s|$)|\s+(?:and|then)\s|\s*$)"

# Words that are references, not group names
_NOT_A_NAME = {"it", "this", "that", "window", "the window", "all", "everything", "them"}


def _clean(text: str) -> str:
    return " ".join((text or "").split()).strip(" \"'“”")


def _group_name(raw: str) -> Optional[str]:
    name = _clean(raw)
    if not name or name.lower() in _NOT_A_NAME:
        return None
    return name


# ============================================================================
# BUILDERS
# ============================================================================

def _edit_content(m: re.Match) -> Built:
    target, text = _clean(m.group("target")), _clean(m.group("text"))
    if not target or not text:
        return None
    return "edit_window", {"titleMatch": target, "newContent": text}


def _edit_title(m: re.Match) -> Built:
    target, text = _clean(m.group("target")), _clean(m.group("text"))
    if not target or not text:
        return None
    return "edit_window", {"titleMatch": target, "newTitle": text}


def _create_group(m: re.Match) -> Built:
    name = _group_name(m.group("name"))
    return ("create_group", {"name": name}) if name else None


def _assign_group(m: re.Match) -> Built:
    name = _group_name(m.group("name"))
    if not name:
        return None
    params: Dict[str, Any] = {"groupName": name}
    ref = (m.group("ref") or "").lower()
    if "active" in ref or ref == "this":
        params["selector"] = "active"
    return "assign_group", params


def _collapse_group(m: re.Match) -> Built:
    name = _group_name(m.group("name"))
    return ("collapse_group", {"name": name}) if name else None


def _expand_group(m: re.Match) -> Built:
    name = _group_name(m.group("name"))
    return ("expand_group", {"name": name}) if name else None


def _search(m: re.Match) -> Built:
    query = _clean(m.group("query"))
    return ("search", {"query": query}) if query else None


# Checked in order; the first kind mentioned outside the title wins
_WINDOW_KINDS = [
    (re.compile(r"\b(?:sticky\s+)?note\b", re.IGNORECASE), "sticky-note"),
    (re.compile(r"\blesson\b", re.IGNORECASE), "lesson"),
    (re.compile(r"\bquiz\b", re.IGNORECASE), "quiz"),
    (re.compile(r"\bhint\b", re.IGNORECASE), "hint"),
    (re.compile(r"\bexplain(?:er)?\b", re.IGNORECASE), "explainer"),
    (re.compile(r"\bnotification\b", re.IGNORECASE), "notification"),
    (re.compile(r"\bdialog(?:ue)?\b", re.IGNORECASE), "dialog"),
    (re.compile(r"\bsettings\b", re.IGNORECASE), "settings"),
    (re.compile(r"\bwindow\b", re.IGNORECASE), "general"),
]

_FIXED_CONTENT = {
    "lesson": "Lesson content",
    "quiz": "Quiz content",
    "hint": "Hint",
    "explainer": "Explanation",
    "notification": "Notification",
    "dialog": "Dialog window",
    "settings": "Settings",
    "general": "Window content",
}

_TITLE_RES = [
    re.compile(rf"{_OQ}(?P<title>[^\"”]+){_CQ}"),
    re.compile(r"\b(?:titled|called|named)\s+(?P<title>.+?)(?=\s+window\b|$)", re.IGNORECASE),
]
_NOTE_TEXT_RE = re.compile(
    rf"\bnote\b(?:\s+(?:saying|that\s+says|with|about)|\s*:)\s*{_OQ}?(?P<text>[^\"”]+?){_CQ}?\s*$",
    re.IGNORECASE,
)
_HINT_TEXT_RE = re.compile(r"\bhint\s+(?:about|for|on)\s+(?P<text>.+)$", re.IGNORECASE)
_EXPLAIN_TEXT_RE = re.compile(r"\bexplain(?:er)?(?:\s+(?:about|on|for|of))?\s+(?P<text>.+)$", re.IGNORECASE)
_STEP_RE = re.compile(r"\bstep\s*(\d+)", re.IGNORECASE)
_LESSON_ID_RE = re.compile(r"\blesson\s+id\s+(\w+)", re.IGNORECASE)


def _extract_title(text: str) -> Tuple[Optional[str], str]:
    """Title from quotes or titled/called/named, plus the text with it removed"""
    for pattern in _TITLE_RES:
        m = pattern.search(text)
        if m and _clean(m.group("title")):
            return _clean(m.group("title")), text[:m.start()] + text[m.end():]
    return None, text


def _open_window(m: re.Match) -> Built:
    rest = m.group("rest")
    title, rest_without_title = _extract_title(rest)

    window_type = None
    for pattern, kind in _WINDOW_KINDS:
        if pattern.search(rest_without_title):
            window_type = kind
            break
    if window_type is None:
        return None

    content = _FIXED_CONTENT.get(window_type, "")
    metadata: Dict[str, Any] = {}
    if window_type == "sticky-note":
        note = _NOTE_TEXT_RE.search(rest)
        content = _clean(note.group("text")) if note else "New sticky note"
        if title == content:
            title = None
    elif window_type == "hint":
        hint = _HINT_TEXT_RE.search(rest_without_title)
        if hint:
            content = _clean(hint.group("text"))
    elif window_type == "explainer":
        topic = _EXPLAIN_TEXT_RE.search(rest_without_title)
        if topic and _clean(topic.group("text")):
            content = _clean(topic.group("text"))
            title = title or content[:1].upper() + content[1:]
    elif window_type == "lesson":
        step = _STEP_RE.search(rest)
        lesson_id = _LESSON_ID_RE.search(rest)
        if step:
            metadata["step"] = int(step.group(1))
        if lesson_id:
            metadata["lessonId"] = lesson_id.group(1)

    title = title or window_type.replace("-", " ").title()
    if window_type == "quiz":
        metadata["title"] = title

    context: Dict[str, Any] = {"title": title, "content": content, "type": window_type}
    if metadata:
        context["metadata"] = metadata
    return "open_window", {"windowType": window_type, "context": context}


_ALL_WORDS = {"all", "all the", "all of the", "every", "everything", "all of them", "them all", "each"}
_SELECTOR_WORDS = {
    "": "active", "it": "active", "this": "active", "that": "active",
    "current": "active", "active": "active", "focused": "active", "top": "active",
    "newest": "newest", "latest": "newest", "last": "newest", "new": "newest",
    "most recent": "newest", "recent": "newest",
    "oldest": "oldest", "first": "oldest",
}
_WINDOW_ID_RE = re.compile(r"(?:the\s+)?window\s+(?:id\s+)?(?P<id>[\w-]*\d[\w-]*)|id\s+(?P<bare>[\w-]+)", re.IGNORECASE)


def _close_window(m: re.Match) -> Built:
    target = _clean(m.group("target"))
    by_id = _WINDOW_ID_RE.fullmatch(target)
    if by_id:
        return "close_window", {"windowId": by_id.group("id") or by_id.group("bare")}

    words = target.lower().split()
    while words and words[0] in ("the", "my"):
        words.pop(0)
    while words and words[-1] in ("window", "windows", "one", "ones"):
        words.pop()
    phrase = " ".join(words)
    if phrase in _ALL_WORDS:
        return "close_window", {"selector": "all"}
    selector = _SELECTOR_WORDS.get(phrase)
    return ("close_window", {"selector": selector}) if selector else None


# ============================================================================
# RULE TABLE
# ============================================================================
# Order matters within a family: more specific rows first.

_GROUP_NAME = rf"{_OQ}?(?P<name>\w[\w\s'-]*?){_CQ}?(?:\s+(?:group|category))?{_TO_BOUNDARY}"

LOCAL_RULES: List[PatternRule] = [
    # change/edit window "Title" title to New Title
    PatternRule(
        "edit_title_quoted", "edit",
        re.compile(
            rf"\b(?:change|edit|set)\s+(?:the\s+)?window\s+{_OQ}(?P<target>[^\"”]+){_CQ}"
            rf"(?:'s)?\s+title\s+to\s+(?P<text>.+?){_TO_END}",
            re.IGNORECASE,
        ),
        _edit_title,
    ),
    # rename window "Title" to New Title
    PatternRule(
        "rename_quoted", "edit",
        re.compile(
            rf"\brename\s+(?:the\s+)?window\s+{_OQ}(?P<target>[^\"”]+){_CQ}\s+to\s+(?P<text>.+?){_TO_END}",
            re.IGNORECASE,
        ),
        _edit_title,
    ),
    # change the window about cats title to Dogs
    PatternRule(
        "edit_title_about", "edit",
        re.compile(
            rf"\b(?:change|edit|set)\s+(?:the\s+)?window\s+about\s+(?P<target>.+?)(?:'s)?\s+title\s+to\s+"
            rf"(?P<text>.+?){_TO_END}",
            re.IGNORECASE,
        ),
        _edit_title,
    ),
    # edit window "Title" to (say) text
    PatternRule(
        "edit_content_quoted", "edit",
        re.compile(
            rf"\b(?:edit|change|update)\s+(?:the\s+)?window\s+{_OQ}(?P<target>[^\"”]+){_CQ}\s+to\s+"
            rf"(?:say\s+)?(?P<text>.+?){_TO_END}",
            re.IGNORECASE,
        ),
        _edit_content,
    ),
    # edit the window about cats to say meow
    PatternRule(
        "edit_content_about", "edit",
        re.compile(
            rf"\b(?:edit|change|update)\s+(?:the\s+)?window\s+about\s+(?P<target>.+?)\s+to\s+"
            rf"(?:say\s+)?(?P<text>.+?){_TO_END}",
            re.IGNORECASE,
        ),
        _edit_content,
    ),
    # create/make/add (a) (new) category/group (called) Work
    PatternRule(
        "create_group", "group_create",
        re.compile(
            rf"\b(?:create|make|add)\s+(?:a\s+|an\s+)?(?:new\s+)?(?:category|group)\s+"
            rf"(?:called\s+|named\s+)?{_GROUP_NAME}",
            re.IGNORECASE,
        ),
        _create_group,
    ),
    # assign (this/window/active) to Work
    PatternRule(
        "assign_group", "group_assign",
        re.compile(
            r"\bassign\s+(?:(?P<ref>this|(?:the\s+)?window|(?:the\s+)?active(?:\s+window)?)\s+)?"
            rf"to\s+(?:the\s+)?(?:group\s+|category\s+)?{_GROUP_NAME}",
            re.IGNORECASE,
        ),
        _assign_group,
    ),
    PatternRule(
        "collapse_group", "group_collapse",
        re.compile(rf"\bcollapse\s+(?:the\s+)?(?:group\s+|category\s+)?{_GROUP_NAME}", re.IGNORECASE),
        _collapse_group,
    ),
    PatternRule(
        "expand_group", "group_expand",
        re.compile(rf"\bexpand\s+(?:the\s+)?(?:group\s+|category\s+)?{_GROUP_NAME}", re.IGNORECASE),
        _expand_group,
    ),
]


SEARCH_RULES: List[PatternRule] = [
    PatternRule(
        "search", "search",
        re.compile(
            r"\b(?:search\s+(?:the\s+web\s+|online\s+)?for|find\s+(?:some\s+)?(?:information|info)\s+(?:about|on)"
            r"|look\s+up|research|find)\s+(?P<query>.+?)" + _TO_END,
            re.IGNORECASE,
        ),
        _search,
    ),
]


WINDOW_RULES: List[PatternRule] = [
    # open/create/show/start (me) a sticky note saying ... / a quiz called ... / a window titled ...
    PatternRule(
        "open_window", "window_open",
        re.compile(
            r"\b(?:open|create|show|start|make|bring\s+up|pop\s+up)\s+(?:me\s+)?(?:up\s+)?(?P<rest>.+?)" + _TO_END,
            re.IGNORECASE,
        ),
        _open_window,
    ),
    # close/dismiss it / the newest window / everything / window w3
    PatternRule(
        "close_window", "window_close",
        re.compile(rf"\b(?:close|dismiss)\s+(?P<target>.+?){_TO_BOUNDARY}", re.IGNORECASE),
        _close_window,
    ),
]


# ============================================================================
# PARSER
# ============================================================================

def _last_match(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    last = None
    for m in pattern.finditer(text):
        last = m
    return last


def run_rules(text: str, rules: Sequence[PatternRule], origin: str = "local") -> List[ToolCallCandidate]:
    """
    Apply a rule table to text.

    Returns:
        At most one candidate per family, in table order
    """
    logger = get_logger()
    candidates: List[ToolCallCandidate] = []
    done_families = set()

    if not text or not text.strip():
        return candidates

    for rule in rules:
        if rule.family in done_families:
            continue
        m = _last_match(rule.matcher, text)
        if m is None:
            continue
        built = rule.build(m)
        if built is None:
            continue
        tool, params = built
        done_families.add(rule.family)
        candidates.append(ToolCallCandidate(
            tool=tool,
            parameters=params,
            source_text=m.group(0).strip(),
            origin=origin,
        ))
        logger.debug(f"[LOCAL] {rule.name} -> {tool} {params}")

    return candidates


def detect_local_calls(transcript: str) -> List[ToolCallCandidate]:
    """First tier: edit and grouping phrasings over the full transcript"""
    return run_rules(transcript, LOCAL_RULES, origin="local")


def detect_search_fallback(text: str) -> List[ToolCallCandidate]:
    """Second tier: generic information-seeking phrasing -> one search call"""
    return run_rules(text, SEARCH_RULES, origin="fallback")[:1]


def detect_fallback_calls(text: str) -> List[ToolCallCandidate]:
    """
    Second tier over the current directive.

    Open/close phrasing wins; only when neither matches is the text treated
    as a search.
    """
    calls = run_rules(text, WINDOW_RULES, origin="fallback")
    if calls:
        return calls
    return detect_search_fallback(text)
