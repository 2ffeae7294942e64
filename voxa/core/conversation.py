"""voxa.core.conversation

Conversation State Store (in-RAM only).

Holds, for ONE conversation:
- transcript history, bounded to a character budget (tail kept, head dropped)
- action history, bounded to the last N successfully dispatched calls
- the last UI-context snapshot (replaced wholesale, never merged; content capped)
- local detections that failed, with how often their phrase had been heard

A ConversationState is an explicit object handed to the orchestrator. There
is no module-level singleton, so two conversations never share history.
All operations are synchronous in-memory mutations.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, Dict, List, Optional, Set

from voxa.core.config import Config
from voxa.core.intent_plan import ActionRecord, ToolCallCandidate
from voxa.world.window_registry import EntitySnapshot

# Shortest fragment overlap treated as a continuation of the same speech
_MIN_OVERLAP_CHARS = 8

# Failed local detections remembered at once
_MAX_FAILED_LOCAL = 50


def merge_transcript(history: str, text: str) -> str:
    """
    Join new transcript text onto the history.

    Handles the three shapes a speech source produces:
    - a cumulative transcript that extends the history -> replaces it
    - a repeat of text already at the end of the history -> no change
    - a fragment overlapping the tail of the history -> joined on the overlap
    Anything else is appended with a single space.
    """
    text = (text or "").strip()
    if not text:
        return history
    if not history:
        return text
    if text.startswith(history):
        return text
    if history.endswith(text):
        return history

    max_k = min(len(history), len(text))
    for k in range(max_k, _MIN_OVERLAP_CHARS - 1, -1):
        if history.endswith(text[:k]):
            return history + text[k:]

    return f"{history} {text}"


@dataclass
class ConversationState:
    """
    Bounded per-conversation state.

    Fields:
        transcript_history: Tail of everything heard, at most max_transcript_chars
        action_history: Last max_actions ActionRecords, oldest first
        ui_context: Last EntitySnapshot pushed or regenerated
        max_transcript_chars: Character budget for transcript_history
        max_actions: N for action_history
        max_content_chars: Cap on each stored snapshot entry's content
        failed_local: signature -> occurrences of the detected phrase when it failed
        created_ts: When this conversation started
    """
    max_transcript_chars: int = field(default_factory=lambda: Config.TRANSCRIPT_MAX_CHARS)
    max_actions: int = field(default_factory=lambda: Config.ACTION_HISTORY_SIZE)
    transcript_history: str = ""
    action_history: Deque[ActionRecord] = field(default_factory=deque)
    max_content_chars: int = field(default_factory=lambda: Config.CONTEXT_CONTENT_MAX_CHARS)
    ui_context: EntitySnapshot = field(default_factory=list)
    failed_local: Dict[str, int] = field(default_factory=dict)
    created_ts: float = field(default_factory=time.time)
    cycles: int = 0

    def __post_init__(self) -> None:
        self.max_transcript_chars = max(1, int(self.max_transcript_chars))
        self.max_actions = max(1, int(self.max_actions))
        self.action_history = deque(self.action_history, maxlen=self.max_actions)

    @classmethod
    def create(
        cls,
        max_transcript_chars: Optional[int] = None,
        max_actions: Optional[int] = None,
    ) -> "ConversationState":
        """Start a new, empty conversation"""
        return cls(
            max_transcript_chars=max_transcript_chars or Config.TRANSCRIPT_MAX_CHARS,
            max_actions=max_actions or Config.ACTION_HISTORY_SIZE,
        )

    def reset(self) -> None:
        """Drop all history and context; bounds are kept"""
        self.transcript_history = ""
        self.action_history = deque(maxlen=self.max_actions)
        self.ui_context = []
        self.failed_local = {}
        self.created_ts = time.time()
        self.cycles = 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append_transcript(self, text: str) -> str:
        """Merge text into the history and truncate to the budget (tail kept)"""
        combined = merge_transcript(self.transcript_history, text)
        if len(combined) > self.max_transcript_chars:
            combined = combined[-self.max_transcript_chars:]
        self.transcript_history = combined
        return self.transcript_history

    def append_action(self, record: ActionRecord) -> None:
        """Push a record; the deque evicts the oldest past max_actions"""
        self.action_history.append(record)

    def set_context(self, snapshot: EntitySnapshot) -> None:
        """Replace the stored snapshot wholesale, capping each entry's content"""
        cap = self.max_content_chars
        self.ui_context = [
            replace(v, content=v.content[:cap]) if v.content and len(v.content) > cap else v
            for v in snapshot or []
        ]

    def note_local_outcome(self, candidate: ToolCallCandidate, transcript: str, succeeded: bool) -> None:
        """
        Remember how often a failed local detection's phrase occurs in the
        transcript. A success forgets it.
        """
        sig = candidate.signature()
        self.failed_local.pop(sig, None)
        if succeeded:
            return
        self.failed_local[sig] = _occurrences(transcript, candidate.source_text)
        while len(self.failed_local) > _MAX_FAILED_LOCAL:
            del self.failed_local[next(iter(self.failed_local))]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def history_signatures(self) -> Set[str]:
        return {rec.signature() for rec in self.action_history}

    def is_stale_failure(self, candidate: ToolCallCandidate, transcript: str) -> bool:
        """True when a failed local detection is only being re-read from old text"""
        seen = self.failed_local.get(candidate.signature())
        if seen is None:
            return False
        return _occurrences(transcript, candidate.source_text) <= seen

    def recent_actions(self, count: Optional[int] = None) -> List[ActionRecord]:
        actions = list(self.action_history)
        if count is not None:
            actions = actions[-count:] if count > 0 else []
        return actions

    def to_dict(self) -> dict:
        """For logging/debugging."""
        return {
            "transcriptHistory": self.transcript_history,
            "actionHistory": [a.to_dict() for a in self.action_history],
            "uiContext": [v.to_dict() for v in self.ui_context],
            "cycles": self.cycles,
        }


def _occurrences(transcript: str, phrase: str) -> int:
    if not phrase:
        return 0
    return transcript.lower().count(phrase.lower())
