"""
Directive splitter for accumulated transcripts.

A continuously speaking user produces one long, growing transcript. Each
processing cycle only acts on the newest utterance (the "current directive");
everything before it is past transcript, passed to the parser as context only.

Rules:
1. If the caller already knows the utterance boundary (explicit directive),
   use it as-is. The past transcript is the caller's, or the full transcript
   minus the trailing directive length.
2. Otherwise split on sentence terminators (. ! ?) and take the last
   non-empty segment. Everything before its last occurrence is past.
3. No terminator at all: the whole transcript is the directive.

Deterministic and side-effect free.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional


# Sentence terminators
_TERMINATOR_RE = re.compile(r"[.!?]")


@dataclass(frozen=True)
class Directive:
    """Result of a split."""
    past_transcript: str
    current_directive: str

    def to_dict(self) -> dict:
        return {
            "pastTranscript": self.past_transcript,
            "currentDirective": self.current_directive,
        }


def _segments(text: str) -> List[str]:
    """Non-empty, stripped sentence segments."""
    return [s.strip() for s in _TERMINATOR_RE.split(text) if s.strip()]


def split_directive(
    full_transcript: str,
    past_transcript: Optional[str] = None,
    current_directive: Optional[str] = None,
) -> Directive:
    """
    Extract the current directive from a full transcript.

    Args:
        full_transcript: Everything heard so far (already bounded)
        past_transcript: Caller-supplied past transcript (explicit split only)
        current_directive: Caller-supplied directive (explicit split)

    Returns:
        Directive(past_transcript, current_directive)

    Example:
        >>> split_directive("Open a note. Close it.")
        Directive(past_transcript='Open a note.', current_directive='Close it')
    """
    full = full_transcript or ""

    # Explicit split
    if current_directive is not None and current_directive.strip():
        directive = current_directive.strip()
        if past_transcript is not None:
            past = past_transcript.strip()
        else:
            cut = max(0, len(full) - len(current_directive))
            past = full[:cut].strip()
        return Directive(past_transcript=past, current_directive=directive)

    segments = _segments(full)
    if not segments:
        return Directive(past_transcript="", current_directive="")

    stripped = full.strip()
    if not _TERMINATOR_RE.search(stripped):
        return Directive(past_transcript="", current_directive=stripped)

    last = segments[-1]
    idx = full.rfind(last)
    past = full[:idx].strip() if idx > 0 else ""
    return Directive(past_transcript=past, current_directive=last)
