"""
Call deduplicator / merger.

Combines local-parser and adapter candidates into one ordered batch:

1. Local candidates first, then adapter candidates, each list keeping its
   own order. Deterministic detections win ties with adapter output.
2. A candidate is dropped when its signature (tool + canonical parameters)
   is already in the action history or was accepted earlier in this batch.
3. Repeatable calls always pass: tools listed in Config.REPEATABLE_TOOLS and
   close_window with selector "all".
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from voxa.core.config import Config
from voxa.core.intent_plan import ToolCallCandidate
from voxa.core.logger import get_logger


def is_repeatable(candidate: ToolCallCandidate, repeatable_tools: Iterable[str]) -> bool:
    """Calls that are never treated as duplicates"""
    if candidate.tool in repeatable_tools:
        return True
    params = candidate.parameters or {}
    return candidate.tool == "close_window" and params.get("selector") == "all"


@dataclass
class MergeResult:
    accepted: List[ToolCallCandidate] = field(default_factory=list)
    duplicates: List[ToolCallCandidate] = field(default_factory=list)


def merge_candidates(
    local_calls: List[ToolCallCandidate],
    adapter_calls: List[ToolCallCandidate],
    history_signatures: Set[str],
    repeatable_tools: Optional[Iterable[str]] = None,
) -> MergeResult:
    """
    Merge and deduplicate candidates.

    Args:
        local_calls: From the local pattern parser (first in order)
        adapter_calls: From the language-model adapter
        history_signatures: Signatures of recently dispatched actions
        repeatable_tools: Tool names exempt from dedup (default from Config)

    Returns:
        MergeResult with accepted and rejected-as-duplicate candidates
    """
    logger = get_logger()
    repeatable = set(Config.REPEATABLE_TOOLS if repeatable_tools is None else repeatable_tools)

    result = MergeResult()
    seen: Set[str] = set()

    for cand in list(local_calls) + list(adapter_calls):
        if is_repeatable(cand, repeatable):
            result.accepted.append(cand)
            continue

        sig = cand.signature()
        if sig in history_signatures:
            logger.debug(f"[MERGE] drop {cand.origin} {sig}: already in history")
            result.duplicates.append(cand)
            continue
        if sig in seen:
            logger.debug(f"[MERGE] drop {cand.origin} {sig}: duplicate in batch")
            result.duplicates.append(cand)
            continue

        seen.add(sig)
        result.accepted.append(cand)

    logger.debug(
        f"[MERGE] local={len(local_calls)} adapter={len(adapter_calls)} "
        f"accepted={len(result.accepted)} duplicates={len(result.duplicates)}"
    )
    return result
