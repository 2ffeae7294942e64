"""
Orchestrator for Voxa.
Runs one processing cycle per inbound transcript update:

    transcript update -> conversation store -> directive splitter
        -> context compactor -> {parsing adapter, local pattern parser}
        -> alias/education normalization + validation -> merger
        -> dispatch engine -> action history, batch result

Cycles are serialized by an asyncio.Lock (Config.SERIALIZE_CYCLES), so two
overlapping updates never race on the action history. Nothing here raises
into the host: the worst case is an empty batch.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from voxa.brain.prompt_compact import compact_context
from voxa.brain.task_parser import ParseRequest
from voxa.core.call_merger import merge_candidates
from voxa.core.config import Config
from voxa.core.conversation import ConversationState
from voxa.core.directive_splitter import Directive, split_directive
from voxa.core.dispatch import DispatchEngine
from voxa.core.intent_plan import (
    AdapterOutcome,
    ConversationalReply,
    ExecutionResult,
    ParseFailure,
    ToolCallCandidate,
    ValidCallList,
    decode_adapter_response,
    filter_valid_candidates,
    normalize_education_intent,
    normalize_tool_aliases,
    outcome_calls,
)
from voxa.core.local_patterns import detect_fallback_calls, detect_local_calls
from voxa.core.logger import get_logger
from voxa.core.outbound import OutboundChannel
from voxa.tools.registry import ToolRegistry, build_default_registry
from voxa.world.window_diff import build_id_dict, diff_snapshots
from voxa.world.window_registry import EntitySnapshot, WindowRegistry, parse_snapshot


TranscriptUpdate = Union[str, Dict[str, Any]]


@dataclass
class BatchResult:
    """Outbound result of one processing cycle"""
    id: str
    success: bool
    original_text: str
    tasks: List[ToolCallCandidate] = field(default_factory=list)
    execution_results: List[ExecutionResult] = field(default_factory=list)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    conversational_response: Optional[str] = None
    directive: Optional[Directive] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "success": self.success,
            "originalText": self.original_text,
            "tasks": [t.to_dict() for t in self.tasks],
            "executionResults": [r.to_dict() for r in self.execution_results],
            "timestamp": self.timestamp,
        }
        if self.conversational_response:
            data["conversationalResponse"] = self.conversational_response
        return data


def batch_success(results: List[ExecutionResult]) -> bool:
    """
    Every call succeeded. A fan-out call (branch ids "<task>.<n>") counts as
    succeeded when at least one of its branches did.
    """
    by_call: Dict[str, bool] = {}
    for r in results:
        call_id = r.task_id.split(".", 1)[0]
        by_call[call_id] = by_call.get(call_id, False) or r.success
    return all(by_call.values())


def _read_update(update: TranscriptUpdate) -> Dict[str, Optional[str]]:
    if isinstance(update, str):
        return {"transcript": update, "pastTranscript": None, "currentDirective": None}
    if not isinstance(update, dict):
        return {"transcript": "", "pastTranscript": None, "currentDirective": None}

    def _str(key: str) -> Optional[str]:
        value = update.get(key)
        return value if isinstance(value, str) else None

    return {
        "transcript": _str("transcript") or "",
        "pastTranscript": _str("pastTranscript"),
        "currentDirective": _str("currentDirective"),
    }


class Pipeline:
    """
    Command interpretation and dispatch pipeline for ONE conversation.

    Args:
        adapter: Object with `async parse(ParseRequest) -> AdapterOutcome`
                 (TaskParser in production); None runs the local parser only
        windows: Live WindowRegistry
        tools: ToolRegistry (default: built-in tools over `windows`)
        channel: OutboundChannel for intents, lifecycle and results
        conversation: ConversationState (default: a fresh one)
        serialize: Hold a lock for the whole cycle (default Config.SERIALIZE_CYCLES)
        repeatable_tools: Tools exempt from dedup (default Config.REPEATABLE_TOOLS)
    """

    def __init__(
        self,
        adapter=None,
        windows: Optional[WindowRegistry] = None,
        tools: Optional[ToolRegistry] = None,
        channel: Optional[OutboundChannel] = None,
        conversation: Optional[ConversationState] = None,
        serialize: Optional[bool] = None,
        repeatable_tools: Optional[List[str]] = None,
    ):
        self.logger = get_logger()
        self.adapter = adapter
        self.windows = windows if windows is not None else WindowRegistry()
        self.tools = tools if tools is not None else build_default_registry(self.windows)
        self.channel = channel if channel is not None else OutboundChannel()
        self.conversation = conversation if conversation is not None else ConversationState.create()
        self.repeatable_tools = list(Config.REPEATABLE_TOOLS if repeatable_tools is None else repeatable_tools)
        self.dispatcher = DispatchEngine(self.tools, self.windows, self.channel)

        serialize = Config.SERIALIZE_CYCLES if serialize is None else serialize
        self._lock: Optional[asyncio.Lock] = asyncio.Lock() if serialize else None

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def process_transcript(self, update: TranscriptUpdate) -> BatchResult:
        """
        Run one processing cycle.

        Args:
            update: {"transcript", "pastTranscript"?, "currentDirective"?} or a bare string
        """
        if self._lock is None:
            return await self._cycle(update)
        async with self._lock:
            return await self._cycle(update)

    def push_context(self, payload: Any) -> EntitySnapshot:
        """
        Replace the stored UI context with a pushed snapshot.

        The snapshot is diffed against the registry and the resulting
        lifecycle events are applied, so both agree afterwards.
        """
        views = parse_snapshot(payload)
        events = diff_snapshots(build_id_dict(self.windows.snapshot()), build_id_dict(views))
        changed = self.windows.apply_events(events)
        self.conversation.set_context(views)
        self.logger.debug(f"[REGISTRY] context push: {len(views)} window(s), {changed} change(s)")
        return views

    def report_event(self, event: Dict[str, Any]) -> bool:
        """Apply one host lifecycle event (opened/closed/focused/...)"""
        return self.windows.apply_event(event)

    def reset(self) -> None:
        """Forget the conversation; the registry mirrors the host and is kept"""
        self.conversation.reset()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _cycle(self, update: TranscriptUpdate) -> BatchResult:
        start_time = time.time()
        fields = _read_update(update)
        conversation = self.conversation

        full = conversation.append_transcript(fields["transcript"] or "")
        directive = split_directive(full, fields["pastTranscript"], fields["currentDirective"])
        self.logger.debug(f"[SPLIT] directive={directive.current_directive!r} past={len(directive.past_transcript)} chars")

        snapshot = self.windows.snapshot()
        conversation.set_context(snapshot)

        request = ParseRequest(
            directive=directive.current_directive,
            past_transcript=directive.past_transcript,
            context=compact_context(snapshot),
            recent_actions=conversation.recent_actions(),
            catalogue=self.tools.catalogue(),
        )

        local_calls = [c for c in detect_local_calls(full) if not conversation.is_stale_failure(c, full)]
        outcome = await self._run_adapter(request)

        adapter_calls, _ = normalize_tool_aliases(outcome_calls(outcome), self.tools)
        adapter_calls = [normalize_education_intent(directive.current_directive, c) for c in adapter_calls]
        adapter_calls, rejected = filter_valid_candidates(adapter_calls, self.tools)
        local_calls, _ = filter_valid_candidates(local_calls, self.tools)
        if rejected:
            self.logger.debug(f"[PARSE] dropped unknown tool(s): {rejected}")

        if not local_calls and not adapter_calls:
            local_calls = detect_fallback_calls(directive.current_directive)
            local_calls, _ = filter_valid_candidates(local_calls, self.tools)

        merged = merge_candidates(
            local_calls,
            adapter_calls,
            conversation.history_signatures(),
            self.repeatable_tools,
        )

        results = await self.dispatcher.dispatch_batch(merged.accepted, conversation)
        succeeded = conversation.history_signatures()
        for candidate in merged.accepted:
            if candidate.origin == "local":
                conversation.note_local_outcome(candidate, full, candidate.signature() in succeeded)

        reply = None
        if not merged.accepted and isinstance(outcome, ConversationalReply):
            reply = outcome.text

        batch = BatchResult(
            id=uuid.uuid4().hex[:12],
            success=batch_success(results),
            original_text=directive.current_directive,
            tasks=merged.accepted,
            execution_results=results,
            conversational_response=reply,
            directive=directive,
        )
        conversation.cycles += 1

        await self.channel.publish("batch_result", batch.to_dict())
        if reply:
            await self.channel.publish("conversational_reply", {"text": reply, "batchId": batch.id})

        elapsed_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            f"[CYCLE] {len(merged.accepted)} call(s), {sum(1 for r in results if r.success)}/{len(results)} ok, "
            f"{len(merged.duplicates)} duplicate(s) ({elapsed_ms}ms)"
        )
        return batch

    async def _run_adapter(self, request: ParseRequest) -> AdapterOutcome:
        """Adapter failures degrade to ParseFailure, never abort the cycle"""
        if self.adapter is None:
            return ParseFailure("no adapter")
        try:
            outcome = await self.adapter.parse(request)
        except Exception as e:
            self.logger.error(f"[LLM] adapter raised {type(e).__name__}: {e}")
            return ParseFailure(str(e))
        if isinstance(outcome, (ValidCallList, ConversationalReply, ParseFailure)):
            return outcome
        # Raw response (dict / JSON text) from a minimal adapter
        return decode_adapter_response(outcome)
