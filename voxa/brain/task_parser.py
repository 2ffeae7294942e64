"""
Language-model parsing adapter.

Sends (directive, past transcript, compacted context, recent actions, tool
catalogue) to a chat-completions model and decodes whatever comes back with
the strict decoder. The outcome is always an AdapterOutcome; transport and
decode failures become ParseFailure and never escape.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from voxa.brain.chat_client import ChatCompletionsClient
from voxa.brain.prompt_builder import build_parser_messages
from voxa.core.config import Config
from voxa.core.errors import AdapterError
from voxa.core.intent_plan import (
    ActionRecord,
    AdapterOutcome,
    ConversationalReply,
    ParseFailure,
    ValidCallList,
    decode_adapter_response,
)
from voxa.core.logger import get_logger


@dataclass
class ParseRequest:
    """Everything the adapter is allowed to see for one cycle"""
    directive: str
    past_transcript: str = ""
    context: List[Dict[str, Any]] = field(default_factory=list)
    recent_actions: List[ActionRecord] = field(default_factory=list)
    catalogue: List[Dict[str, Any]] = field(default_factory=list)


class TaskParser:
    """Parsing adapter backed by ChatCompletionsClient"""

    def __init__(
        self,
        client: Optional[ChatCompletionsClient] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_prompt_chars: Optional[int] = None,
        enabled: Optional[bool] = None,
    ):
        self.logger = get_logger()
        self.client = client or ChatCompletionsClient(
            base_url=Config.LLM_BASE_URL,
            api_key=Config.LLM_API_KEY,
            timeout=Config.LLM_TIMEOUT,
        )
        self.model = model or Config.LLM_MODEL
        self.temperature = Config.LLM_TEMPERATURE if temperature is None else temperature
        self.max_prompt_chars = max_prompt_chars or Config.LLM_MAX_PROMPT_CHARS
        self.enabled = Config.llm_enabled() if enabled is None else enabled

    def parse_sync(self, request: ParseRequest) -> AdapterOutcome:
        """Blocking parse; runs in a worker thread from parse()"""
        if not self.enabled:
            return ParseFailure("adapter disabled")
        if not request.directive.strip():
            return ValidCallList(calls=[])

        messages = build_parser_messages(
            directive=request.directive,
            catalogue=request.catalogue,
            past_transcript=request.past_transcript,
            context=request.context,
            recent_actions=request.recent_actions,
            max_prompt_chars=self.max_prompt_chars,
        )

        try:
            raw = self.client.create_chat_completion(
                messages=messages,
                model=self.model,
                temperature=self.temperature,
            )
        except AdapterError as e:
            self.logger.warning(f"[LLM] adapter failed, continuing with local parser only: {e}")
            return ParseFailure(str(e))

        outcome = decode_adapter_response(raw)
        if isinstance(outcome, ParseFailure):
            self.logger.warning(f"[PARSE] {outcome.reason}")
        elif isinstance(outcome, ConversationalReply):
            self.logger.debug(f"[PARSE] reply: {outcome.text[:80]}")
        else:
            self.logger.debug(f"[PARSE] {len(outcome.calls)} call(s), {outcome.dropped} dropped")
        return outcome

    async def parse(self, request: ParseRequest) -> AdapterOutcome:
        """Await the network round-trip without blocking the event loop"""
        return await asyncio.to_thread(self.parse_sync, request)
