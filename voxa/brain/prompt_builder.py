"""
Prompt builder for the parsing adapter.

Builds the chat messages for one parser request: a system message with the
tool catalogue and the response contract, and a user message carrying the
current directive, the past transcript, the compacted UI context and the
recent action history. The user message is compacted if it exceeds the
prompt budget; the system message never is.
"""
import json
from typing import Any, Dict, List, Optional

from voxa.brain.messages import Message, MessageBuilder
from voxa.brain.prompt_compact import compact_prompt
from voxa.core.config import Config
from voxa.core.intent_plan import CALLS_KEY, REPLY_KEY, ActionRecord
from voxa.core.logger import get_logger

SYSTEM_PROMPT = """You convert a user's spoken commands into structured tool calls for a desktop of windows.

Available tools (JSON-schema parameters):
{catalogue}

Rules:
- Act ONLY on the CURRENT DIRECTIVE. The past transcript is context for resolving references, never a source of new actions.
- Never repeat an action listed under RECENT ACTIONS unless the directive explicitly asks for it again.
- Use window ids from UI CONTEXT when the user refers to a specific window; otherwise use a selector (newest, oldest, active, all).
- For sticky notes use windowType "sticky-note" and put the note text in context.content.
- Break multi-part requests into several tool calls, in the order spoken.

Respond with ONE JSON object and nothing else. It may contain only these keys:
  "{calls_key}": [{{"tool": <tool name>, "parameters": {{...}}, "sourceText": <words that asked for it>}}]
  "{reply_key}": <short reply string>
Either return tool calls OR a reply, never both. If nothing actionable was said, return {{"{calls_key}": []}}."""


def _format_catalogue(catalogue: List[Dict[str, Any]]) -> str:
    lines = []
    for tool in catalogue:
        params = json.dumps(tool.get("parameters", {}).get("properties", {}), separators=(",", ":"))
        lines.append(f"- {tool['name']}: {tool.get('description', '')} params={params}")
    return "\n".join(lines)


def build_system_prompt(catalogue: List[Dict[str, Any]]) -> str:
    return SYSTEM_PROMPT.format(
        catalogue=_format_catalogue(catalogue),
        calls_key=CALLS_KEY,
        reply_key=REPLY_KEY,
    )


def build_user_prompt(
    directive: str,
    past_transcript: str = "",
    context: Optional[List[Dict[str, Any]]] = None,
    recent_actions: Optional[List[ActionRecord]] = None,
    past_chars: Optional[int] = None,
) -> str:
    """Context blocks first, directive last (compaction keeps the tail)"""
    if past_chars is None:
        past_chars = Config.PAST_CONTEXT_CHARS

    parts = []
    past = (past_transcript or "").strip()
    if past:
        parts.append(f"PAST TRANSCRIPT (context only):\n{past[-past_chars:]}")
    if context:
        parts.append(f"UI CONTEXT:\n{json.dumps(context, ensure_ascii=False)}")
    if recent_actions:
        actions = [{"tool": a.tool, "parameters": a.parameters} for a in recent_actions]
        parts.append(f"RECENT ACTIONS:\n{json.dumps(actions, ensure_ascii=False, default=str)}")
    parts.append(f"CURRENT DIRECTIVE:\n{directive.strip()}")
    return "\n\n".join(parts)


def build_parser_messages(
    directive: str,
    catalogue: List[Dict[str, Any]],
    past_transcript: str = "",
    context: Optional[List[Dict[str, Any]]] = None,
    recent_actions: Optional[List[ActionRecord]] = None,
    max_prompt_chars: Optional[int] = None,
) -> List[Message]:
    """
    Build the messages for one parser request.

    Args:
        directive: Current directive (the only actionable text)
        catalogue: Tool catalogue entries from the ToolRegistry
        past_transcript: Earlier transcript, context only
        context: Compacted UI context
        recent_actions: Recent ActionRecords (so the model does not repeat them)
        max_prompt_chars: Budget for the user message

    Returns:
        [system, user] messages
    """
    if max_prompt_chars is None:
        max_prompt_chars = Config.LLM_MAX_PROMPT_CHARS

    user = build_user_prompt(directive, past_transcript, context, recent_actions)
    user, was_compacted = compact_prompt(user, max_chars=max_prompt_chars)
    if was_compacted:
        get_logger().debug(f"[LLM] user prompt compacted to {len(user)} chars")

    return (MessageBuilder()
            .system(build_system_prompt(catalogue))
            .user(user)
            .build())
