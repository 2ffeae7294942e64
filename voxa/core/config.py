"""
Configuration module for Voxa.
Centralizes all settings with environment variable overrides.
"""
import os
from typing import List


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


class Config:
    """Central configuration for Voxa"""

    # Conversation state bounds
    TRANSCRIPT_MAX_CHARS: int = int(os.environ.get("VOXA_TRANSCRIPT_MAX_CHARS", "2000"))
    ACTION_HISTORY_SIZE: int = int(os.environ.get("VOXA_ACTION_HISTORY_SIZE", "10"))
    PAST_CONTEXT_CHARS: int = int(os.environ.get("VOXA_PAST_CONTEXT_CHARS", "2000"))

    # Context compaction (what the parser is allowed to see)
    CONTEXT_MAX_ENTITIES: int = int(os.environ.get("VOXA_CONTEXT_MAX_ENTITIES", "12"))
    CONTEXT_CONTENT_MAX_CHARS: int = int(os.environ.get("VOXA_CONTEXT_CONTENT_MAX_CHARS", "600"))

    # LLM parsing adapter
    LLM_MODE: str = os.environ.get("VOXA_LLM_MODE", "cerebras")  # "cerebras" or "off"
    LLM_BASE_URL: str = os.environ.get("VOXA_LLM_BASE_URL", "https://api.cerebras.ai/v1")
    LLM_MODEL: str = os.environ.get("VOXA_LLM_MODEL", "gpt-oss-120b")
    LLM_API_KEY: str = os.environ.get("VOXA_LLM_API_KEY", os.environ.get("CEREBRAS_API_KEY", ""))
    LLM_TIMEOUT: int = int(os.environ.get("VOXA_LLM_TIMEOUT", "30"))
    LLM_TEMPERATURE: float = float(os.environ.get("VOXA_LLM_TEMPERATURE", "0.3"))
    LLM_MAX_PROMPT_CHARS: int = int(os.environ.get("VOXA_LLM_MAX_PROMPT_CHARS", "8000"))

    # Dispatch
    # Tools listed here skip deduplication against history and the batch.
    REPEATABLE_TOOLS: List[str] = [
        t.strip() for t in os.environ.get("VOXA_REPEATABLE_TOOLS", "organize_windows").split(",") if t.strip()
    ]

    # One processing cycle at a time (see orchestrator)
    SERIALIZE_CYCLES: bool = _env_bool("VOXA_SERIALIZE_CYCLES", "true")

    # Logging
    LOG_LEVEL: str = os.environ.get("VOXA_LOG_LEVEL", "INFO")

    # Quiet Mode - hides pipeline internals for a cleaner console
    QUIET_MODE: bool = _env_bool("VOXA_QUIET_MODE", "false")

    @classmethod
    def llm_enabled(cls) -> bool:
        """True when the language-model adapter should be contacted at all"""
        return cls.LLM_MODE != "off" and bool(cls.LLM_API_KEY)
