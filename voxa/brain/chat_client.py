"""
HTTP client for OpenAI-compatible chat-completions APIs (Cerebras by default).
Handles all communication with the hosted language model.
"""
import json
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from voxa.core.errors import AdapterError
from voxa.core.logger import get_logger


class ChatCompletionsClient:
    """Client for a /chat/completions endpoint with connection reuse."""

    def __init__(
        self,
        base_url: str = "https://api.cerebras.ai/v1",
        api_key: str = "",
        timeout: int = 30
    ):
        """
        Initialize the client.

        Args:
            base_url: API base URL (the /chat/completions suffix is added)
            api_key: Bearer token
            timeout: Default timeout for requests in seconds
        """
        self.logger = get_logger()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

        self.opener = urllib.request.build_opener(
            urllib.request.HTTPHandler(debuglevel=0),
            urllib.request.HTTPSHandler(debuglevel=0)
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Connection": "keep-alive",
        }

    def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        json_mode: bool = True,
    ) -> Dict[str, Any]:
        """
        POST a chat-completions request (non-streaming).

        Args:
            messages: [{"role", "content"}] list
            model: Model name to use
            temperature: Sampling temperature
            max_tokens: Optional completion cap
            json_mode: Ask for response_format json_object

        Returns:
            Decoded completion payload

        Raises:
            AdapterError: Missing key, transport failure, HTTP error, bad JSON
        """
        if not self.api_key:
            raise AdapterError("API key is required (set VOXA_LLM_API_KEY or CEREBRAS_API_KEY)")

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        req = urllib.request.Request(
            f"{self.base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(),
            method="POST"
        )

        start_time = time.time()
        self.logger.debug(f"[LLM] POST /chat/completions model={model}")

        try:
            with self.opener.open(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            error_body = ""
            try:
                error_body = e.read().decode("utf-8")
            except (OSError, ValueError):
                pass
            self.logger.error(f"[LLM] HTTP {e.code} after {elapsed_ms}ms: {error_body[:300]}")
            raise AdapterError(f"Chat API error ({e.code}): {error_body[:300]}") from e
        except urllib.error.URLError as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            self.logger.error(f"[LLM] Connection error after {elapsed_ms}ms: {e}")
            raise AdapterError(f"Cannot reach {self.base_url}: {e.reason}") from e
        except (TimeoutError, OSError) as e:
            raise AdapterError(f"Chat API request failed: {e}") from e

        try:
            data = json.loads(body)
        except ValueError as e:
            raise AdapterError(f"Chat API returned non-JSON body: {body[:200]!r}") from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        usage = data.get("usage", {}) if isinstance(data, dict) else {}
        self.logger.debug(
            f"[LLM] completion in {elapsed_ms}ms "
            f"(prompt_tokens={usage.get('prompt_tokens', 0)}, completion_tokens={usage.get('completion_tokens', 0)})"
        )
        return data
