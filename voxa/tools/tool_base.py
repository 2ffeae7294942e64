"""
Base class for all Voxa tools.

A tool is one entry of the tool catalogue: a name, a description, a
JSON-schema-shaped parameter description, and a handler (run). Handlers never
touch the UI. They return a result dict whose "intents" list describes the
effects the host should perform; the dispatch engine publishes those on the
outbound channel.

Expected failures are returned, not raised:
    {"error": {"type": "no_target", "message": "..."}}
"""
from typing import Any, Dict, List, Optional


class ToolBase:
    """Base class for all tools"""

    def __init__(self):
        self._name: str = ""
        self._description: str = ""
        self._args_schema: Dict[str, Any] = {
            "type": "object",
            "properties": {},
            "required": [],
            "additionalProperties": False,
        }
        # Tools that act on one existing window accept windowId/selector.
        # The dispatch engine resolves the selector before run() is called.
        self._targets_window: bool = False
        # Selector used when neither windowId nor selector is given
        self._default_selector: Optional[str] = None
        # Whether "all" fans out to one branch per window
        self._allows_fan_out: bool = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def args_schema(self) -> Dict[str, Any]:
        return self._args_schema

    @property
    def targets_window(self) -> bool:
        return self._targets_window

    @property
    def default_selector(self) -> Optional[str]:
        return self._default_selector

    @property
    def allows_fan_out(self) -> bool:
        return self._allows_fan_out

    def catalogue_entry(self) -> Dict[str, Any]:
        """Name + description + parameter schema, as advertised to the parser"""
        return {
            "name": self._name,
            "description": self._description,
            "parameters": self._args_schema,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        """
        Execute the tool.

        Returns:
            Result dict; may carry an "intents" list and must carry an
            "error" dict on failure
        """
        raise NotImplementedError(f"Tool {self._name} must implement run()")

    @staticmethod
    def intent(intent_type: str, **data) -> Dict[str, Any]:
        """Build one outbound intent message"""
        return {"type": intent_type, "data": data}

    @staticmethod
    def error(error_type: str, message: str) -> Dict[str, Any]:
        return {"error": {"type": error_type, "message": message}}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self._name!r}>"


def intents_of(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Intents carried by a tool result (empty for errors)"""
    if not isinstance(result, dict) or "error" in result:
        return []
    intents = result.get("intents")
    return list(intents) if isinstance(intents, list) else []
