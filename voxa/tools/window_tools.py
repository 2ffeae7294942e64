"""
Window lifecycle tools: open, close, edit, organize.

None of these draw anything. Each returns the intent the host should carry
out (open_window / close_window / update_window / reorganize_windows).
"""
import time
import uuid
from typing import Any, Dict

from voxa.tools.tool_base import ToolBase

SELECTORS = ["newest", "latest", "oldest", "active", "all"]

DEFAULT_TITLE = "Untitled Window"
DEFAULT_POSITION = {"x": 0, "y": 0}
DEFAULT_SIZE = {"width": 300, "height": 200}


def new_window_id() -> str:
    """Fresh host window id"""
    return f"window_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class OpenWindowTool(ToolBase):
    """Open a new window of a given type"""

    def __init__(self):
        super().__init__()
        self._name = "open_window"
        self._description = (
            "Opens a new popup window with specified type and context. Use this for creating, "
            "opening, showing, or displaying a window. Education types supported: lesson, quiz, "
            "hint, explainer."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "windowType": {
                    "type": "string",
                    "description": "Window type (notification, dialog, settings, sticky-note, general, "
                                   "lesson, quiz, hint, explainer)",
                },
                "context": {
                    "type": "object",
                    "description": "Context information for the window",
                    "properties": {
                        "title": {"type": "string", "description": "Window title to display"},
                        "content": {"type": "string", "description": "Primary text/content of the window"},
                        "type": {"type": "string", "description": "Repeat of window type for UI context"},
                        "position": {"type": "object", "description": "Optional x/y position in pixels"},
                        "size": {"type": "object", "description": "Optional width/height in pixels"},
                        "metadata": {"type": "object", "description": "Optional metadata for education windows"},
                    },
                },
            },
            "required": ["windowType", "context"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        window_type = (kwargs.get("windowType") or "").strip()
        context = kwargs.get("context") or {}
        if not window_type:
            return self.error("invalid_args", "windowType is required")

        window_id = new_window_id()
        data = {
            "id": window_id,
            "type": window_type,
            "title": context.get("title") or DEFAULT_TITLE,
            "content": context.get("content") or "",
            "position": context.get("position") or dict(DEFAULT_POSITION),
            "size": context.get("size") or dict(DEFAULT_SIZE),
            "context": context,
        }
        return {
            "windowId": window_id,
            "windowType": window_type,
            "intents": [self.intent("open_window", **data)],
        }


class CloseWindowTool(ToolBase):
    """Close one window; the selector is resolved before run()"""

    def __init__(self):
        super().__init__()
        self._name = "close_window"
        self._description = (
            "Closes an existing window. Use this when the user wants to close, dismiss, or hide a "
            "window. Pass windowId when known, otherwise a selector."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "windowId": {"type": "string", "description": "The unique identifier of the window to close"},
                "selector": {
                    "type": "string",
                    "enum": SELECTORS,
                    "description": "Semantic selector when ID is unknown (newest/latest/oldest/active/all)",
                },
            },
            "required": [],
            "additionalProperties": False,
        }
        self._targets_window = True

    def run(self, **kwargs) -> Dict[str, Any]:
        window_id = kwargs.get("windowId")
        if not window_id:
            return self.error("no_target", "No target window found to close")
        return {
            "windowId": window_id,
            "closed": True,
            "intents": [self.intent("close_window", windowId=window_id)],
        }


class EditWindowTool(ToolBase):
    """Update the title and/or content of an existing window"""

    def __init__(self, windows):
        super().__init__()
        self._name = "edit_window"
        self._description = "Edit an existing window by id, title or selector, updating its title and/or content."
        self._args_schema = {
            "type": "object",
            "properties": {
                "windowId": {"type": "string", "description": "The window id to edit"},
                "titleMatch": {"type": "string", "description": "Case-insensitive title to match an existing window"},
                "selector": {"type": "string", "enum": SELECTORS, "description": "Semantic selector"},
                "newTitle": {"type": "string", "description": "New title to set"},
                "newContent": {"type": "string", "description": "New content to set"},
            },
            "required": [],
            "additionalProperties": False,
        }
        self._targets_window = True
        self._windows = windows

    def run(self, **kwargs) -> Dict[str, Any]:
        new_title = kwargs.get("newTitle")
        new_content = kwargs.get("newContent")
        if new_title is None and new_content is None:
            return self.error("invalid_args", "edit_window needs newTitle or newContent")

        window_id = kwargs.get("windowId")
        if not window_id and kwargs.get("titleMatch"):
            match = self._windows.find_by_title(kwargs["titleMatch"])
            if match is not None:
                window_id = match.id
        if not window_id:
            return self.error("no_target", "No window found to edit")

        data: Dict[str, Any] = {"windowId": window_id}
        if new_title is not None:
            data["title"] = new_title
        if new_content is not None:
            data["content"] = new_content
        return {
            "windowId": window_id,
            "intents": [self.intent("update_window", **data)],
        }


class OrganizeWindowsTool(ToolBase):
    """Re-layout all windows"""

    def __init__(self):
        super().__init__()
        self._name = "organize_windows"
        self._description = (
            "Organizes and optimizes the layout of all open windows on the screen. Use this when "
            "user asks to organize, arrange, tidy up, optimize, or clean up the windows."
        )

    def run(self, **kwargs) -> Dict[str, Any]:
        return {"organized": True, "intents": [self.intent("reorganize_windows")]}
