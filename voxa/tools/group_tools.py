"""
Window grouping tools (categories).

Groups live in the host; these tools only request changes. assign_group
targets one window like close_window does and defaults to the newest.
"""
from typing import Any, Dict

from voxa.tools.tool_base import ToolBase
from voxa.tools.window_tools import SELECTORS

# Colors handed out to groups created without one
GROUP_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899"]


def _group_color(name: str) -> str:
    """Stable color for a group name"""
    return GROUP_COLORS[sum(ord(c) for c in name.lower()) % len(GROUP_COLORS)]


def _name_schema(description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string", "minLength": 1, "description": description},
        },
        "required": ["name"],
        "additionalProperties": False,
    }


class CreateGroupTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "create_group"
        self._description = "Creates a named group (category) that windows can be assigned to."
        self._args_schema = {
            "type": "object",
            "properties": {
                "name": {"type": "string", "minLength": 1, "description": "Group name"},
                "color": {"type": "string", "description": "Optional group color (CSS color)"},
            },
            "required": ["name"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        name = kwargs["name"].strip()
        color = kwargs.get("color") or _group_color(name)
        return {
            "groupName": name,
            "groupColor": color,
            "intents": [self.intent("create_group", name=name, color=color)],
        }


class AssignGroupTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "assign_group"
        self._description = (
            "Assigns a window to a group. Defaults to the newest window when no windowId or selector is given."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "groupName": {"type": "string", "minLength": 1, "description": "Group to assign to"},
                "windowId": {"type": "string", "description": "Window to assign"},
                "selector": {"type": "string", "enum": SELECTORS, "description": "Semantic selector"},
            },
            "required": ["groupName"],
            "additionalProperties": False,
        }
        self._targets_window = True
        self._default_selector = "newest"

    def run(self, **kwargs) -> Dict[str, Any]:
        window_id = kwargs.get("windowId")
        if not window_id:
            return self.error("no_target", "No window found to assign to group")
        group = kwargs["groupName"].strip()
        return {
            "windowId": window_id,
            "groupName": group,
            "intents": [self.intent("assign_group", windowId=window_id, groupName=group)],
        }


class CollapseGroupTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "collapse_group"
        self._description = "Collapses a group so its windows are hidden behind the group header."
        self._args_schema = _name_schema("Group to collapse")

    def run(self, **kwargs) -> Dict[str, Any]:
        name = kwargs["name"].strip()
        return {"groupName": name, "intents": [self.intent("collapse_group", name=name)]}


class ExpandGroupTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "expand_group"
        self._description = "Expands a collapsed group so its windows are shown again."
        self._args_schema = _name_schema("Group to expand")

    def run(self, **kwargs) -> Dict[str, Any]:
        name = kwargs["name"].strip()
        return {"groupName": name, "intents": [self.intent("expand_group", name=name)]}
