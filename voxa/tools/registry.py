"""
Tool registry: the static catalogue of tool names, schemas and handlers.

Adding a tool means registering one ToolBase instance, which carries both the
parameter schema (advertised to the parser, used for validation) and the
handler (run). There is no dynamic discovery.
"""
from typing import Any, Dict, List, Optional

from voxa.core.logger import get_logger
from voxa.tools.tool_base import ToolBase


class ToolRegistry:
    """Name -> tool map, in registration order"""

    def __init__(self):
        self._tools: Dict[str, ToolBase] = {}

    def register(self, tool: ToolBase) -> None:
        if not tool.name:
            raise ValueError(f"{tool!r} has no name")
        if tool.name in self._tools:
            get_logger().warning(f"[REGISTRY] replacing tool {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolBase]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return isinstance(name, str) and name in self._tools

    def list_tools(self) -> List[str]:
        return list(self._tools.keys())

    def catalogue(self) -> List[Dict[str, Any]]:
        """Every tool's name/description/parameters, for the parser request"""
        return [t.catalogue_entry() for t in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools


def build_default_registry(windows) -> ToolRegistry:
    """
    Build the registry with every built-in tool.

    Args:
        windows: WindowRegistry the window-aware tools read from
    """
    from voxa.tools.group_tools import AssignGroupTool, CollapseGroupTool, CreateGroupTool, ExpandGroupTool
    from voxa.tools.search_tools import (
        AnalyzePdfTool,
        OpenSearchResultTool,
        OpenWebviewTool,
        SearchTool,
        SummarizeArticleTool,
    )
    from voxa.tools.task_tools import CreateTaskTool, SetReminderTool, ViewTasksTool
    from voxa.tools.window_tools import CloseWindowTool, EditWindowTool, OpenWindowTool, OrganizeWindowsTool

    registry = ToolRegistry()
    for tool in (
        OrganizeWindowsTool(),
        EditWindowTool(windows),
        OpenWindowTool(),
        CloseWindowTool(),
        SearchTool(),
        OpenWebviewTool(),
        SummarizeArticleTool(),
        OpenSearchResultTool(windows),
        AnalyzePdfTool(),
        CreateTaskTool(),
        ViewTasksTool(),
        SetReminderTool(),
        CreateGroupTool(),
        AssignGroupTool(),
        CollapseGroupTool(),
        ExpandGroupTool(),
    ):
        registry.register(tool)
    return registry
