"""
Task list and reminder tools.

The task list and the notification timer live in the host. set_reminder
turns the spoken time into a delay here so the host only has to wait.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from voxa.tools.tool_base import ToolBase
from voxa.tools.window_tools import new_window_id

# "in 10 minutes", "in 30 sec", "in 2 hrs"
_RELATIVE_RE = re.compile(r"in\s+(\d+)\s*(seconds?|secs?|minutes?|mins?|hours?|hrs?|h)\b", re.IGNORECASE)

_UNIT_MS = {
    "sec": 1000,
    "min": 60_000,
    "h": 3_600_000,
}


def parse_delay_ms(spoken: str, now: Optional[datetime] = None) -> Optional[int]:
    """
    Parse a reminder time into a delay in milliseconds.

    Accepts "in N seconds|minutes|hours" or an ISO-8601 timestamp. A
    timestamp in the past yields 0. Returns None when nothing parses.
    """
    text = (spoken or "").strip()
    if not text:
        return None

    m = _RELATIVE_RE.search(text)
    if m:
        n = int(m.group(1))
        unit = m.group(2).lower()
        for prefix, ms in _UNIT_MS.items():
            if unit.startswith(prefix):
                return n * ms

    try:
        target = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if target.tzinfo is None:
        current = now or datetime.now()
        if current.tzinfo is not None:
            current = current.replace(tzinfo=None)
    else:
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
    return max(0, int((target - current).total_seconds() * 1000))


class CreateTaskTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "create_task"
        self._description = (
            "Creates a new task in the task list. Use for \"add a task to...\" or \"remind me to...\" "
            "without a specific time."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "title": {"type": "string", "minLength": 1, "description": "The title or content of the task"},
                "due": {"type": "string", "description": "Optional due date or time in natural language"},
            },
            "required": ["title"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        title = kwargs["title"].strip()
        data: Dict[str, Any] = {"title": title}
        if kwargs.get("due"):
            data["due"] = kwargs["due"]
        return {"task": data, "intents": [self.intent("create_task", **data)]}


class ViewTasksTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "view_tasks"
        self._description = "Opens a window displaying the current list of tasks."
        self._args_schema = {
            "type": "object",
            "properties": {
                "filter": {"type": "string", "enum": ["all", "open", "done"], "description": "Which tasks to show"},
            },
            "required": [],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        window_id = new_window_id()
        task_filter = kwargs.get("filter") or "all"
        return {
            "windowId": window_id,
            "intents": [self.intent(
                "open_window",
                id=window_id,
                type="tasks",
                title="Tasks",
                content="",
                context={"title": "Tasks", "type": "tasks", "metadata": {"filter": task_filter}},
            )],
        }


class SetReminderTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "set_reminder"
        self._description = "Schedules a one-time notification to appear at a future time."
        self._args_schema = {
            "type": "object",
            "properties": {
                "message": {"type": "string", "minLength": 1, "description": "The reminder message to display"},
                "time": {"type": "string", "description": "When to remind, e.g. \"in 10 minutes\" or an ISO timestamp"},
            },
            "required": ["message", "time"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        delay = parse_delay_ms(kwargs["time"])
        if delay is None:
            return self.error("execution_error", f"Could not parse reminder time: {kwargs['time']!r}")
        message = kwargs["message"].strip()
        return {
            "scheduledInMs": delay,
            "intents": [self.intent(
                "schedule_notification",
                delayMs=delay,
                message=message,
                title="Reminder",
                windowType="notification",
            )],
        }
