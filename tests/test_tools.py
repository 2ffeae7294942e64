"""
Unit tests for the tool catalogue: argument validation and each handler's intents.
Handlers are called directly; selector resolution is covered in test_dispatch.
"""
import unittest
from datetime import datetime, timezone
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voxa.tools.group_tools import GROUP_COLORS, AssignGroupTool, CreateGroupTool
from voxa.tools.registry import ToolRegistry, build_default_registry
from voxa.tools.search_tools import (
    AnalyzePdfTool,
    OpenSearchResultTool,
    OpenWebviewTool,
    SearchTool,
    decode_redirect,
)
from voxa.tools.task_tools import SetReminderTool, ViewTasksTool, parse_delay_ms
from voxa.tools.tool_base import ToolBase, intents_of
from voxa.tools.validation import validate_args
from voxa.tools.window_tools import CloseWindowTool, EditWindowTool, OpenWindowTool, OrganizeWindowsTool
from voxa.world.window_registry import WindowRegistry


def _only_intent(result):
    intents = intents_of(result)
    assert len(intents) == 1, intents
    return intents[0]


class TestValidation(unittest.TestCase):

    SCHEMA = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "minLength": 1},
            "index": {"type": "integer", "minimum": 1},
            "selector": {"type": "string", "enum": ["newest", "all"]},
            "context": {
                "type": "object",
                "properties": {"title": {"type": "string"}},
                "required": ["title"],
            },
        },
        "required": ["query"],
        "additionalProperties": False,
    }

    def test_valid(self):
        self.assertEqual(validate_args(self.SCHEMA, {"query": "cats", "index": 2}), (True, None))

    def test_missing_required(self):
        ok, err = validate_args(self.SCHEMA, {"index": 2})
        self.assertFalse(ok)
        self.assertEqual(err["type"], "invalid_args")
        self.assertIn("query", err["message"])

    def test_none_counts_as_missing(self):
        ok, _ = validate_args(self.SCHEMA, {"query": None})
        self.assertFalse(ok)

    def test_wrong_type(self):
        ok, err = validate_args(self.SCHEMA, {"query": 5})
        self.assertFalse(ok)
        self.assertIn("must be string", err["message"])

    def test_bool_is_not_integer(self):
        ok, _ = validate_args(self.SCHEMA, {"query": "x", "index": True})
        self.assertFalse(ok)

    def test_enum(self):
        ok, err = validate_args(self.SCHEMA, {"query": "x", "selector": "biggest"})
        self.assertFalse(ok)
        self.assertIn("one of", err["message"])

    def test_minimum(self):
        ok, _ = validate_args(self.SCHEMA, {"query": "x", "index": 0})
        self.assertFalse(ok)

    def test_blank_string_fails_min_length(self):
        ok, _ = validate_args(self.SCHEMA, {"query": "   "})
        self.assertFalse(ok)

    def test_unknown_argument(self):
        ok, err = validate_args(self.SCHEMA, {"query": "x", "colour": "red"})
        self.assertFalse(ok)
        self.assertIn("colour", err["message"])

    def test_nested_required(self):
        ok, err = validate_args(self.SCHEMA, {"query": "x", "context": {}})
        self.assertFalse(ok)
        self.assertIn("context.title", err["message"])

    def test_arguments_must_be_object(self):
        ok, _ = validate_args(self.SCHEMA, ["query"])
        self.assertFalse(ok)


class TestRegistry(unittest.TestCase):

    def test_default_catalogue(self):
        registry = build_default_registry(WindowRegistry())
        self.assertEqual(len(registry), 16)
        for name in ("open_window", "close_window", "edit_window", "organize_windows", "search",
                     "open_webview", "open_search_result", "summarize_article", "analyze_pdf",
                     "create_task", "view_tasks", "set_reminder",
                     "create_group", "assign_group", "collapse_group", "expand_group"):
            self.assertIn(name, registry)
        for entry in registry.catalogue():
            self.assertEqual(set(entry), {"name", "description", "parameters"})
            self.assertEqual(entry["parameters"]["type"], "object")

    def test_register_requires_name(self):
        with self.assertRaises(ValueError):
            ToolRegistry().register(ToolBase())

    def test_has_tool(self):
        registry = ToolRegistry()
        registry.register(OrganizeWindowsTool())
        self.assertTrue(registry.has_tool("organize_windows"))
        self.assertFalse(registry.has_tool("search"))
        self.assertFalse(registry.has_tool(None))

    def test_base_run_not_implemented(self):
        with self.assertRaises(NotImplementedError):
            ToolBase().run()


class TestWindowTools(unittest.TestCase):

    def setUp(self):
        self.windows = WindowRegistry()
        self.windows.apply_event({"type": "opened", "id": "w1", "title": "Groceries", "createdAt": 1})

    def test_open_window_defaults(self):
        result = OpenWindowTool().run(windowType="sticky-note", context={"content": "milk"})
        intent = _only_intent(result)
        self.assertEqual(intent["type"], "open_window")
        data = intent["data"]
        self.assertTrue(data["id"].startswith("window_"))
        self.assertEqual(data["id"], result["windowId"])
        self.assertEqual(data["title"], "Untitled Window")
        self.assertEqual(data["content"], "milk")
        self.assertEqual(data["position"], {"x": 0, "y": 0})
        self.assertEqual(data["size"], {"width": 300, "height": 200})

    def test_open_window_ids_unique(self):
        a = OpenWindowTool().run(windowType="general", context={})["windowId"]
        b = OpenWindowTool().run(windowType="general", context={})["windowId"]
        self.assertNotEqual(a, b)

    def test_close_window(self):
        intent = _only_intent(CloseWindowTool().run(windowId="w1"))
        self.assertEqual(intent, {"type": "close_window", "data": {"windowId": "w1"}})

    def test_close_without_target(self):
        result = CloseWindowTool().run()
        self.assertEqual(result["error"]["type"], "no_target")
        self.assertEqual(intents_of(result), [])

    def test_edit_by_title_match(self):
        result = EditWindowTool(self.windows).run(titleMatch="groceries", newContent="milk, eggs")
        intent = _only_intent(result)
        self.assertEqual(intent["type"], "update_window")
        self.assertEqual(intent["data"], {"windowId": "w1", "content": "milk, eggs"})

    def test_edit_unknown_title(self):
        result = EditWindowTool(self.windows).run(titleMatch="Weather", newTitle="x")
        self.assertEqual(result["error"]["type"], "no_target")

    def test_edit_needs_a_change(self):
        result = EditWindowTool(self.windows).run(windowId="w1")
        self.assertEqual(result["error"]["type"], "invalid_args")

    def test_organize(self):
        self.assertEqual(_only_intent(OrganizeWindowsTool().run())["type"], "reorganize_windows")


class TestSearchTools(unittest.TestCase):

    def setUp(self):
        self.windows = WindowRegistry()

    def test_search(self):
        intent = _only_intent(SearchTool().run(query="  vegan   recipes "))
        self.assertEqual(intent["type"], "search")
        self.assertEqual(intent["data"]["query"], "vegan recipes")
        self.assertEqual(intent["data"]["windowType"], "search-results")

    def test_webview_requires_http_url(self):
        self.assertEqual(OpenWebviewTool().run(url="javascript:alert(1)")["error"]["type"], "invalid_args")
        intent = _only_intent(OpenWebviewTool().run(url="https://example.com", title="Example"))
        self.assertEqual(intent["data"]["type"], "webview")
        self.assertEqual(intent["data"]["title"], "Example")

    def test_decode_redirect(self):
        wrapped = "https://duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fa&rut=x"
        self.assertEqual(decode_redirect(wrapped), "https://example.com/a")
        self.assertEqual(decode_redirect("https://example.com/b"), "https://example.com/b")

    def test_open_result_from_metadata(self):
        self.windows.apply_event({
            "type": "opened", "id": "s1", "windowType": "search-results", "createdAt": 5,
            "metadata": {"results": [{"url": "https://a.example"}, {"url": "https://b.example"}]},
        })
        intent = _only_intent(OpenSearchResultTool(self.windows).run(index=2))
        self.assertEqual(intent["data"]["content"], "https://b.example")

    def test_open_result_from_newest_search_content(self):
        self.windows.apply_event({"type": "opened", "id": "s1", "windowType": "search-results", "createdAt": 5,
                                  "content": "old https://old.example"})
        self.windows.apply_event({"type": "opened", "id": "s2", "windowType": "search-results", "createdAt": 9,
                                  "content": "1. https://new.example/page (New)"})
        intent = _only_intent(OpenSearchResultTool(self.windows).run())
        self.assertEqual(intent["data"]["content"], "https://new.example/page")

    def test_open_result_without_search(self):
        result = OpenSearchResultTool(self.windows).run(index=1)
        self.assertEqual(result["error"], {"type": "no_target", "message": "No recent search results found"})

    def test_open_result_index_out_of_range(self):
        self.windows.apply_event({"type": "opened", "id": "s1", "windowType": "search-results",
                                  "content": "https://only.example"})
        result = OpenSearchResultTool(self.windows).run(index=3)
        self.assertEqual(result["error"]["message"], "Requested result not found")

    def test_analyze_pdf_default_prompt(self):
        intent = _only_intent(AnalyzePdfTool().run(prompt="  "))
        self.assertEqual(intent["data"]["prompt"], "Summarize this document.")


class TestGroupAndTaskTools(unittest.TestCase):

    def test_group_color_stable(self):
        a = CreateGroupTool().run(name="Work")
        b = CreateGroupTool().run(name="work")
        self.assertEqual(a["groupColor"], b["groupColor"])
        self.assertIn(a["groupColor"], GROUP_COLORS)

    def test_group_color_explicit(self):
        self.assertEqual(CreateGroupTool().run(name="Work", color="#000")["groupColor"], "#000")

    def test_assign_defaults_to_newest(self):
        tool = AssignGroupTool()
        self.assertTrue(tool.targets_window)
        self.assertEqual(tool.default_selector, "newest")
        intent = _only_intent(tool.run(groupName="Work", windowId="w1"))
        self.assertEqual(intent["data"], {"windowId": "w1", "groupName": "Work"})

    def test_view_tasks(self):
        intent = _only_intent(ViewTasksTool().run(filter="open"))
        self.assertEqual(intent["data"]["type"], "tasks")
        self.assertEqual(intent["data"]["context"]["metadata"], {"filter": "open"})

    def test_set_reminder(self):
        intent = _only_intent(SetReminderTool().run(message="stretch", time="in 10 minutes"))
        self.assertEqual(intent["type"], "schedule_notification")
        self.assertEqual(intent["data"]["delayMs"], 600_000)
        self.assertEqual(intent["data"]["message"], "stretch")

    def test_set_reminder_unparseable_time(self):
        result = SetReminderTool().run(message="stretch", time="whenever")
        self.assertEqual(result["error"]["type"], "execution_error")


class TestParseDelay(unittest.TestCase):

    def test_relative(self):
        self.assertEqual(parse_delay_ms("in 30 secs"), 30_000)
        self.assertEqual(parse_delay_ms("in 5 min"), 300_000)
        self.assertEqual(parse_delay_ms("remind me in 2 hrs"), 7_200_000)

    def test_iso_naive(self):
        now = datetime(2026, 1, 1, 10, 0, 0)
        self.assertEqual(parse_delay_ms("2026-01-01T10:05:00", now=now), 300_000)

    def test_iso_utc(self):
        now = datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        self.assertEqual(parse_delay_ms("2026-01-01T10:00:30Z", now=now), 30_000)

    def test_past_is_zero(self):
        now = datetime(2026, 1, 1, 10, 0, 0)
        self.assertEqual(parse_delay_ms("2025-12-31T09:00:00", now=now), 0)

    def test_unparseable(self):
        self.assertIsNone(parse_delay_ms("tomorrow-ish"))
        self.assertIsNone(parse_delay_ms(""))


if __name__ == '__main__':
    unittest.main()
