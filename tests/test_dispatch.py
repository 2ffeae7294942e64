"""Tests for the dispatch engine: per-call state machine, selector fan-out,
outbound lifecycle messages and action history.

Run with: python -m pytest tests/test_dispatch.py -v
"""

import asyncio

import pytest
from voxa.core.conversation import ConversationState
from voxa.core.dispatch import DispatchEngine
from voxa.core.intent_plan import ToolCallCandidate
from voxa.core.outbound import OutboundChannel
from voxa.tools.registry import build_default_registry
from voxa.tools.tool_base import ToolBase
from voxa.world.window_registry import WindowRegistry


class ArchiveWindowTool(ToolBase):
    """Targets one window; refuses pinned ones and blows up on cursed ones"""

    def __init__(self, pinned=(), cursed=()):
        super().__init__()
        self._name = "archive_window"
        self._description = "Archive a window"
        self._args_schema = {
            "type": "object",
            "properties": {
                "windowId": {"type": "string"},
                "selector": {"type": "string"},
            },
            "required": [],
            "additionalProperties": False,
        }
        self._targets_window = True
        self.pinned = set(pinned)
        self.cursed = set(cursed)

    def run(self, **kwargs):
        window_id = kwargs["windowId"]
        if window_id in self.cursed:
            raise RuntimeError("disk on fire")
        if window_id in self.pinned:
            return self.error("execution_error", f"{window_id} is pinned")
        return {"archived": window_id, "intents": [self.intent("archive_window", windowId=window_id)]}


class NotADictTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "shrug"

    def run(self, **kwargs):
        return "ok"


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def windows():
    registry = WindowRegistry()
    for n in (1, 2, 3):
        registry.apply_event({"type": "opened", "id": f"w{n}", "title": f"Note {n}", "createdAt": n * 100, "zIndex": n})
    return registry


@pytest.fixture
def channel():
    return OutboundChannel()


@pytest.fixture
def sent(channel):
    messages = []
    channel.subscribe(messages.append)
    return messages


@pytest.fixture
def conversation():
    return ConversationState.create()


@pytest.fixture
def engine(windows, channel):
    tools = build_default_registry(windows)
    tools.register(ArchiveWindowTool(pinned={"w2"}))
    tools.register(NotADictTool())
    return DispatchEngine(tools, windows, channel)


def run(coro):
    return asyncio.run(coro)


def types(messages):
    return [m["type"] for m in messages]


# ============================================================================
# SINGLE CALLS
# ============================================================================

class TestSingleCall:

    def test_selector_bound_to_window(self, engine, sent, conversation):
        results = run(engine.dispatch(ToolCallCandidate("close_window", {"selector": "newest"}), conversation))

        assert len(results) == 1
        assert results[0].success
        assert results[0].result == {"windowId": "w3", "closed": True}
        assert types(sent) == ["task_started", "close_window", "task_completed"]
        assert sent[1]["data"] == {"windowId": "w3"}
        completed = sent[2]["data"]
        assert completed["entityId"] == "w3"
        assert completed["state"] == "COMPLETED"
        assert completed["taskId"] == results[0].task_id
        assert "durationMs" in completed

    def test_history_records_original_parameters(self, engine, conversation):
        run(engine.dispatch(ToolCallCandidate("close_window", {"selector": "newest"}, "close it"), conversation))

        record = conversation.action_history[-1]
        assert record.tool == "close_window"
        assert record.parameters == {"selector": "newest"}
        assert record.source_text == "close it"

    def test_explicit_window_id_skips_selector(self, engine, sent):
        results = run(engine.dispatch(ToolCallCandidate("close_window", {"windowId": "w1"})))
        assert results[0].success
        assert sent[1]["data"] == {"windowId": "w1"}

    def test_default_selector(self, engine, sent):
        results = run(engine.dispatch(ToolCallCandidate("assign_group", {"groupName": "Work"})))
        assert results[0].success
        assert sent[1] == {"type": "assign_group", "data": {"windowId": "w3", "groupName": "Work"}}

    def test_unknown_tool_fails_without_starting(self, engine, sent, conversation):
        results = run(engine.dispatch(ToolCallCandidate("launch_rocket"), conversation))

        assert not results[0].success
        assert results[0].error == "Unknown tool: launch_rocket"
        assert results[0].error_type == "tool_not_found"
        assert types(sent) == ["task_failed"]
        assert sent[0]["data"]["errorType"] == "tool_not_found"
        assert len(conversation.action_history) == 0

    def test_no_target(self, channel, sent, conversation):
        empty = WindowRegistry()
        engine = DispatchEngine(build_default_registry(empty), empty, channel)

        results = run(engine.dispatch(ToolCallCandidate("close_window", {"selector": "newest"}), conversation))

        assert not results[0].success
        assert results[0].error_type == "no_target"
        assert "No target" in results[0].error
        assert types(sent) == ["task_started", "task_failed"]
        assert len(conversation.action_history) == 0

    def test_invalid_arguments(self, engine, sent):
        results = run(engine.dispatch(ToolCallCandidate("close_window", {"selector": "biggest"})))
        assert results[0].error_type == "invalid_args"
        assert types(sent) == ["task_started", "task_failed"]

    def test_error_dict_fails_call(self, engine, conversation):
        results = run(engine.dispatch(
            ToolCallCandidate("edit_window", {"titleMatch": "Weather", "newTitle": "x"}), conversation,
        ))
        assert results[0].error_type == "no_target"
        assert len(conversation.action_history) == 0

    def test_handler_exception_isolated(self, windows, channel, sent):
        tools = build_default_registry(windows)
        tools.register(ArchiveWindowTool(cursed={"w3"}))
        engine = DispatchEngine(tools, windows, channel)

        results = run(engine.dispatch(ToolCallCandidate("archive_window", {"selector": "newest"})))

        assert results[0].error_type == "execution_error"
        assert "disk on fire" in results[0].error
        assert types(sent) == ["task_started", "task_failed"]

    def test_non_dict_result_fails(self, engine):
        results = run(engine.dispatch(ToolCallCandidate("shrug")))
        assert results[0].error_type == "execution_error"


# ============================================================================
# FAN-OUT
# ============================================================================

class TestFanOut:

    def test_branch_per_window(self, engine, sent, conversation):
        results = run(engine.dispatch(ToolCallCandidate("archive_window", {"selector": "all"}), conversation))

        assert [r.success for r in results] == [True, False, True]
        parent = sent[0]["data"]["taskId"]
        assert [r.task_id for r in results] == [f"{parent}.1", f"{parent}.2", f"{parent}.3"]
        assert results[1].error == "w2 is pinned"

    def test_lifecycle_messages(self, engine, sent):
        run(engine.dispatch(ToolCallCandidate("archive_window", {"selector": "all"})))

        assert types(sent) == [
            "task_started",                                       # parent
            "task_started", "archive_window", "task_completed",   # w1
            "task_started", "task_failed",                        # w2
            "task_started", "archive_window", "task_completed",   # w3
            "task_completed",                                     # parent
        ]
        assert [m["data"]["windowId"] for m in sent if m["type"] == "archive_window"] == ["w1", "w3"]
        summary = sent[-1]["data"]
        assert (summary["branches"], summary["succeeded"]) == (3, 2)

    def test_history_written_once_on_partial_success(self, engine, conversation):
        run(engine.dispatch(ToolCallCandidate("archive_window", {"selector": "all"}), conversation))
        assert len(conversation.action_history) == 1
        assert conversation.action_history[0].parameters == {"selector": "all"}

    def test_all_branches_failing(self, windows, channel, sent, conversation):
        tools = build_default_registry(windows)
        tools.register(ArchiveWindowTool(pinned={"w1", "w2", "w3"}))
        engine = DispatchEngine(tools, windows, channel)

        results = run(engine.dispatch(ToolCallCandidate("archive_window", {"selector": "all"}), conversation))

        assert not any(r.success for r in results)
        assert sent[-1]["type"] == "task_failed"
        assert len(conversation.action_history) == 0


# ============================================================================
# BATCH
# ============================================================================

class TestBatch:

    def test_sequential_in_order(self, engine, sent):
        batch = [
            ToolCallCandidate("open_window", {"windowType": "sticky-note", "context": {"title": "A"}}),
            ToolCallCandidate("organize_windows"),
        ]
        results = run(engine.dispatch_batch(batch))

        assert [r.tool for r in results] == ["open_window", "organize_windows"]
        assert types(sent) == [
            "task_started", "open_window", "task_completed",
            "task_started", "reorganize_windows", "task_completed",
        ]

    def test_failure_does_not_stop_batch(self, engine, conversation):
        batch = [ToolCallCandidate("launch_rocket"), ToolCallCandidate("organize_windows")]
        results = run(engine.dispatch_batch(batch, conversation))

        assert [r.success for r in results] == [False, True]
        assert [a.tool for a in conversation.action_history] == ["organize_windows"]

    def test_registry_not_mutated(self, engine, windows):
        run(engine.dispatch(ToolCallCandidate("close_window", {"selector": "all"})))
        assert len(windows) == 3

    def test_messages_queued_for_consumer(self, windows):
        channel = OutboundChannel(queued=True)
        engine = DispatchEngine(build_default_registry(windows), windows, channel)
        run(engine.dispatch(ToolCallCandidate("organize_windows")))
        assert types(channel.drain()) == ["task_started", "reorganize_windows", "task_completed"]
        assert channel.qsize() == 0

    def test_nothing_queued_without_consumer(self, engine, channel, sent):
        for _ in range(5):
            run(engine.dispatch(ToolCallCandidate("organize_windows")))
        assert len(sent) == 15
        assert channel.qsize() == 0
