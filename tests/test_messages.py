"""
Unit tests for chat message construction and the parser prompt.

The parser request is a [system, user] message list: the system message holds
the tool catalogue and the response contract, the user message holds the
directive and its context.
"""
import json
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voxa.brain.messages import MessageBuilder, msg_system, msg_user
from voxa.brain.prompt_builder import build_parser_messages, build_user_prompt
from voxa.core.intent_plan import ActionRecord
from voxa.tools.registry import build_default_registry
from voxa.world.window_registry import WindowRegistry


class TestMessageConstruction(unittest.TestCase):

    def test_roles(self):
        self.assertEqual(msg_system("rules")["role"], "system")
        self.assertEqual(msg_user("open a note")["role"], "user")

    def test_builder_chains_and_skips_empty(self):
        builder = MessageBuilder().system("Rules").user("").user("Close it")
        self.assertEqual(len(builder), 2)
        self.assertEqual([m["role"] for m in builder.build()], ["system", "user"])

    def test_builder_build_returns_copy(self):
        builder = MessageBuilder().user("a")
        built = builder.build()
        built.append(msg_user("b"))
        self.assertEqual(len(builder), 1)


class TestParserPrompt(unittest.TestCase):

    def setUp(self):
        self.catalogue = build_default_registry(WindowRegistry()).catalogue()

    def test_system_lists_every_tool_and_contract(self):
        messages = build_parser_messages("open a note", self.catalogue)
        system = messages[0]["content"]
        for entry in self.catalogue:
            self.assertIn(f"- {entry['name']}:", system)
        self.assertIn('"new_tool_calls"', system)
        self.assertIn('"conversational_response"', system)

    def test_user_message_ends_with_directive(self):
        user = build_user_prompt(
            "Close it",
            past_transcript="Open a note.",
            context=[{"id": "w1", "title": "Note"}],
            recent_actions=[ActionRecord("a1", "open_window", {"windowType": "sticky-note"}, "Open a note", 1)],
        )
        self.assertTrue(user.endswith("CURRENT DIRECTIVE:\nClose it"))
        self.assertIn("PAST TRANSCRIPT (context only):\nOpen a note.", user)
        self.assertIn(json.dumps([{"id": "w1", "title": "Note"}]), user)
        self.assertIn('"tool": "open_window"', user)

    def test_empty_blocks_omitted(self):
        user = build_user_prompt("organize my windows")
        self.assertEqual(user, "CURRENT DIRECTIVE:\norganize my windows")

    def test_oversized_user_message_compacted(self):
        messages = build_parser_messages("close it", self.catalogue, past_transcript="x " * 10000,
                                         max_prompt_chars=1500)
        user = messages[1]["content"]
        self.assertLessEqual(len(user), 1500)
        self.assertIn("...[omitted for length]...", user)
        self.assertTrue(user.endswith("close it"))


if __name__ == '__main__':
    unittest.main()
