"""
Unit tests for the per-conversation state store.
Bounded transcript and action history, overlap-aware transcript merging.
"""
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voxa.core.conversation import ConversationState, merge_transcript
from voxa.core.intent_plan import ActionRecord, ToolCallCandidate
from voxa.world.window_registry import EntityView


def _record(n, tool="open_window"):
    return ActionRecord(f"a{n}", tool, {"n": n}, f"command {n}", 1000 + n)


class TestMergeTranscript(unittest.TestCase):

    def test_first_text(self):
        self.assertEqual(merge_transcript("", "  Open a note. "), "Open a note.")

    def test_empty_text_ignored(self):
        self.assertEqual(merge_transcript("Open a note.", "   "), "Open a note.")

    def test_cumulative_replaces(self):
        self.assertEqual(
            merge_transcript("Open a note.", "Open a note. Close it."),
            "Open a note. Close it.",
        )

    def test_repeat_is_noop(self):
        self.assertEqual(merge_transcript("Open a note. Close it.", "Close it."), "Open a note. Close it.")

    def test_overlapping_fragment_joined(self):
        self.assertEqual(
            merge_transcript("open a new note and", "a new note and call it groceries"),
            "open a new note and call it groceries",
        )

    def test_short_overlap_appended(self):
        self.assertEqual(merge_transcript("close it", "it now"), "close it it now")

    def test_unrelated_appended_with_space(self):
        self.assertEqual(merge_transcript("Open a note.", "Organize my windows."),
                         "Open a note. Organize my windows.")


class TestConversationState(unittest.TestCase):

    def setUp(self):
        self.state = ConversationState.create(max_transcript_chars=50, max_actions=10)

    def test_starts_empty(self):
        self.assertEqual(self.state.transcript_history, "")
        self.assertEqual(len(self.state.action_history), 0)
        self.assertEqual(self.state.ui_context, [])
        self.assertEqual(self.state.failed_local, {})

    def test_transcript_tail_kept(self):
        self.state.append_transcript("a" * 30)
        result = self.state.append_transcript("b" * 40)

        self.assertEqual(len(result), 50)
        self.assertTrue(result.endswith("b" * 40))
        self.assertEqual(self.state.transcript_history, result)

    def test_action_history_bounded(self):
        for n in range(15):
            self.state.append_action(_record(n))

        self.assertEqual(len(self.state.action_history), 10)
        self.assertEqual(self.state.action_history[0].action_id, "a5")
        self.assertEqual(self.state.action_history[-1].action_id, "a14")

    def test_recent_actions(self):
        for n in range(4):
            self.state.append_action(_record(n))

        self.assertEqual([a.action_id for a in self.state.recent_actions(2)], ["a2", "a3"])
        self.assertEqual(len(self.state.recent_actions()), 4)
        self.assertEqual(self.state.recent_actions(0), [])

    def test_history_signatures(self):
        self.state.append_action(ActionRecord("x", "close_window", {"selector": "newest"}, "close it", 1))
        self.assertEqual(self.state.history_signatures(), {'close_window:{"selector":"newest"}'})

    def test_context_replaced_not_merged(self):
        self.state.set_context([EntityView(id="w1"), EntityView(id="w2")])
        self.state.set_context([EntityView(id="w3")])
        self.assertEqual([v.id for v in self.state.ui_context], ["w3"])

    def test_context_content_capped(self):
        state = ConversationState(max_content_chars=5)
        state.set_context([EntityView(id="w1", content="abcdefgh"), EntityView(id="w2", content="abc")])
        self.assertEqual([v.content for v in state.ui_context], ["abcde", "abc"])

    def test_failed_local_detection_is_stale_until_repeated(self):
        edit = ToolCallCandidate("edit_window", {"titleMatch": "Ghost", "newContent": "hi"},
                                 'edit window "Ghost" to say hi', origin="local")
        heard = 'edit window "Ghost" to say hi.'
        self.assertFalse(self.state.is_stale_failure(edit, heard))

        self.state.note_local_outcome(edit, heard, succeeded=False)
        self.assertTrue(self.state.is_stale_failure(edit, heard + " Organize."))
        self.assertFalse(self.state.is_stale_failure(edit, heard + " " + heard))

        self.state.note_local_outcome(edit, heard, succeeded=True)
        self.assertFalse(self.state.is_stale_failure(edit, heard))

    def test_reset_keeps_bounds(self):
        self.state.append_transcript("Open a note.")
        self.state.append_action(_record(1))
        self.state.set_context([EntityView(id="w1")])
        self.state.cycles = 3

        self.state.reset()

        self.assertEqual(self.state.transcript_history, "")
        self.assertEqual(len(self.state.action_history), 0)
        self.assertEqual(self.state.ui_context, [])
        self.assertEqual(self.state.cycles, 0)
        self.assertEqual(self.state.action_history.maxlen, 10)

    def test_separate_conversations_do_not_share(self):
        other = ConversationState.create()
        self.state.append_action(_record(1))
        self.assertEqual(len(other.action_history), 0)

    def test_to_dict(self):
        self.state.append_transcript("hello")
        data = self.state.to_dict()
        self.assertEqual(data["transcriptHistory"], "hello")
        self.assertEqual(data["actionHistory"], [])


if __name__ == '__main__':
    unittest.main()
