"""
Unit tests for prompt and context compaction.
Tests compact_prompt() and compact_context() for deterministic, bounded output.
"""
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voxa.brain.prompt_compact import URL_MARKER, compact_content, compact_context, compact_prompt
from voxa.world.window_registry import EntityView


class TestPromptCompaction(unittest.TestCase):
    """Test prompt compaction logic."""

    def test_no_compaction_short_prompt(self):
        short_prompt = "CURRENT DIRECTIVE:\nopen a note"

        result, was_compacted = compact_prompt(short_prompt, max_chars=8000)

        self.assertEqual(result, short_prompt)
        self.assertFalse(was_compacted)

    def test_no_compaction_exact_limit(self):
        prompt = "x" * 8000

        result, was_compacted = compact_prompt(prompt, max_chars=8000)

        self.assertEqual(result, prompt)
        self.assertFalse(was_compacted)

    def test_compaction_keeps_head_and_tail(self):
        """Past transcript head and directive tail both survive."""
        prompt = "PAST" * 300 + "M" * 6000 + "DIRECTIVE" * 200

        result, was_compacted = compact_prompt(prompt, max_chars=8000)

        self.assertTrue(was_compacted)
        self.assertLessEqual(len(result), 8000)
        self.assertTrue(result.startswith("PAST"))
        self.assertTrue(result.endswith("DIRECTIVE"))
        self.assertIn("...[omitted for length]...", result)

    def test_compaction_respects_max_chars(self):
        result, was_compacted = compact_prompt("X" * 50000, max_chars=1000)

        self.assertTrue(was_compacted)
        self.assertLessEqual(len(result), 1000)

    def test_compaction_very_small_limit(self):
        result, was_compacted = compact_prompt("A" * 10000, max_chars=200)

        self.assertTrue(was_compacted)
        self.assertLessEqual(len(result), 200)
        self.assertGreater(len(result), 0)


class TestContentCompaction(unittest.TestCase):
    """Test per-entity content normalization."""

    def test_whitespace_collapsed(self):
        self.assertEqual(compact_content("buy   milk\n\n and\teggs"), "buy milk and eggs")

    def test_content_capped(self):
        self.assertEqual(len(compact_content("y" * 5000, max_chars=600)), 600)

    def test_url_content_replaced(self):
        self.assertEqual(compact_content("https://example.com/very/long/path?q=1"), URL_MARKER)

    def test_embedded_data_url_replaced(self):
        self.assertEqual(compact_content("data:image/png;base64,iVBORw0KGgo="), URL_MARKER)

    def test_text_mentioning_url_kept(self):
        text = "see https://example.com for details"
        self.assertEqual(compact_content(text), text)

    def test_empty(self):
        self.assertEqual(compact_content(None), "")
        self.assertEqual(compact_content(""), "")


class TestContextCompaction(unittest.TestCase):
    """Test snapshot -> parser payload reduction."""

    def _views(self, n):
        return [
            EntityView(id=f"w{i}", title=f"Window {i}", type="sticky-note", content=f"note {i}", created_at=1000 + i)
            for i in range(n)
        ]

    def test_keeps_twelve_most_recent(self):
        result = compact_context(self._views(20), max_entities=12)

        self.assertEqual(len(result), 12)
        self.assertEqual([e["id"] for e in result], [f"w{i}" for i in range(8, 20)])

    def test_order_independent_of_input_order(self):
        views = list(reversed(self._views(5)))
        result = compact_context(views, max_entities=3)
        self.assertEqual([e["id"] for e in result], ["w2", "w3", "w4"])

    def test_entry_fields(self):
        result = compact_context(self._views(1))
        self.assertEqual(result[0], {"id": "w0", "title": "Window 0", "type": "sticky-note", "content": "note 0"})

    def test_non_http_image_dropped(self):
        view = EntityView(
            id="img", type="image", created_at=1,
            metadata={"imageUrl": "data:image/png;base64,AAAA", "secret": "token"},
        )
        result = compact_context([view])
        self.assertEqual(result, [{"id": "img", "type": "image"}])

    def test_http_image_kept(self):
        view = EntityView(id="img", type="image", created_at=1, metadata={"imageUrl": "https://cdn.example.com/a.png"})
        result = compact_context([view])
        self.assertEqual(result[0]["imageUrl"], "https://cdn.example.com/a.png")

    def test_empty_snapshot(self):
        self.assertEqual(compact_context([]), [])


if __name__ == '__main__':
    unittest.main()
