#!/usr/bin/env python3
"""
Chunk indexer tests.

USAGE:
    Run from project root: python -m pytest tests/test_indexer.py -v
"""

import unittest
from unittest.mock import MagicMock

from shopassist.app.indexer import ChunkIndexer, render_product_text, split_text
from shopassist.data.chunk_store import ChunkStore
from shopassist.utils.normalize import normalize_product
from fakes import CHAIR, HEADPHONES, FakeEmbedder, make_session_factory


class TestRenderAndSplit(unittest.TestCase):
    """Test the product text blob and fixed-size slicing."""

    def test_render_product_text(self):
        text = render_product_text(normalize_product(CHAIR))
        lines = text.splitlines()
        self.assertEqual(lines[0], CHAIR["name"])
        self.assertEqual(lines[1], "Category: Furniture")
        self.assertEqual(lines[2], CHAIR["description"])
        self.assertIn("material: Mesh & Aluminum", lines)

    def test_split_lengths(self):
        pieces = split_text("x" * 1500, 700)
        self.assertEqual([len(p) for p in pieces], [700, 700, 100])
        self.assertEqual("".join(pieces), "x" * 1500)

    def test_split_short_and_empty(self):
        self.assertEqual(split_text("abc", 700), ["abc"])
        self.assertEqual(split_text("", 700), [])

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            split_text("abc", 0)


class TestChunkIndexer(unittest.TestCase):
    """Test indexing against an in-memory chunk store."""

    def setUp(self):
        self.store = ChunkStore(make_session_factory())
        self.embedder = FakeEmbedder()
        self.indexer = ChunkIndexer(embed_client=self.embedder, store=self.store, chunk_size=100)

    def test_chunks_written_in_document_mode(self):
        count = self.indexer.index_product(HEADPHONES)
        self.assertGreater(count, 1)
        self.assertEqual(self.store.count_for_product(HEADPHONES["id"]), count)
        self.assertTrue(all(mode == "document" for _, mode in self.embedder.calls))

    def test_reindex_is_idempotent(self):
        first = self.indexer.index_product(HEADPHONES)
        second = self.indexer.index_product(HEADPHONES)
        self.assertEqual(first, second)
        self.assertEqual(self.store.count_for_product(HEADPHONES["id"]), second)

    def test_other_products_untouched(self):
        self.indexer.index_product(HEADPHONES)
        chair_count = self.indexer.index_product(CHAIR)
        self.indexer.index_product(HEADPHONES)
        self.assertEqual(self.store.count_for_product(CHAIR["id"]), chair_count)

    def test_embedding_failure_keeps_previous_chunks(self):
        count = self.indexer.index_product(HEADPHONES)
        failing = ChunkIndexer(embed_client=FakeEmbedder(fail_on="Category"), store=self.store, chunk_size=100)
        with self.assertRaises(RuntimeError):
            failing.index_product(HEADPHONES)
        self.assertEqual(self.store.count_for_product(HEADPHONES["id"]), count)

    def test_empty_product_clears_chunks(self):
        self.indexer.index_product(HEADPHONES)
        emptied = {"id": HEADPHONES["id"], "name": "", "category": "", "description": "", "specs": {}}
        self.assertEqual(self.indexer.index_product(emptied), 0)
        self.assertEqual(self.store.count_for_product(HEADPHONES["id"]), 0)

    def test_product_without_id(self):
        with self.assertRaises(ValueError):
            self.indexer.index_product({"name": "orphan"})

    def test_metadata_and_content(self):
        self.indexer.index_product(CHAIR)
        matches = self.store.match(self.embedder.embed("chair lumbar", "query"), 50, product_id=CHAIR["id"])
        self.assertTrue(matches)
        chunk_numbers = sorted(m["metadata"]["chunk"] for m in matches)
        self.assertEqual(chunk_numbers, list(range(len(matches))))
        self.assertTrue(all(m["metadata"]["name"] == CHAIR["name"] for m in matches))
        self.assertTrue(all(len(m["content"]) <= 100 for m in matches))


class TestIndexAll(unittest.TestCase):
    """Test batch indexing with per-product failures."""

    def test_failure_is_isolated(self):
        store = MagicMock()
        store.replace_for_product.side_effect = [RuntimeError("disk full"), 3]
        indexer = ChunkIndexer(embed_client=FakeEmbedder(), store=store)
        reports = indexer.index_all([HEADPHONES, CHAIR])
        self.assertEqual(reports[0].product_id, HEADPHONES["id"])
        self.assertEqual(reports[0].error, "disk full")
        self.assertEqual(reports[1].chunks, 3)
        self.assertIsNone(reports[1].error)


if __name__ == '__main__':
    unittest.main()
