#!/usr/bin/env python3
"""
Batch indexing script tests.

USAGE:
    Run from project root: python -m pytest tests/test_ingest.py -v
"""

import unittest

from shopassist.app.indexer import ChunkIndexer
from shopassist.data.catalog import CatalogStore
from shopassist.data.chunk_store import ChunkStore
from shopassist.scripts.ingest_data import ingest
from fakes import CHAIR, FakeEmbedder, make_session_factory, seed


class TestIngest(unittest.TestCase):
    """Test seeding plus indexing of the catalog."""

    def setUp(self):
        self.session_factory = make_session_factory()
        self.chunks = ChunkStore(self.session_factory)
        self.indexer = ChunkIndexer(embed_client=FakeEmbedder(), store=self.chunks)

    def test_seeds_empty_catalog_and_indexes_everything(self):
        store = CatalogStore(self.session_factory)
        reports = ingest(indexer=self.indexer, store=store)
        self.assertEqual(len(reports), 12)
        self.assertTrue(all(r.error is None and r.chunks > 0 for r in reports))

    def test_selected_products_only(self):
        seed(self.session_factory)
        store = CatalogStore(self.session_factory)
        reports = ingest([CHAIR["id"], "missing"], indexer=self.indexer, store=store, seed=False)
        self.assertEqual([r.product_id for r in reports], [CHAIR["id"]])
        self.assertEqual(self.chunks.count_for_product(CHAIR["id"]), reports[0].chunks)


if __name__ == '__main__':
    unittest.main()
