#!/usr/bin/env python3
"""
Boundary normalization tests.

USAGE:
    Run from project root: python -m pytest tests/test_normalize.py -v
"""

import math
import unittest

from shopassist.schemas.io_models import ProductRecord, RetrievedChunk
from shopassist.utils.normalize import normalize_chunks, normalize_product, to_float


class TestToFloat(unittest.TestCase):

    def test_parses_numbers_and_currency(self):
        self.assertEqual(to_float(3), 3.0)
        self.assertEqual(to_float("4.5"), 4.5)
        self.assertEqual(to_float("$1,200"), 1200.0)

    def test_rejects_invalid(self):
        for value in (None, "", "abc", True, float("inf"), float("nan"), [1]):
            self.assertIsNone(to_float(value), value)


class TestNormalizeProduct(unittest.TestCase):

    def test_camel_case_keys(self):
        record = normalize_product({
            "productId": 7, "title": "Lamp", "imageUrl": "http://img", "price": "19.99", "rating": "4",
        })
        self.assertEqual(record.id, "7")
        self.assertEqual(record.name, "Lamp")
        self.assertEqual(record.image_url, "http://img")
        self.assertEqual(record.price, 19.99)
        self.assertEqual(record.rating, 4.0)
        self.assertEqual(record.specs, {})

    def test_invalid_price_becomes_unknown(self):
        record = normalize_product({"id": "x", "price": "free", "specs": "not a dict"})
        self.assertIsNone(record.price)
        self.assertEqual(record.specs, {})

    def test_objects_and_records(self):
        class Row:
            id = "r1"
            name = "Chair"
            price = 10
            category = "Furniture"

        record = normalize_product(Row())
        self.assertIsInstance(record, ProductRecord)
        self.assertEqual(record.category, "Furniture")
        self.assertIs(normalize_product(record), record)

    def test_unusable(self):
        self.assertIsNone(normalize_product(None))
        self.assertIsNone(normalize_product({"name": "no id"}))


class TestNormalizeChunks(unittest.TestCase):

    def test_mixed_shapes(self):
        chunks = normalize_chunks([
            "plain text",
            {"content": "from content", "score": 0.7},
            {"text": "from text", "similarity": 1.4},
            RetrievedChunk(text="model", similarity=0.6),
            {"content": "   "},
            None,
        ])
        self.assertEqual([c.text for c in chunks], ["plain text", "from content", "from text", "model"])
        self.assertEqual(chunks[0].similarity, 0.0)
        self.assertEqual(chunks[1].similarity, 0.7)
        self.assertEqual(chunks[2].similarity, 1.0)

    def test_single_item_and_none(self):
        self.assertEqual(len(normalize_chunks("one")), 1)
        self.assertEqual(normalize_chunks(None), [])

    def test_similarity_never_nan(self):
        chunk = normalize_chunks([{"text": "x", "score": float("nan")}])[0]
        self.assertFalse(math.isnan(chunk.similarity))


if __name__ == '__main__':
    unittest.main()
