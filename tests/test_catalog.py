#!/usr/bin/env python3
"""
Catalog store and seed data tests.

USAGE:
    Run from project root: python -m pytest tests/test_catalog.py -v
"""

import unittest

from shopassist.data.catalog import CatalogStore
from shopassist.data.populate_db import load_seed_products, populate_products
from fakes import BOTTLE, CHAIR, HEADPHONES, WATCH, make_session_factory, seed


class TestCatalogListing(unittest.TestCase):
    """Test filtered, paginated listing and lookups."""

    def setUp(self):
        self.session_factory = make_session_factory()
        seed(self.session_factory)
        self.store = CatalogStore(self.session_factory)

    def test_newest_first(self):
        ids = [p.id for p in self.store.list_products()]
        self.assertEqual(ids, [BOTTLE["id"], CHAIR["id"], WATCH["id"], HEADPHONES["id"]])

    def test_pagination(self):
        first = self.store.list_products(limit=2, offset=0)
        second = self.store.list_products(limit=2, offset=2)
        self.assertEqual([p.id for p in first], [BOTTLE["id"], CHAIR["id"]])
        self.assertEqual([p.id for p in second], [WATCH["id"], HEADPHONES["id"]])

    def test_text_filter_matches_name_or_description(self):
        ids = {p.id for p in self.store.list_products(q="battery")}
        self.assertEqual(ids, {HEADPHONES["id"], WATCH["id"]})

    def test_wildcard_characters_match_literally(self):
        for text in ("___", "%", "a_c"):
            self.assertEqual(self.store.list_products(q=text), [])
            self.assertEqual(self.store.find_by_tokens([text], limit=10), [])
        ids = [p.id for p in self.store.find_by_tokens(["30-hour"], limit=10)]
        self.assertEqual(ids, [HEADPHONES["id"]])

    def test_category_filter_and_all(self):
        ids = {p.id for p in self.store.list_products(category="Electronics")}
        self.assertEqual(ids, {HEADPHONES["id"], WATCH["id"]})
        self.assertEqual(len(self.store.list_products(category="all")), 4)

    def test_price_range(self):
        ids = {p.id for p in self.store.list_products(price_min=100, price_max=300)}
        self.assertEqual(ids, {HEADPHONES["id"], WATCH["id"]})

    def test_get_product(self):
        product = self.store.get_product(CHAIR["id"])
        self.assertEqual(product.name, CHAIR["name"])
        self.assertIsNone(self.store.get_product("missing"))

    def test_categories_sorted_distinct(self):
        self.assertEqual(self.store.get_categories(), ["Electronics", "Furniture", "Home & Kitchen"])

    def test_similar_by_category_excludes_product(self):
        similar = self.store.get_similar_by_category("Electronics", exclude_id=HEADPHONES["id"])
        self.assertEqual([p.id for p in similar], [WATCH["id"]])


class TestPopulateProducts(unittest.TestCase):
    """Test the seed catalog."""

    def test_seed_file(self):
        rows = load_seed_products()
        self.assertEqual(len(rows), 12)
        for row in rows:
            self.assertTrue(row["name"])
            self.assertGreater(row["price"], 0)
            self.assertTrue(row["specs"])

    def test_populates_once(self):
        session_factory = make_session_factory()
        self.assertEqual(populate_products(session_factory=session_factory), 12)
        self.assertEqual(populate_products(session_factory=session_factory), 0)
        store = CatalogStore(session_factory)
        self.assertEqual(len(store.all_products()), 12)
        self.assertIn("Sports", store.get_categories())


if __name__ == '__main__':
    unittest.main()
