#!/usr/bin/env python3
"""
Lexical scorer tests.

USAGE:
    Run from project root: python -m pytest tests/test_scorer.py -v
"""

import unittest

from shopassist.nlu.scorer import pick_best, resolve, score
from fakes import HEADPHONES, WATCH


class TestLexicalScore(unittest.TestCase):
    """Test token weighting and the rating tie-breaker."""

    def test_strong_token_in_name_and_description(self):
        doc = {"name": "Yoga Mat", "description": "A thick yoga mat", "rating": 4.0}
        # yoga: name 2*4 + description 1*4 = 12 -> 120 + rating
        self.assertAlmostEqual(score(doc, "yoga"), 124.0)

    def test_weak_token_counts_less(self):
        doc = {"name": "Bluetooth Speaker", "description": "", "rating": 0}
        self.assertAlmostEqual(score(doc, "bluetooth"), 20.0)
        self.assertAlmostEqual(score(doc, "speaker"), 80.0)

    def test_short_and_stop_words_ignored(self):
        doc = {"name": "The TV and more", "description": "", "rating": 1.0}
        self.assertAlmostEqual(score(doc, "the tv and"), 1.0)

    def test_missing_fields_and_invalid_rating(self):
        self.assertEqual(score({}, "anything"), 0.0)
        self.assertEqual(score({"name": "Lamp", "rating": "n/a"}, "lamp"), 80.0)

    def test_case_insensitive_substring(self):
        doc = {"name": "Noise-Cancelling Headphones", "description": None}
        self.assertEqual(score(doc, "HEADPHONES"), 80.0)

    def test_deterministic(self):
        query = "bluetooth headphones noise cancelling"
        self.assertEqual(score(HEADPHONES, query), score(dict(HEADPHONES), query))


class TestPickBest(unittest.TestCase):
    """Test choosing exactly one product from a candidate set."""

    def test_headphones_beat_watch(self):
        best = pick_best([WATCH, HEADPHONES], "bluetooth headphones noise cancelling")
        self.assertEqual(best["id"], HEADPHONES["id"])

    def test_tie_goes_to_first_seen(self):
        a = {"id": "a", "name": "Desk Lamp", "rating": 4.0}
        b = {"id": "b", "name": "Desk Lamp", "rating": 4.0}
        self.assertEqual(pick_best([a, b], "lamp")["id"], "a")
        self.assertEqual(pick_best([b, a], "lamp")["id"], "b")

    def test_no_margin_still_one_product(self):
        a = {"id": "a", "name": "Chair", "rating": 4.0}
        b = {"id": "b", "name": "Table", "rating": 4.5}
        self.assertEqual(pick_best([a, b], "something else")["id"], "b")

    def test_empty(self):
        self.assertIsNone(pick_best([], "anything"))


class TestResolve(unittest.TestCase):
    """Test when a candidate set resolves to a product."""

    def test_single_candidate_always_resolves(self):
        self.assertEqual(resolve([WATCH], "gift ideas")["id"], WATCH["id"])

    def test_lexical_hit_resolves(self):
        self.assertEqual(resolve([WATCH, HEADPHONES], "noise headphones")["id"], HEADPHONES["id"])

    def test_no_lexical_evidence_does_not_resolve(self):
        self.assertIsNone(resolve([WATCH, HEADPHONES], "gift ideas"))

    def test_empty(self):
        self.assertIsNone(resolve([], "headphones"))


if __name__ == '__main__':
    unittest.main()
