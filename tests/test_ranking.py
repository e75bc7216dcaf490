import unittest

from gpatracker.core.errors import InvalidRankOverrideError, RankNotFoundError
from gpatracker.core.gpa import Ranking, apply_rank_override, compute_rank, rank_users

from fakes import make_record


class RankingTests(unittest.TestCase):
    def setUp(self):
        self.records = [
            make_record("carol", 3.9, [3, 3]),
            make_record("bob", 3.2, [4]),
            make_record("alice", 3.9, [6]),
        ]

    def test_sorted_descending(self):
        standings = rank_users(self.records)
        for row, expected in zip(standings, [3.9, 3.9, 3.2]):
            self.assertAlmostEqual(row.cumulative_gpa, expected)
        self.assertEqual(standings[-1].user_id, "bob")

    def test_ties_break_on_user_id(self):
        standings = rank_users(self.records)
        self.assertEqual([row.user_id for row in standings], ["alice", "carol", "bob"])

    def test_rank_of_lowest(self):
        ranking = compute_rank(self.records, "bob")
        self.assertEqual(ranking.rank, 3)
        self.assertEqual(ranking.total_users, 3)
        self.assertAlmostEqual(ranking.cumulative_gpa, 3.2)
        self.assertFalse(ranking.overridden)

    def test_multiple_semesters_per_user(self):
        records = [
            make_record("u1", 3.5, [10], semester="Fall"),
            make_record("u1", 4.0, [6], semester="Spring"),
            make_record("u2", 3.6, [12]),
        ]
        ranking = compute_rank(records, "u1")
        self.assertEqual(ranking.rank, 1)
        self.assertEqual(ranking.total_users, 2)
        self.assertAlmostEqual(ranking.cumulative_gpa, 3.6875)

    def test_absent_user(self):
        with self.assertRaises(RankNotFoundError):
            compute_rank(self.records, "dave")

    def test_empty_population(self):
        with self.assertRaises(RankNotFoundError):
            compute_rank([], "dave")


class RankOverrideTests(unittest.TestCase):
    def setUp(self):
        self.ranking = Ranking(rank=2, total_users=40, cumulative_gpa=3.8)

    def test_accepts_valid_override(self):
        result = apply_rank_override(self.ranking, 1, 1)
        self.assertEqual((result.rank, result.total_users), (1, 1))
        self.assertTrue(result.overridden)
        self.assertEqual(result.cumulative_gpa, 3.8)
        self.assertFalse(self.ranking.overridden)

    def test_rank_above_total(self):
        with self.assertRaises(InvalidRankOverrideError):
            apply_rank_override(self.ranking, 5, 3)

    def test_rank_below_one(self):
        with self.assertRaises(InvalidRankOverrideError):
            apply_rank_override(self.ranking, 0, 10)
        with self.assertRaises(InvalidRankOverrideError):
            apply_rank_override(self.ranking, 1, 0)

    def test_non_integer_values(self):
        with self.assertRaises(InvalidRankOverrideError):
            apply_rank_override(self.ranking, "2", 10)
        with self.assertRaises(InvalidRankOverrideError):
            apply_rank_override(self.ranking, True, 10)

    def test_override_does_not_change_computed_rank(self):
        records = [make_record("u1", 3.0, [3]), make_record("u2", 4.0, [3])]
        apply_rank_override(compute_rank(records, "u1"), 1, 2)
        self.assertEqual(compute_rank(records, "u1").rank, 2)


if __name__ == "__main__":
    unittest.main()
