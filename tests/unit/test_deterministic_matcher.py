"""
Tests for token-overlap matching.
"""

import pytest

from packages.domain.expense_accounts.deterministic_matcher import match_candidates, minimum_matches

DENSE_TOKENS = [
    "alpha", "bravo", "charlie", "delta", "echo", "foxtrot",
    "golf", "hotel", "india", "juliet", "kilo",
]


class TestMinimumMatches:
    """Test the size-adaptive threshold."""

    @pytest.mark.parametrize("token_count, expected", [
        (0, 1),
        (1, 1),
        (2, 1),
        (3, 2),
        (4, 2),
        (10, 5),
        (11, 2),
        (12, 3),
        (20, 5),
    ])
    def test_threshold(self, token_count, expected):
        """Majority up to 10 tokens, a quarter above."""
        assert minimum_matches(token_count) == expected


class TestMatchCandidates:
    """Test candidate selection."""

    def test_no_candidates(self):
        """Nothing to match."""
        assert match_candidates([], ["shell"], []) is None

    def test_single_candidate_short_circuit(self, make_candidate):
        """A lone candidate is accepted even without token overlap."""
        only = make_candidate("9", "Starbucks Coffee")
        assert match_candidates([only], ["madrid"], []) is only

    def test_single_placeholder_candidate(self, make_candidate):
        """A lone placeholder candidate is rejected."""
        assert match_candidates([make_candidate("1", "Unknown")], ["shell"], []) is None

    def test_dense_token_set_loose_threshold(self, make_candidate):
        """11 target tokens need only 2 shared tokens."""
        candidates = [
            make_candidate("1", "Zulu Market"),
            make_candidate("2", "Alpha Bravo Store"),
        ]
        assert match_candidates(candidates, DENSE_TOKENS, []) is candidates[1]

    def test_sparse_token_set_strict(self, make_candidate):
        """3 target tokens need 2 shared tokens; one is not enough."""
        candidates = [
            make_candidate("1", "Alpha Shop"),
            make_candidate("2", "Zulu Market"),
        ]
        assert match_candidates(candidates, ["alpha", "bravo", "charlie"], []) is None

    def test_sparse_token_set_lenient(self, make_candidate):
        """The lenient policy accepts the partial overlap."""
        candidates = [
            make_candidate("1", "Alpha Shop"),
            make_candidate("2", "Zulu Market"),
        ]
        result = match_candidates(candidates, ["alpha", "bravo", "charlie"], [], lenient=True)
        assert result is candidates[0]

    def test_first_candidate_over_threshold_wins(self, make_candidate):
        """Order matters: the first qualifying candidate is returned."""
        candidates = [
            make_candidate("1", "Starbucks Coffee"),
            make_candidate("2", "Starbucks Madrid"),
        ]
        assert match_candidates(candidates, ["starbucks", "madrid"], []) is candidates[0]

    def test_destination_tokens_count(self, make_candidate):
        """Destination tokens join the target set."""
        candidates = [
            make_candidate("1", "Zulu Market"),
            make_candidate("2", "Repsol Valencia"),
        ]
        result = match_candidates(candidates, ["gasolinera"], ["repsol"])
        assert result is candidates[1]

    def test_lenient_picks_best_score(self, make_candidate):
        """Lenient fallback returns the highest partial overlap."""
        candidates = [
            make_candidate("1", "Alpha Market"),
            make_candidate("2", "Alpha Bravo Market"),
            make_candidate("3", "Zulu"),
        ]
        targets = ["alpha", "bravo", "charlie", "delta", "echo"]

        assert match_candidates(candidates, targets, []) is None
        assert match_candidates(candidates, targets, [], lenient=True) is candidates[1]

    def test_lenient_needs_some_overlap(self, make_candidate):
        """Lenient fallback never returns a zero-overlap candidate."""
        candidates = [make_candidate("1", "Zulu"), make_candidate("2", "Yankee")]
        assert match_candidates(candidates, ["alpha"], [], lenient=True) is None

    def test_candidate_names_are_normalized(self, make_candidate):
        """Candidate names go through the same normalization."""
        candidates = [
            make_candidate("1", "Zulu"),
            make_candidate("2", "CAFETERÍA Ñandú"),
        ]
        assert match_candidates(candidates, ["cafeteria"], []) is candidates[1]
