"""Tests for expert_ranking.core.citation_counter."""

import pytest

from expert_ranking.core.citation_counter import count_mentions, distinctive_token


class TestCountMentions:
    """Tests for surname mention counting."""

    def test_counts_surname_occurrences(self):
        text = "Yeager argues for wise feedback. Later, YEAGER and colleagues replicated it."
        assert count_mentions(text, "David Yeager") == 2

    def test_whole_word_only(self):
        text = "Hendricks and Hendrickson are different people; Hendrick is not."
        assert count_mentions(text, "Carl Hendrick") == 1

    def test_possessive_counts(self):
        assert count_mentions("Wexler's book on knowledge gaps", "Natalie Wexler") == 1

    def test_uses_normalized_name(self):
        assert count_mentions("Yeager, Yeager", "David Yeager, PhD") == 2

    def test_single_token_name(self):
        assert count_mentions("Hochman wrote with Wexler.", "Hochman") == 1

    @pytest.mark.parametrize("name", ["Bo Li", "Mark Lee", "Jun Wu", "A. B. Cox"])
    def test_short_surname_suppressed(self, name):
        """Surnames of three characters or fewer never count."""
        text = " ".join([name.split()[-1]] * 20)
        assert count_mentions(text, name) == 0

    def test_empty_inputs(self):
        assert count_mentions("", "David Yeager") == 0
        assert count_mentions("Yeager", "") == 0

    def test_regex_characters_in_name_are_literal(self):
        assert count_mentions("O'Neill.* and O'Neill", "Cathy O'Neill") == 2


class TestDistinctiveToken:
    """Tests for distinctive_token."""

    def test_returns_lowercase_surname(self):
        assert distinctive_token("Paul Kirschner") == "kirschner"

    def test_short_surname_is_empty(self):
        assert distinctive_token("Mark Lee") == ""
