"""
Unit tests for the paragraph and sentence predicates.
"""

import pytest
from sievetext.config.config import DEFAULT_MATCHING_WORD_PATTERN
from sievetext.extractor.filters import MatchingWordFilter, MinLengthParagraph, StopWordFilter, passes_thresholds
from sievetext.extractor.stopwords import StopWordCache
from sievetext.protocols import Sentence

from tests.helpers.fakes import FakeStopWords


@pytest.fixture
def stop_word_cache():
    return StopWordCache(FakeStopWords())


def sentence(text: str, language: str = "en") -> Sentence:
    return Sentence(text=text, language=language)


class TestPassesThresholds:
    """Test cases for the combined absolute and ratio check."""

    @pytest.mark.parametrize(
        "count,total,min_count,min_ratio,expected",
        [
            (2, 4, 2, 0.5, True),
            (2, 4, 3, 0.5, False),
            (2, 4, 2, 0.6, False),
            (0, 0, 0, 0.0, True),
            (0, 0, 0, 0.1, False),
            (0, 0, 1, 0.0, False),
        ],
    )
    def test_thresholds(self, count, total, min_count, min_ratio, expected):
        assert passes_thresholds(count, total, min_count, min_ratio) is expected


class TestStopWordFilter:
    """Test cases for StopWordFilter."""

    def test_count_threshold_met_but_ratio_failed(self, stop_word_cache):
        words = ["the", "quick", "brown", "fox", "jumps", "over", "lazy", "dogs"]
        accept = StopWordFilter(stop_word_cache, min_count=1, min_ratio=0.5)

        assert accept.count(words, "en") == 1
        assert not accept(sentence(" ".join(words)), words)

    def test_ratio_threshold_met_but_count_failed(self, stop_word_cache):
        words = ["the", "end"]
        accept = StopWordFilter(stop_word_cache, min_count=2, min_ratio=0.5)

        assert accept.count(words, "en") == 1
        assert not accept(sentence("the end"), words)

    def test_both_thresholds_met(self, stop_word_cache):
        words = ["the", "end", "of", "it"]
        accept = StopWordFilter(stop_word_cache, min_count=2, min_ratio=0.5)

        assert accept(sentence("the end of it"), words)

    def test_uses_sentence_language(self, stop_word_cache):
        words = ["the", "end"]
        accept = StopWordFilter(stop_word_cache, min_count=1, min_ratio=0.0)

        assert accept(sentence("the end", "en"), words)
        assert not accept(sentence("the end", "de"), words)


class TestMatchingWordFilter:
    """Test cases for MatchingWordFilter."""

    @pytest.mark.parametrize("word", ["word", "Word", "well-known", "Ärger", "naïve", "état-major"])
    def test_default_pattern_matches_alphabetic_words(self, word):
        assert MatchingWordFilter(DEFAULT_MATCHING_WORD_PATTERN, 0, 0.0).count([word]) == 1

    @pytest.mark.parametrize("word", ["42", "4x", "Q3", "snake_case", "-dash", "a.b", "50%", "<div>"])
    def test_default_pattern_rejects_other_tokens(self, word):
        assert MatchingWordFilter(DEFAULT_MATCHING_WORD_PATTERN, 0, 0.0).count([word]) == 0

    def test_count_and_ratio_both_required(self):
        words = ["one", "two", "3", "4"]

        assert MatchingWordFilter(DEFAULT_MATCHING_WORD_PATTERN, 2, 0.5)(sentence("one two 3 4"), words)
        assert not MatchingWordFilter(DEFAULT_MATCHING_WORD_PATTERN, 3, 0.5)(sentence("one two 3 4"), words)
        assert not MatchingWordFilter(DEFAULT_MATCHING_WORD_PATTERN, 2, 0.6)(sentence("one two 3 4"), words)

    def test_custom_pattern(self):
        accept = MatchingWordFilter(r"\d+", 1, 0.0)

        assert accept.count(["12", "ab", "3"]) == 2


def test_min_length_paragraph():
    accept = MinLengthParagraph(5)

    assert accept("12345")
    assert not accept("1234")
    assert repr(accept) == "MinLengthParagraph(5)"
