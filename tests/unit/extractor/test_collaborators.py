"""
Unit tests for the spaCy and langdetect backed collaborators.
"""

import pytest
from sievetext.extractor.language_detector import LangdetectDetector
from sievetext.extractor.segmenter import MULTI_LANGUAGE, SpacySegmenter
from sievetext.extractor.stopwords import NO_STOP_WORDS, SpacyStopWords, StopWordCache

from tests.helpers.fakes import FakeStopWords, english_paragraph


@pytest.fixture(scope="module")
def spacy_segmenter():
    return SpacySegmenter()


class TestSpacySegmenter:
    """Test cases for SpacySegmenter."""

    def test_segment(self, spacy_segmenter):
        sentences = spacy_segmenter.segment("The cat sat down. Then it slept! Did it dream?", "en")

        assert [s.strip() for s in sentences] == ["The cat sat down.", "Then it slept!", "Did it dream?"]

    def test_tokenize_skips_punctuation(self, spacy_segmenter):
        assert spacy_segmenter.tokenize("Well, the cat (a tabby) sat.", "en") == ["Well", "the", "cat", "a", "tabby", "sat"]

    def test_pipeline_shared_per_language(self, spacy_segmenter):
        assert spacy_segmenter.pipeline("en") is spacy_segmenter.pipeline("en")

    def test_unknown_language_uses_multi_language_rules(self, spacy_segmenter):
        assert spacy_segmenter.pipeline("qq") is spacy_segmenter.pipeline(MULTI_LANGUAGE)
        assert spacy_segmenter.segment("One two. Three four.", "qq")


class TestLangdetectDetector:
    """Test cases for LangdetectDetector."""

    def test_detects_english(self):
        assert LangdetectDetector().detect(english_paragraph(300)) == "en"

    def test_detects_german(self):
        text = (
            "Der kleine Hund wohnt mit seiner Familie in einem alten Haus am Rande der Stadt. "
            "Jeden Morgen geht er mit dem Vater durch den Park."
        )

        assert LangdetectDetector().detect(text) == "de"

    @pytest.mark.parametrize("text", ["", "   ", "1234 5678 !!!"])
    def test_undecidable_text(self, text):
        assert LangdetectDetector().detect(text) is None


class TestStopWords:
    """Test cases for stop-word lookup."""

    def test_spacy_stop_words(self):
        words = SpacyStopWords().words_for("en")

        assert {"the", "and", "of"} <= words

    def test_spacy_unknown_language(self):
        assert SpacyStopWords().words_for("qq") is None

    def test_cache_loads_once(self):
        provider = FakeStopWords()
        cache = StopWordCache(provider)

        cache.words_for("en")
        cache.words_for("en")

        assert provider.requests == ["en"]

    def test_missing_language_resolves_to_empty_set(self):
        provider = FakeStopWords()
        cache = StopWordCache(provider)

        assert cache.words_for("fi") is NO_STOP_WORDS
        assert cache.words_for("fi") is NO_STOP_WORDS
        assert provider.requests == ["fi"]

    def test_extra_words_and_case(self):
        cache = StopWordCache(FakeStopWords({"de": ["Der"]}), extra_words={"de": ["UND"]})

        assert cache.is_stop_word("der", "de")
        assert cache.is_stop_word("Und", "de")
        assert not cache.is_stop_word("Hund", "de")

    def test_case_sensitive(self):
        cache = StopWordCache(FakeStopWords({"en": ["the"]}), ignore_case=False)

        assert cache.is_stop_word("the", "en")
        assert not cache.is_stop_word("The", "en")
