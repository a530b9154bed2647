"""
Pluggable paragraph and sentence predicates.

Paragraph predicates receive the whitespace-normalized paragraph text and run
before language detection. Sentence predicates receive the sentence and its
words and decide on one sentence at a time.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable, List, Protocol, Sequence

from sievetext.protocols import Sentence

if TYPE_CHECKING:
    from sievetext.config.config import ExtractionConfig
    from sievetext.extractor.stopwords import StopWordCache

ParagraphPredicate = Callable[[str], bool]


class SentencePredicate(Protocol):
    def __call__(self, sentence: Sentence, words: Sequence[str]) -> bool:
        ...


def passes_thresholds(count: int, total: int, min_count: int, min_ratio: float) -> bool:
    """Both the absolute count and the ratio must reach their minimum."""
    ratio = count / total if total else 0.0
    return count >= min_count and ratio >= min_ratio


class MinLengthParagraph:
    """Keeps paragraphs of at least ``min_length`` characters."""

    def __init__(self, min_length: int) -> None:
        self.min_length = min_length

    def __call__(self, text: str) -> bool:
        return len(text) >= self.min_length

    def __repr__(self) -> str:
        return f"MinLengthParagraph({self.min_length})"


class StopWordFilter:
    """Keeps sentences with enough stop words of the paragraph's language."""

    def __init__(self, stop_words: StopWordCache, min_count: int, min_ratio: float) -> None:
        self.stop_words = stop_words
        self.min_count = min_count
        self.min_ratio = min_ratio

    def count(self, words: Sequence[str], language: str) -> int:
        return sum(1 for word in words if self.stop_words.is_stop_word(word, language))

    def __call__(self, sentence: Sentence, words: Sequence[str]) -> bool:
        return passes_thresholds(self.count(words, sentence.language), len(words), self.min_count, self.min_ratio)

    def __repr__(self) -> str:
        return f"StopWordFilter(min_count={self.min_count}, min_ratio={self.min_ratio})"


class MatchingWordFilter:
    """Keeps sentences with enough words fully matching ``pattern``."""

    def __init__(self, pattern: str, min_count: int, min_ratio: float) -> None:
        self.pattern = re.compile(pattern)
        self.min_count = min_count
        self.min_ratio = min_ratio

    def count(self, words: Sequence[str]) -> int:
        return sum(1 for word in words if self.pattern.fullmatch(word))

    def __call__(self, sentence: Sentence, words: Sequence[str]) -> bool:
        return passes_thresholds(self.count(words), len(words), self.min_count, self.min_ratio)

    def __repr__(self) -> str:
        return f"MatchingWordFilter({self.pattern.pattern!r}, min_count={self.min_count}, min_ratio={self.min_ratio})"


def default_paragraph_filters(config: ExtractionConfig) -> List[ParagraphPredicate]:
    return [MinLengthParagraph(config.min_paragraph_length)]


def default_sentence_filters(config: ExtractionConfig, stop_words: StopWordCache) -> List[SentencePredicate]:
    return [
        StopWordFilter(stop_words, config.min_stop_words, config.min_stop_word_ratio),
        MatchingWordFilter(config.matching_word_pattern, config.min_matching_words, config.min_matching_word_ratio),
    ]
