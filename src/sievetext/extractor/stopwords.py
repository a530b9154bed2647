"""
Stop-word lists per language.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional

import structlog
from spacy.util import get_lang_class

from sievetext.protocols import StopWordProvider
from sievetext.utils.cache import ReadThroughCache

logger = structlog.get_logger(__name__)

NO_STOP_WORDS: FrozenSet[str] = frozenset()


class SpacyStopWords:
    """Stop words shipped with spaCy's language data."""

    name = "spacy"

    def words_for(self, language: str) -> Optional[FrozenSet[str]]:
        try:
            language_class = get_lang_class(language)
        except (ImportError, ValueError):
            return None
        words = getattr(language_class.Defaults, "stop_words", None)
        if not words:
            return None
        return frozenset(words)


class StopWordCache:
    """
    Read-through cache over a StopWordProvider.

    Adds configured extra words and lower-cases everything when matching
    ignores case. A language without a list resolves to an empty set, so
    every word of it counts as a non-stop word.
    """

    def __init__(
        self,
        provider: StopWordProvider,
        extra_words: Optional[Dict[str, Iterable[str]]] = None,
        ignore_case: bool = True,
    ) -> None:
        self.provider = provider
        self.ignore_case = ignore_case
        self._extra = {language: list(words) for language, words in (extra_words or {}).items()}
        self._cache: ReadThroughCache[str, FrozenSet[str]] = ReadThroughCache(
            self._load, missing=NO_STOP_WORDS, name="stop_words"
        )

    def _load(self, language: str) -> Optional[FrozenSet[str]]:
        words = set(self.provider.words_for(language) or ())
        words.update(self._extra.get(language, ()))
        if not words:
            logger.warning("No stop words available for language", language=language)
            return None
        if self.ignore_case:
            words = {word.lower() for word in words}
        return frozenset(words)

    def words_for(self, language: str) -> FrozenSet[str]:
        return self._cache.get(language)

    def is_stop_word(self, word: str, language: str) -> bool:
        if self.ignore_case:
            word = word.lower()
        return word in self.words_for(language)
