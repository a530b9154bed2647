"""
Language identification with langdetect.
"""

from __future__ import annotations

import threading
from typing import Optional

import structlog
from langdetect import DetectorFactory, LangDetectException, detect
from langdetect.detector_factory import init_factory

from sievetext.config.config import normalize_language

logger = structlog.get_logger(__name__)

# langdetect is non-deterministic unless seeded.
DetectorFactory.seed = 0


class LangdetectDetector:
    """
    Detects the language of a paragraph with langdetect.

    Returns the primary ISO 639-1 subtag ("zh-cn" becomes "zh"), or None
    when langdetect finds no features to decide on.
    """

    name = "langdetect"

    # langdetect loads its profiles into a module-global factory on first use.
    _init_lock = threading.Lock()
    _initialized = False

    @classmethod
    def _ensure_profiles(cls) -> None:
        if cls._initialized:
            return
        with cls._init_lock:
            if not cls._initialized:
                init_factory()
                cls._initialized = True

    def detect(self, text: str) -> Optional[str]:
        if not text.strip():
            return None
        self._ensure_profiles()
        try:
            language = detect(text)
        except LangDetectException as e:
            logger.debug("Language detection inconclusive", error=str(e))
            return None
        return normalize_language(language)
