"""
Text Feature Extractor

Deterministic surface statistics over a block of coach-authored text.
The output is a pure function of the input: no models, no hidden state.

Features:
- sentence_structure: short_punchy / mixed_varied / long_explanatory
- punctuation_style: emoji_heavy / exclamation_heavy / moderate / minimal
- vocabulary_level: technical / motivational / casual_slang / professional
- typical_sentence_starters: repeated three-word openers (top 5)
- catchphrases: repeated 2- and 3-word windows (top 5)
- energy_level: 1-10 from energy indicator density
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .taxonomies import (
    CASUAL_VOCABULARY,
    EMOJI_RANGES,
    ENERGY_INDICATORS,
    MOTIVATIONAL_VOCABULARY,
    TECHNICAL_VOCABULARY,
)


SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

SHORT_SENTENCE_MAX = 10
LONG_SENTENCE_MIN = 20
TOP_STARTERS = 5
TOP_CATCHPHRASES = 5
MIN_PHRASE_CHARS = 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _build_emoji_pattern(ranges: Sequence[Tuple[int, int]]) -> re.Pattern:
    parts = "".join(f"{chr(lo)}-{chr(hi)}" for lo, hi in ranges)
    return re.compile(f"[{parts}]")


@dataclass
class VoiceFeatures:
    """Feature bundle for one text sample."""
    sentence_structure: str
    punctuation_style: str
    vocabulary_level: str
    typical_sentence_starters: List[str] = field(default_factory=list)
    catchphrases: List[str] = field(default_factory=list)
    energy_level: int = 1
    word_count: int = 0
    sentence_count: int = 0
    avg_sentence_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def split_sentences(text: str) -> List[str]:
    """Split on runs of . ! ? and drop fragments that are blank after trimming."""
    return [s.strip() for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]


def tokenize(text: str) -> List[str]:
    return text.lower().split()


def count_keywords_present(lowered: str, keywords: Iterable[str]) -> int:
    """Number of keywords that occur anywhere in the text (substring match)."""
    return sum(1 for kw in keywords if kw in lowered)


def _top_by_count(counts: Counter, minimum: int, limit: int) -> List[str]:
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(
        ((item, n) for item, n in counts.items() if n > minimum),
        key=lambda pair: pair[1],
        reverse=True,
    )
    return [item for item, _ in ranked[:limit]]


class TextFeatureExtractor:
    """
    Computes VoiceFeatures for a block of text.

    Keyword sets and emoji ranges are injected so they can be swapped in tests.
    """

    def __init__(
        self,
        casual_vocabulary: Sequence[str] = CASUAL_VOCABULARY,
        technical_vocabulary: Sequence[str] = TECHNICAL_VOCABULARY,
        motivational_vocabulary: Sequence[str] = MOTIVATIONAL_VOCABULARY,
        energy_indicators: Sequence[str] = ENERGY_INDICATORS,
        emoji_ranges: Sequence[Tuple[int, int]] = EMOJI_RANGES,
    ):
        self.casual_vocabulary = tuple(casual_vocabulary)
        self.technical_vocabulary = tuple(technical_vocabulary)
        self.motivational_vocabulary = tuple(motivational_vocabulary)
        self.energy_indicators = tuple(energy_indicators)
        self._emoji_re = _build_emoji_pattern(emoji_ranges)

    def extract(self, text: str) -> VoiceFeatures:
        text = text or ""
        lowered = text.lower()
        sentences = split_sentences(text)
        words = tokenize(text)
        sentence_count = len(sentences)

        if sentence_count:
            avg_length = sum(len(s.split()) for s in sentences) / sentence_count
        else:
            avg_length = 0.0

        return VoiceFeatures(
            sentence_structure=self.classify_sentence_structure(avg_length),
            punctuation_style=self.classify_punctuation(text, sentence_count),
            vocabulary_level=self.classify_vocabulary(lowered),
            typical_sentence_starters=self.sentence_starters(sentences),
            catchphrases=self.catchphrases(words),
            energy_level=self.energy_level(lowered, sentence_count),
            word_count=len(words),
            sentence_count=sentence_count,
            avg_sentence_length=_round_half_up(avg_length),
        )

    @staticmethod
    def classify_sentence_structure(avg_length: float) -> str:
        if avg_length < SHORT_SENTENCE_MAX:
            return "short_punchy"
        if avg_length > LONG_SENTENCE_MIN:
            return "long_explanatory"
        return "mixed_varied"

    def count_emoji(self, text: str) -> int:
        return len(self._emoji_re.findall(text))

    def classify_punctuation(self, text: str, sentence_count: int) -> str:
        exclamations = text.count("!")
        emoji = self.count_emoji(text)
        if emoji > sentence_count * 0.3:
            return "emoji_heavy"
        if exclamations > sentence_count * 0.3:
            return "exclamation_heavy"
        if exclamations > sentence_count * 0.1:
            return "moderate"
        return "minimal"

    def classify_vocabulary(self, lowered: str) -> str:
        if count_keywords_present(lowered, self.technical_vocabulary) > 2:
            return "technical"
        if count_keywords_present(lowered, self.motivational_vocabulary) > 3:
            return "motivational"
        if count_keywords_present(lowered, self.casual_vocabulary) > 3:
            return "casual_slang"
        return "professional"

    @staticmethod
    def sentence_starters(sentences: Sequence[str]) -> List[str]:
        counts: Counter = Counter(
            " ".join(tokenize(sentence)[:3]) for sentence in sentences
        )
        return _top_by_count(counts, minimum=1, limit=TOP_STARTERS)

    @staticmethod
    def catchphrases(words: Sequence[str]) -> List[str]:
        counts: Counter = Counter()
        for i in range(len(words) - 1):
            if i < len(words) - 2:
                three = " ".join(words[i:i + 3])
                if len(three) > MIN_PHRASE_CHARS:
                    counts[three] += 1
            two = " ".join(words[i:i + 2])
            if len(two) > MIN_PHRASE_CHARS:
                counts[two] += 1
        return _top_by_count(counts, minimum=2, limit=TOP_CATCHPHRASES)

    def energy_level(self, lowered: str, sentence_count: int) -> int:
        if not sentence_count:
            return 1
        hits = sum(lowered.count(indicator) for indicator in self.energy_indicators)
        score = min(10.0, max(1.0, hits / sentence_count * 10))
        return _round_half_up(score)


text_feature_extractor = TextFeatureExtractor()
