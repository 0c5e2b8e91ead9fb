"""
Voice Profile Aggregator

Folds a newly analyzed sample into a coach's running voice profile.

Merge rules:
- descriptor fields (sentence_structure, punctuation_style, ...) are
  overwritten by the newest eligible sample (last write wins)
- samples_processed is cumulative
- the coach-level catchphrase list is an ordered union, capped

Only samples judged to be voice samples are merged. See is_voice_sample().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_CONFIG, VoiceEngineConfig
from .voice_analysis import VoiceFeatures


@dataclass
class VoiceProfileUpdate:
    """Result of folding one sample into a coach profile."""
    merged: bool
    voice_profile: Dict[str, Any] = field(default_factory=dict)
    catchphrases: List[str] = field(default_factory=list)
    delta: Dict[str, Any] = field(default_factory=dict)


def is_voice_sample(
    text: str,
    intent_tags: Iterable[str],
    catchphrases: Sequence[str],
    min_chars: int = DEFAULT_CONFIG.voice_sample_min_chars,
) -> bool:
    """A sample is rich enough when it is long and personal or carries a catchphrase."""
    return len(text or "") > min_chars and ("personal" in set(intent_tags) or len(catchphrases) > 0)


def merge_catchphrases(existing: Sequence[str], new: Sequence[str], cap: int) -> List[str]:
    merged: List[str] = []
    seen = set()
    for phrase in list(existing) + list(new):
        if phrase in seen:
            continue
        seen.add(phrase)
        merged.append(phrase)
    return merged[:cap]


class VoiceProfileAggregator:

    def __init__(self, config: VoiceEngineConfig = DEFAULT_CONFIG):
        self.config = config

    def merge(
        self,
        existing_profile: Optional[Dict[str, Any]],
        existing_catchphrases: Optional[Sequence[str]],
        features: VoiceFeatures,
        eligible: bool,
    ) -> VoiceProfileUpdate:
        profile = dict(existing_profile or {})
        catchphrases = list(existing_catchphrases or [])

        if not eligible:
            return VoiceProfileUpdate(merged=False, voice_profile=profile, catchphrases=catchphrases)

        sample = features.to_dict()
        samples_processed = int(profile.get("samples_processed") or 0) + 1
        updated_profile = {**profile, **sample, "samples_processed": samples_processed}
        updated_catchphrases = merge_catchphrases(
            catchphrases, features.catchphrases, self.config.catchphrase_cap
        )

        delta = {
            key: value
            for key, value in updated_profile.items()
            if profile.get(key) != value
        }
        if updated_catchphrases != catchphrases:
            delta["coach_catchphrases"] = updated_catchphrases

        return VoiceProfileUpdate(
            merged=True,
            voice_profile=updated_profile,
            catchphrases=updated_catchphrases,
            delta=delta,
        )
