"""
Tests for voice sample eligibility and voice profile merging.
"""

import pytest

from services.coach_voice.config import VoiceEngineConfig
from services.coach_voice.voice_analysis import VoiceFeatures
from services.coach_voice.voice_profile import (
    VoiceProfileAggregator,
    is_voice_sample,
    merge_catchphrases,
)


LONG_TEXT = "x" * 101


def make_features(**overrides):
    values = dict(
        sentence_structure="short_punchy",
        punctuation_style="exclamation_heavy",
        vocabulary_level="motivational",
        typical_sentence_starters=["you got this"],
        catchphrases=["no excuses"],
        energy_level=8,
        word_count=120,
        sentence_count=12,
        avg_sentence_length=10,
    )
    values.update(overrides)
    return VoiceFeatures(**values)


class TestVoiceSampleEligibility:

    def test_long_and_personal(self):
        assert is_voice_sample(LONG_TEXT, ["personal"], [])

    def test_long_with_catchphrase(self):
        assert is_voice_sample(LONG_TEXT, ["motivation"], ["no excuses"])

    def test_exactly_100_chars_not_eligible(self):
        assert not is_voice_sample("x" * 100, ["personal"], ["no excuses"])

    def test_long_without_signal(self):
        assert not is_voice_sample(LONG_TEXT, ["motivation"], [])


class TestMergeCatchphrases:

    def test_union_preserves_prior_order(self):
        assert merge_catchphrases(["a", "b"], ["b", "c"], cap=10) == ["a", "b", "c"]

    def test_cap_keeps_oldest(self):
        existing = [f"phrase {i}" for i in range(9)]
        merged = merge_catchphrases(existing, ["new one", "new two"], cap=10)
        assert len(merged) == 10
        assert merged[-1] == "new one"


class TestVoiceProfileAggregator:

    @pytest.fixture
    def aggregator(self):
        return VoiceProfileAggregator(VoiceEngineConfig())

    def test_ineligible_sample_leaves_profile_untouched(self, aggregator):
        existing = {"sentence_structure": "long_explanatory", "samples_processed": 2}
        update = aggregator.merge(existing, ["stay hungry"], make_features(), eligible=False)
        assert update.merged is False
        assert update.voice_profile == existing
        assert update.catchphrases == ["stay hungry"]
        assert update.delta == {}

    def test_samples_processed_increments_by_one(self, aggregator):
        existing = {"sentence_structure": "long_explanatory", "samples_processed": 2}
        update = aggregator.merge(existing, [], make_features(), eligible=True)
        assert update.voice_profile["samples_processed"] == 3

    def test_descriptors_are_last_write_wins(self, aggregator):
        existing = {
            "sentence_structure": "long_explanatory",
            "vocabulary_level": "technical",
            "energy_level": 2,
            "samples_processed": 5,
        }
        update = aggregator.merge(existing, [], make_features(), eligible=True)
        assert update.voice_profile["sentence_structure"] == "short_punchy"
        assert update.voice_profile["vocabulary_level"] == "motivational"
        assert update.voice_profile["energy_level"] == 8
        assert update.delta["sentence_structure"] == "short_punchy"

    def test_unknown_existing_keys_survive(self, aggregator):
        update = aggregator.merge({"custom_note": "keep"}, [], make_features(), eligible=True)
        assert update.voice_profile["custom_note"] == "keep"
        assert update.voice_profile["samples_processed"] == 1

    def test_catchphrases_capped_and_unique(self, aggregator):
        existing = [f"phrase {i}" for i in range(9)] + ["no excuses"]
        features = make_features(catchphrases=["no excuses", "stay hungry", "trust it"])
        update = aggregator.merge({"samples_processed": 2}, existing, features, eligible=True)
        assert update.voice_profile["samples_processed"] == 3
        assert len(update.catchphrases) <= 10
        assert len(update.catchphrases) == len(set(update.catchphrases))
        assert update.catchphrases == existing

    def test_new_catchphrases_reported_in_delta(self, aggregator):
        update = aggregator.merge({}, ["a phrase"], make_features(), eligible=True)
        assert update.catchphrases == ["a phrase", "no excuses"]
        assert update.delta["coach_catchphrases"] == ["a phrase", "no excuses"]

    def test_empty_profile(self, aggregator):
        update = aggregator.merge(None, None, make_features(), eligible=True)
        assert update.merged
        assert update.voice_profile["samples_processed"] == 1
        assert update.voice_profile["catchphrases"] == ["no excuses"]

    def test_custom_cap(self):
        aggregator = VoiceProfileAggregator(VoiceEngineConfig(catchphrase_cap=2))
        features = make_features(catchphrases=["one more", "two more", "three more"])
        update = aggregator.merge({}, [], features, eligible=True)
        assert update.catchphrases == ["one more", "two more"]
