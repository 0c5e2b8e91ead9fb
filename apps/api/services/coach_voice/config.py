"""
Voice engine configuration.

Thresholds and limits for the voice pipeline, injected into each component
at construction instead of being read from module globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.config import Settings, settings as app_settings


@dataclass(frozen=True)
class VoiceEngineConfig:
    similarity_threshold: float = 0.7
    retrieval_limit: int = 3
    max_structured_attempts: int = 3
    catchphrase_cap: int = 10
    conversation_retention: int = 50
    prompt_conversation_turns: int = 4
    exemplar_limit: int = 3
    exemplar_chars: int = 200
    prompt_catchphrases: int = 3
    sms_character_budget: int = 160
    reply_max_tokens: int = 150
    reply_temperature: float = 0.8
    preference_max_tokens: int = 400
    preference_temperature: float = 0.7
    min_content_chars: int = 10
    voice_sample_min_chars: int = 100

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "VoiceEngineConfig":
        s = source or app_settings
        return cls(
            similarity_threshold=s.RETRIEVAL_SIMILARITY_THRESHOLD,
            retrieval_limit=s.RETRIEVAL_LIMIT,
            max_structured_attempts=s.STRUCTURED_MAX_ATTEMPTS,
            catchphrase_cap=s.CATCHPHRASE_CAP,
            conversation_retention=s.CONVERSATION_RETENTION,
            prompt_conversation_turns=s.CONVERSATION_PROMPT_TURNS,
            sms_character_budget=s.SMS_CHARACTER_BUDGET,
            reply_max_tokens=s.COACH_REPLY_MAX_TOKENS,
            reply_temperature=s.COACH_REPLY_TEMPERATURE,
            preference_max_tokens=s.COACH_PREFERENCE_MAX_TOKENS,
            preference_temperature=s.COACH_PREFERENCE_TEMPERATURE,
            min_content_chars=s.MIN_CONTENT_CHARS,
        )


DEFAULT_CONFIG = VoiceEngineConfig()
