"""
Coach Voice Package

Voice modeling and reply assembly for coach personas.

Modules:
- taxonomies: keyword tables, response style archetypes, inference rules
- config: VoiceEngineConfig thresholds and limits
- voice_analysis: deterministic text feature extraction
- content_tagger: intent / situation tagging
- voice_profile: voice sample eligibility and profile merging
- retrieval: per-coach semantic retrieval with degraded results
- prompt_builder: persona system prompt assembly
- preference_interpreter: structured preference decisions with retry

Usage:
    from services.coach_voice import TextFeatureExtractor, ContentTagger
    from services.coach_voice.retrieval import SemanticRetriever
"""

from .taxonomies import (
    ContentType,
    ResponseStyle,
    RESPONSE_STYLES,
    INTENT_KEYWORDS,
    SITUATION_KEYWORDS,
    EMOTIONAL_NEEDS,
    SITUATIONS,
)
from .config import (
    VoiceEngineConfig,
    DEFAULT_CONFIG,
)
from .voice_analysis import (
    TextFeatureExtractor,
    VoiceFeatures,
    text_feature_extractor,
)
from .content_tagger import (
    ContentTagger,
    ContentTags,
    content_tagger,
)
from .voice_profile import (
    VoiceProfileAggregator,
    VoiceProfileUpdate,
    is_voice_sample,
)
from .retrieval import (
    SemanticRetriever,
    RetrievalResult,
    RetrievedChunk,
)
from .prompt_builder import (
    PromptAssembler,
    PersonaSnapshot,
    detect_emotional_need,
    detect_situation,
    prompt_assembler,
)
from .preference_interpreter import (
    PreferenceInterpreter,
    PreferenceDecision,
    PreferenceResult,
    FALLBACK_DECISION,
)

__all__ = [
    # Taxonomies
    "ContentType",
    "ResponseStyle",
    "RESPONSE_STYLES",
    "INTENT_KEYWORDS",
    "SITUATION_KEYWORDS",
    "EMOTIONAL_NEEDS",
    "SITUATIONS",
    # Config
    "VoiceEngineConfig",
    "DEFAULT_CONFIG",
    # Features
    "TextFeatureExtractor",
    "VoiceFeatures",
    "text_feature_extractor",
    # Tagging
    "ContentTagger",
    "ContentTags",
    "content_tagger",
    # Voice profile
    "VoiceProfileAggregator",
    "VoiceProfileUpdate",
    "is_voice_sample",
    # Retrieval
    "SemanticRetriever",
    "RetrievalResult",
    "RetrievedChunk",
    # Prompts
    "PromptAssembler",
    "PersonaSnapshot",
    "detect_emotional_need",
    "detect_situation",
    "prompt_assembler",
    # Preferences
    "PreferenceInterpreter",
    "PreferenceDecision",
    "PreferenceResult",
    "FALLBACK_DECISION",
]
