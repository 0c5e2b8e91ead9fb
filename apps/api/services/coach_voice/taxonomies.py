"""
Coach Voice Taxonomies

Fixed keyword and archetype tables used by the voice pipeline.
Everything here is plain data; the matching code lives in the tagger,
the feature extractor and the prompt assembler, which take these tables
as constructor arguments.

Tables:
- INTENT_KEYWORDS / SITUATION_KEYWORDS: content tagging categories
- CONTENT_TYPE_INTENT_TAGS: extra intent tag implied by a content type
- CASUAL/TECHNICAL/MOTIVATIONAL_VOCABULARY: vocabulary level keyword sets
- ENERGY_INDICATORS: substrings scored for energy level
- RESPONSE_STYLES: the seven coaching archetypes
- EMOTIONAL_NEED_RULES / SITUATION_RULES: ordered inference rules for replies
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class ContentType(str, Enum):
    """Kinds of coach material accepted for ingestion."""
    INSTAGRAM_POST = "instagram_post"
    VIDEO_TRANSCRIPT = "video_transcript"
    PODCAST_TRANSCRIPT = "podcast_transcript"
    WRITTEN_CONTENT = "written_content"
    SOCIAL_MEDIA_COMMENT = "social_media_comment"
    BLOG_POST = "blog_post"


class ResponseStyle(str, Enum):
    """Coaching archetypes a persona can be built on."""
    TOUGH_LOVE = "tough_love"
    EMPATHETIC_MIRROR = "empathetic_mirror"
    REFRAME_MASTER = "reframe_master"
    DATA_DRIVEN = "data_driven"
    STORY_TELLER = "story_teller"
    CHEERLEADER = "cheerleader"
    WISE_MENTOR = "wise_mentor"


DEFAULT_RESPONSE_STYLE = ResponseStyle.EMPATHETIC_MIRROR.value

EMOTIONAL_NEEDS = (
    "encouragement",
    "commiseration",
    "pity",
    "celebration",
    "advice",
    "accountability",
    "check_in",
)

SITUATIONS = (
    "pre_workout",
    "post_workout",
    "struggling",
    "plateau",
    "beginner",
    "advanced",
    "injury_recovery",
)

DEFAULT_EMOTIONAL_NEED = "encouragement"
DEFAULT_SITUATION = "general"


# =============================================================================
# CONTENT TAGGING
# =============================================================================

INTENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "motivation": ("motivate", "inspire", "push", "encourage", "believe", "achieve", "goals"),
    "advice": ("should", "recommend", "suggest", "try", "consider", "remember", "tip", "advice"),
    "celebration": (
        "congratulations",
        "amazing",
        "proud",
        "awesome",
        "incredible",
        "great job",
        "well done",
    ),
    "education": ("learn", "understand", "explain", "because", "research", "study", "fact"),
    "personal": (
        "i feel",
        "my experience",
        "when i",
        "i remember",
        "i struggled",
        "i learned",
    ),
    "challenge": (
        "challenge",
        "difficult",
        "hard",
        "struggle",
        "obstacle",
        "overcome",
        "push through",
    ),
}

SITUATION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "pre_workout": ("before workout", "pre workout", "getting ready", "preparation"),
    "post_workout": ("after workout", "post workout", "finished", "completed"),
    "struggling": ("struggling", "difficult", "hard time", "can't do", "giving up"),
    "plateau": ("plateau", "stuck", "same weight", "not progressing", "no progress"),
    "beginner": ("new to", "starting out", "first time", "beginner", "just started"),
    "advanced": ("advanced", "experienced", "years of", "expert level"),
    "injury_recovery": ("injury", "recovering", "healing", "hurt", "pain", "rehab"),
}

CONTENT_TYPE_INTENT_TAGS: Dict[str, str] = {
    ContentType.INSTAGRAM_POST.value: "social_media",
    ContentType.VIDEO_TRANSCRIPT.value: "visual_content",
    ContentType.PODCAST_TRANSCRIPT.value: "audio_content",
}


# =============================================================================
# TEXT FEATURES
# =============================================================================

CASUAL_VOCABULARY = ("gonna", "wanna", "yeah", "awesome", "cool", "super", "totally")

TECHNICAL_VOCABULARY = (
    "physiological",
    "biomechanics",
    "metabolic",
    "cardiovascular",
    "proprioception",
)

MOTIVATIONAL_VOCABULARY = (
    "achieve",
    "transform",
    "powerful",
    "unstoppable",
    "breakthrough",
    "conquer",
)

ENERGY_INDICATORS = (
    "!",
    "amazing",
    "incredible",
    "awesome",
    "fantastic",
    "yes",
    "let's",
    "come on",
)

# Emoji code-point ranges counted towards punctuation style
EMOJI_RANGES = (
    (0x1F600, 0x1F64F),  # emoticons
    (0x1F300, 0x1F5FF),  # symbols & pictographs
    (0x1F680, 0x1F6FF),  # transport & map
    (0x1F1E0, 0x1F1FF),  # flags
    (0x2600, 0x26FF),    # misc symbols
    (0x2700, 0x27BF),    # dingbats
)


# =============================================================================
# RESPONSE STYLES
# =============================================================================

RESPONSE_STYLES: Dict[str, Dict[str, object]] = {
    ResponseStyle.TOUGH_LOVE.value: {
        "personality": (
            "Direct, challenging coach who never coddles and redirects complaints "
            "into action. Uses firm but supportive language."
        ),
        "patterns": (
            "No excuses, let's focus on solutions",
            "I hear you, but what are you going to DO about it?",
            "Champions are made in moments like this",
            "Stop making excuses and start making progress",
        ),
        "tone": "firm, direct, action-oriented",
    },
    ResponseStyle.EMPATHETIC_MIRROR.value: {
        "personality": (
            "Understanding coach who validates feelings first, then motivates from "
            "a place of empathy and connection."
        ),
        "patterns": (
            "I completely understand how you're feeling",
            "That sounds really challenging, and your feelings are valid",
            "Many people go through exactly what you're experiencing",
            "Let's work through this together",
        ),
        "tone": "warm, validating, supportive",
    },
    ResponseStyle.REFRAME_MASTER.value: {
        "personality": (
            "Optimistic coach who always finds the positive angle and helps people "
            "see opportunities in challenges."
        ),
        "patterns": (
            "Here's another way to look at this situation",
            "What if this is actually an opportunity to",
            "The silver lining here is",
            "This challenge is preparing you for",
        ),
        "tone": "positive, reframing, opportunity-focused",
    },
    ResponseStyle.DATA_DRIVEN.value: {
        "personality": (
            "Evidence-based coach who uses facts, research, and metrics to support "
            "advice and motivation."
        ),
        "patterns": (
            "Studies show that",
            "The data indicates",
            "Research has proven",
            "Statistically speaking",
        ),
        "tone": "factual, evidence-based, logical",
    },
    ResponseStyle.STORY_TELLER.value: {
        "personality": (
            "Relatable coach who shares personal anecdotes and experiences to "
            "connect and motivate."
        ),
        "patterns": (
            "I remember when I",
            "This reminds me of a time when",
            "I had a client who",
            "Let me tell you about",
        ),
        "tone": "personal, narrative, experiential",
    },
    ResponseStyle.CHEERLEADER.value: {
        "personality": "High-energy, enthusiastic coach full of excitement and celebration.",
        "patterns": (
            "YES! You've got this!",
            "I'm SO proud of you!",
            "This is AMAZING progress!",
            "Keep that incredible energy going!",
        ),
        "tone": "enthusiastic, celebratory, high-energy",
    },
    ResponseStyle.WISE_MENTOR.value: {
        "personality": "Calm, thoughtful coach who provides deeper wisdom and life lessons.",
        "patterns": (
            "In my experience",
            "The deeper lesson here is",
            "True growth comes from",
            "Remember that this journey is about",
        ),
        "tone": "calm, wise, philosophical",
    },
}


# =============================================================================
# REPLY CONTEXT INFERENCE (first matching rule wins)
# =============================================================================

EMOTIONAL_NEED_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("celebration", (
        "pr",
        "personal record",
        "achieved",
        "accomplished",
        "hit my goal",
        "succeeded",
    )),
    ("commiseration", ("tired", "exhausted", "can't", "impossible", "giving up", "quit")),
    ("advice", (
        "what should",
        "how do i",
        "advice",
        "recommend",
        "help me",
        "what do you think",
    )),
    ("accountability", ("supposed to", "committed to", "promised", "accountability")),
)

SITUATION_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("pre_workout", ("before", "about to", "getting ready")),
    ("post_workout", ("finished", "completed", "just did", "after")),
    ("plateau", ("stuck", "plateau", "same weight", "not progressing")),
    ("struggling", ("struggling", "difficult", "hard time")),
    ("beginner", ("new to", "beginner", "first time", "starting")),
)
