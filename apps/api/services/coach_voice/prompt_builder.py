"""
Prompt Assembler

Renders the system prompt a coach persona replies with. The output is a
deterministic function of:
- the persona (archetype, communication traits, voice profile, catchphrases)
- the inferred or supplied emotional need and situation
- up to N retrieved exemplar snippets
- the last few conversation turns

Emotional need and situation inference use ordered substring rules; the
first rule with a matching keyword wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, VoiceEngineConfig
from .taxonomies import (
    DEFAULT_EMOTIONAL_NEED,
    DEFAULT_RESPONSE_STYLE,
    DEFAULT_SITUATION,
    EMOTIONAL_NEED_RULES,
    RESPONSE_STYLES,
    SITUATION_RULES,
)


DEFAULT_TRAIT_VALUE = 5

Rules = Sequence[Tuple[str, Sequence[str]]]


@dataclass
class PersonaSnapshot:
    """Read-only view of a coach persona, detached from the ORM session."""
    name: str
    handle: Optional[str] = None
    description: Optional[str] = None
    primary_response_style: Optional[str] = None
    secondary_response_style: Optional[str] = None
    communication_traits: Dict[str, Any] = field(default_factory=dict)
    voice_profile: Dict[str, Any] = field(default_factory=dict)
    catchphrases: List[str] = field(default_factory=list)

    @classmethod
    def from_coach(cls, coach: Any) -> "PersonaSnapshot":
        return cls(
            name=coach.name,
            handle=getattr(coach, "handle", None),
            description=coach.description,
            primary_response_style=coach.primary_response_style,
            secondary_response_style=getattr(coach, "secondary_response_style", None),
            communication_traits=dict(coach.communication_traits or {}),
            voice_profile=dict(coach.voice_profile or {}),
            catchphrases=list(coach.catchphrases or []),
        )


def infer_by_rules(message: str, rules: Rules, default: str) -> str:
    lowered = (message or "").lower()
    for label, keywords in rules:
        if any(keyword in lowered for keyword in keywords):
            return label
    return default


def detect_emotional_need(message: str, rules: Rules = EMOTIONAL_NEED_RULES) -> str:
    return infer_by_rules(message, rules, DEFAULT_EMOTIONAL_NEED)


def detect_situation(message: str, rules: Rules = SITUATION_RULES) -> str:
    return infer_by_rules(message, rules, DEFAULT_SITUATION)


def _trait(traits: Mapping[str, Any], name: str) -> int:
    value = traits.get(name)
    try:
        return int(value) if value is not None else DEFAULT_TRAIT_VALUE
    except (TypeError, ValueError):
        return DEFAULT_TRAIT_VALUE


def band(value: int, high: str, moderate: str, low: str) -> str:
    if value > 7:
        return high
    if value >= 4:
        return moderate
    return low


def energy_band(value: int) -> str:
    return band(value, "high energy", "moderate energy", "calm")


def directness_band(value: int) -> str:
    return band(value, "very direct", "moderately direct", "gentle")


def formality_band(value: int) -> str:
    return band(value, "formal", "conversational", "casual")


def emotion_focus_band(value: int) -> str:
    if value > 6:
        return "emotion-focused"
    if value < 4:
        return "logic-focused"
    return "balanced"


def _turn_field(turn: Any, name: str) -> str:
    if isinstance(turn, Mapping):
        return str(turn.get(name) or "")
    return str(getattr(turn, name, "") or "")


class PromptAssembler:

    def __init__(
        self,
        response_styles: Mapping[str, Mapping[str, Any]] = RESPONSE_STYLES,
        emotional_need_rules: Rules = EMOTIONAL_NEED_RULES,
        situation_rules: Rules = SITUATION_RULES,
        config: VoiceEngineConfig = DEFAULT_CONFIG,
    ):
        self.response_styles = response_styles
        self.emotional_need_rules = emotional_need_rules
        self.situation_rules = situation_rules
        self.config = config

    def resolve_style(self, style: Optional[str]) -> Tuple[str, Mapping[str, Any]]:
        if style and style in self.response_styles:
            return style, self.response_styles[style]
        return DEFAULT_RESPONSE_STYLE, self.response_styles[DEFAULT_RESPONSE_STYLE]

    def infer_context(
        self,
        message: str,
        emotional_need: Optional[str] = None,
        situation: Optional[str] = None,
    ) -> Tuple[str, str]:
        need = emotional_need or infer_by_rules(
            message, self.emotional_need_rules, DEFAULT_EMOTIONAL_NEED
        )
        where = situation or infer_by_rules(message, self.situation_rules, DEFAULT_SITUATION)
        return need, where

    def voice_description(self, persona: PersonaSnapshot) -> str:
        traits = persona.communication_traits or {}
        voice = persona.voice_profile or {}
        energy = _trait(traits, "energy_level")
        directness = _trait(traits, "directness")
        formality = _trait(traits, "formality")
        emotion_focus = _trait(traits, "emotion_focus")
        return "\n".join([
            f"Energy Level: {energy}/10 ({energy_band(energy)})",
            f"Directness: {directness}/10 ({directness_band(directness)})",
            f"Formality: {formality}/10 ({formality_band(formality)})",
            f"Approach: {emotion_focus_band(emotion_focus)}",
            f"Sentence Structure: {voice.get('sentence_structure') or 'mixed_varied'}",
            f"Vocabulary: {voice.get('vocabulary_level') or 'professional'}",
        ])

    def exemplar_block(self, persona: PersonaSnapshot, exemplars: Sequence[Any]) -> str:
        snippets = []
        for item in list(exemplars)[: self.config.exemplar_limit]:
            content = item if isinstance(item, str) else getattr(item, "content", "")
            snippets.append(f"- {content[: self.config.exemplar_chars]}...")
        if not snippets:
            return ""
        return f"\n\nRelevant examples from {persona.name}'s content:\n" + "\n".join(snippets)

    def conversation_block(self, turns: Sequence[Any]) -> str:
        window = self.config.prompt_conversation_turns
        recent = list(turns or [])[-window:] if window > 0 else []
        if not recent:
            return ""
        lines = [
            f"{'User' if _turn_field(t, 'role') == 'user' else 'Coach'}: {_turn_field(t, 'content')}"
            for t in recent
        ]
        return "Previous conversation context:\n" + "\n".join(lines)

    def build_reply_prompt(
        self,
        persona: PersonaSnapshot,
        user_message: str,
        emotional_need: Optional[str] = None,
        situation: Optional[str] = None,
        exemplars: Sequence[Any] = (),
        turns: Sequence[Any] = (),
    ) -> str:
        style_name, style = self.resolve_style(persona.primary_response_style)
        need, where = self.infer_context(user_message, emotional_need, situation)
        energy = _trait(persona.communication_traits or {}, "energy_level")
        directness = _trait(persona.communication_traits or {}, "directness")
        budget = self.config.sms_character_budget

        top_phrases = list(persona.catchphrases or [])[: self.config.prompt_catchphrases]
        catchphrase_line = f"\nKnown catchphrases: {', '.join(top_phrases)}" if top_phrases else ""

        instructions = [
            f"1. Respond as {persona.name} in your authentic voice and style",
            f"2. Address the user's {need} need appropriately",
            f"3. Keep responses conversational and under {budget} characters for SMS",
            f"4. Match your energy level ({energy}/10) and directness ({directness}/10)",
            "5. Use your typical response patterns when appropriate",
            "6. Be helpful while staying true to your personality and never break character",
        ]
        if top_phrases:
            instructions.append("7. Naturally incorporate your catchphrases when fitting")

        sections = [
            f"You are {persona.name}, an AI fitness coach with the following characteristics:",
            f"CORE PERSONALITY: {style['personality']}",
            "\n".join([
                f"RESPONSE STYLE: {style_name}",
                f"- Tone: {style['tone']}",
                f"- Typical patterns: {'; '.join(style['patterns'])}",
            ]),
            f"VOICE CHARACTERISTICS:\n{self.voice_description(persona)}{catchphrase_line}",
            "\n".join([
                "CONTEXT:",
                f"- User's emotional need: {need}",
                f"- User's situation: {where}",
                f"- Your description: {persona.description or 'Not provided'}"
                + self.exemplar_block(persona, exemplars),
            ]),
            "INSTRUCTIONS:\n" + "\n".join(instructions),
        ]
        conversation = self.conversation_block(turns)
        if conversation:
            sections.append(conversation)
        sections.append(f'Respond to this user message: "{user_message}"')
        return "\n\n".join(sections)


prompt_assembler = PromptAssembler()
