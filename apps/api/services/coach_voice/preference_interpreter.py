"""
Structured Preference Interpreter

Turns a free-form SMS ("make it spicier, level 4 please") into a validated
PreferenceDecision plus the reply text to send back.

Protocol:
1. Prompt the completion service with the persona state and the JSON schema
2. Parse the raw reply as a JSON object
3. Validate the flag/value pairs with PreferenceDecision
4. On failure, retry with the error appended as corrective context
5. After max attempts, return FALLBACK_DECISION (all flags false)

Attempts run strictly one after another. interpret() never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError, model_validator

from .config import DEFAULT_CONFIG, VoiceEngineConfig
from .prompt_builder import PersonaSnapshot
from .taxonomies import RESPONSE_STYLES

logger = logging.getLogger(__name__)


SPICE_LEVELS = {
    1: "gentle & encouraging",
    2: "high energy gym bro",
    3: "sassy dance teacher",
    4: "drill sergeant",
    5: "toxic frat bro",
}

FALLBACK_REPLY = (
    "Sorry fam, my AI trainer is off getting their protein shake! Try that again?"
)

CORRECTION_TEMPLATE = (
    "Your last response was invalid. Please fix the following validation error "
    "and try again: {error}"
)


class CompletionCallable(Protocol):
    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str: ...


# =============================================================================
# SCHEMA
# =============================================================================

# (flag, value field) pairs; flag true requires the value, false forbids it
FLAG_VALUE_PAIRS = (
    ("should_update_spice", "spice_level"),
    ("should_update_image_preference", "image_preference"),
    ("should_update_coach_style", "coach_style"),
    ("should_update_custom_coach", "custom_coach_handle"),
)


class PreferenceDecision(BaseModel):
    """Validated structured decision for one inbound preference message."""
    should_update_spice: bool
    spice_level: Optional[int] = None
    should_update_image_preference: bool
    image_preference: Optional[str] = None
    should_update_coach_style: bool
    coach_style: Optional[str] = None
    should_update_custom_coach: bool
    custom_coach_handle: Optional[str] = None
    reply_text: str = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_pairs(self):
        for flag, value_field in FLAG_VALUE_PAIRS:
            value = getattr(self, value_field)
            if getattr(self, flag):
                if value is None or (isinstance(value, str) and not value.strip()):
                    raise ValueError(f"{value_field} is required when {flag} is true")
            elif value is not None:
                raise ValueError(f"{value_field} must be null when {flag} is false")

        if self.should_update_spice and not (1 <= self.spice_level <= 5):
            raise ValueError("spice_level must be between 1 and 5 when updating spice preference")
        if self.should_update_coach_style and self.coach_style not in RESPONSE_STYLES:
            raise ValueError(
                f"coach_style must be one of: {', '.join(RESPONSE_STYLES)}"
            )
        if self.should_update_custom_coach:
            handle = self.custom_coach_handle.strip().lstrip("@")
            if not handle or any(ch.isspace() for ch in handle):
                raise ValueError("custom_coach_handle must be a single handle without spaces")
            self.custom_coach_handle = handle
        if not self.reply_text.strip():
            raise ValueError("reply_text must not be blank")
        return self

    def updates(self) -> Dict[str, Any]:
        return {
            value_field: getattr(self, value_field)
            for flag, value_field in FLAG_VALUE_PAIRS
            if getattr(self, flag)
        }


FALLBACK_DECISION = PreferenceDecision(
    should_update_spice=False,
    should_update_image_preference=False,
    should_update_coach_style=False,
    should_update_custom_coach=False,
    reply_text=FALLBACK_REPLY,
)


@dataclass
class PreferenceResult:
    decision: PreferenceDecision
    attempts: int
    used_fallback: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def updates(self) -> Dict[str, Any]:
        return self.decision.updates()

    @property
    def reply_text(self) -> str:
        return self.decision.reply_text


# =============================================================================
# PARSING
# =============================================================================

def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def parse_json_object(raw: str) -> Dict[str, Any]:
    """
    Extract the first JSON object from model output.

    Tries the whole reply first, then the outermost {...} block.
    Raises ValueError when there is no object to be found.
    """
    if not raw or not raw.strip():
        raise ValueError("Empty model response")
    text = _strip_code_fences(raw)

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ValueError("No JSON object found in model response")
    parsed = json.loads(text[start:end + 1])
    if not isinstance(parsed, dict):
        raise ValueError("Model response JSON is not an object")
    return parsed


def _describe_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return json.dumps(
            [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in error.errors()],
            indent=2,
            default=str,
        )
    return str(error)


# =============================================================================
# INTERPRETER
# =============================================================================

class PreferenceInterpreter:

    def __init__(
        self,
        completion_client: CompletionCallable,
        config: VoiceEngineConfig = DEFAULT_CONFIG,
    ):
        self.completion_client = completion_client
        self.config = config

    def build_prompt(
        self,
        persona: Optional[PersonaSnapshot] = None,
        current_preferences: Optional[Mapping[str, Any]] = None,
    ) -> str:
        spice_lines = "\n".join(f"{level}: {label}" for level, label in SPICE_LEVELS.items())
        styles = ", ".join(RESPONSE_STYLES)

        persona_lines = []
        if persona is not None:
            persona_lines.append(f"You are replying as {persona.name}.")
            if persona.primary_response_style:
                persona_lines.append(f"Your coaching style: {persona.primary_response_style}.")
            if persona.description:
                persona_lines.append(f"About you: {persona.description}")
        if current_preferences:
            current = ", ".join(
                f"{key}={value}" for key, value in current_preferences.items() if value is not None
            )
            if current:
                persona_lines.append(f"The subscriber's current preferences: {current}.")
        persona_block = ("\n".join(persona_lines) + "\n\n") if persona_lines else ""

        return f"""{persona_block}You process SMS messages from subscribers of a fitness motivation service. A message may change any of these preferences:

1. Spice level for workout motivation messages:
{spice_lines}

2. Image preference: what kind of people they want to see in motivation pictures.

3. Coach style, one of: {styles}

4. Custom coach: switch to a specific coach by handle (e.g. "@coachmike").

Respond with ONLY a JSON object in this exact format:
{{
  "should_update_spice": boolean,
  "spice_level": integer 1-5 or null (required only when should_update_spice is true),
  "should_update_image_preference": boolean,
  "image_preference": string or null (required only when should_update_image_preference is true),
  "should_update_coach_style": boolean,
  "coach_style": string or null (required only when should_update_coach_style is true),
  "should_update_custom_coach": boolean,
  "custom_coach_handle": string or null (required only when should_update_custom_coach is true),
  "reply_text": string
}}

Every value whose flag is false MUST be null. Confirm each change in reply_text.
For any other message set every flag to false and reply in character.
Keep reply_text under {self.config.sms_character_budget} characters."""

    def interpret(
        self,
        user_message: str,
        persona: Optional[PersonaSnapshot] = None,
        current_preferences: Optional[Mapping[str, Any]] = None,
    ) -> PreferenceResult:
        base_prompt = self.build_prompt(persona, current_preferences)
        max_attempts = max(1, self.config.max_structured_attempts)
        errors: List[str] = []
        previous_error: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            system_prompt = base_prompt
            if previous_error is not None:
                system_prompt = (
                    f"{base_prompt}\n\n{CORRECTION_TEMPLATE.format(error=previous_error)}"
                )

            try:
                raw = self.completion_client.complete(
                    system_prompt,
                    f"User's message: {user_message}",
                    self.config.preference_max_tokens,
                    self.config.preference_temperature,
                )
                decision = PreferenceDecision.model_validate(parse_json_object(raw))
            except (ValueError, ValidationError) as e:
                previous_error = _describe_error(e)
            except Exception as e:
                # upstream failure counts as a failed attempt
                previous_error = f"completion failed: {e}"
            else:
                logger.info(
                    f"Preference message interpreted on attempt {attempt}",
                    extra={"extra_fields": {"attempt": attempt, "updates": list(decision.updates())}},
                )
                return PreferenceResult(decision=decision, attempts=attempt, errors=errors)

            errors.append(previous_error)
            logger.warning(
                f"Preference interpretation attempt {attempt}/{max_attempts} failed: {previous_error}",
                extra={"extra_fields": {"attempt": attempt, "max_attempts": max_attempts}},
            )

        logger.error(f"Preference interpretation exhausted {max_attempts} attempts, using fallback")
        return PreferenceResult(
            decision=FALLBACK_DECISION.model_copy(),
            attempts=max_attempts,
            used_fallback=True,
            errors=errors,
        )
