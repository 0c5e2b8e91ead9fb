"""
Tests for the structured preference interpreter.

Covers schema validation of flag/value pairs, JSON extraction from model
output, and the bounded retry loop with its fallback.
"""

import json
import pytest
from unittest.mock import MagicMock
from pydantic import ValidationError

from services.coach_voice.config import VoiceEngineConfig
from services.coach_voice.preference_interpreter import (
    CORRECTION_TEMPLATE,
    FALLBACK_DECISION,
    FALLBACK_REPLY,
    PreferenceDecision,
    PreferenceInterpreter,
    parse_json_object,
)
from services.coach_voice.prompt_builder import PersonaSnapshot


def decision_payload(**overrides):
    payload = {
        "should_update_spice": False,
        "spice_level": None,
        "should_update_image_preference": False,
        "image_preference": None,
        "should_update_coach_style": False,
        "coach_style": None,
        "should_update_custom_coach": False,
        "custom_coach_handle": None,
        "reply_text": "Got it!",
    }
    payload.update(overrides)
    return payload


VALID_SPICE_JSON = json.dumps(decision_payload(
    should_update_spice=True, spice_level=4, reply_text="Drill sergeant mode: ON"
))


class TestPreferenceDecision:

    def test_no_updates(self):
        decision = PreferenceDecision.model_validate(decision_payload())
        assert decision.updates() == {}

    def test_spice_update(self):
        decision = PreferenceDecision.model_validate(
            decision_payload(should_update_spice=True, spice_level=5)
        )
        assert decision.updates() == {"spice_level": 5}

    @pytest.mark.parametrize("level", [0, 6, -1])
    def test_spice_out_of_range(self, level):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            PreferenceDecision.model_validate(
                decision_payload(should_update_spice=True, spice_level=level)
            )

    def test_flag_true_requires_value(self):
        with pytest.raises(ValidationError, match="image_preference is required"):
            PreferenceDecision.model_validate(decision_payload(should_update_image_preference=True))

    def test_blank_value_counts_as_missing(self):
        with pytest.raises(ValidationError, match="image_preference is required"):
            PreferenceDecision.model_validate(
                decision_payload(should_update_image_preference=True, image_preference="  ")
            )

    def test_flag_false_forbids_value(self):
        with pytest.raises(ValidationError, match="spice_level must be null"):
            PreferenceDecision.model_validate(decision_payload(spice_level=3))

    def test_coach_style_must_be_archetype(self):
        with pytest.raises(ValidationError, match="coach_style must be one of"):
            PreferenceDecision.model_validate(
                decision_payload(should_update_coach_style=True, coach_style="drill_sergeant")
            )

    def test_coach_style_update(self):
        decision = PreferenceDecision.model_validate(
            decision_payload(should_update_coach_style=True, coach_style="cheerleader")
        )
        assert decision.updates() == {"coach_style": "cheerleader"}

    def test_custom_coach_handle_normalized(self):
        decision = PreferenceDecision.model_validate(
            decision_payload(should_update_custom_coach=True, custom_coach_handle="@coach-mike")
        )
        assert decision.updates() == {"custom_coach_handle": "coach-mike"}

    def test_custom_coach_handle_with_spaces_rejected(self):
        with pytest.raises(ValidationError, match="single handle"):
            PreferenceDecision.model_validate(
                decision_payload(should_update_custom_coach=True, custom_coach_handle="coach mike")
            )

    def test_reply_text_required(self):
        with pytest.raises(ValidationError):
            PreferenceDecision.model_validate(decision_payload(reply_text=""))

    def test_missing_flag_rejected(self):
        payload = decision_payload()
        del payload["should_update_spice"]
        with pytest.raises(ValidationError):
            PreferenceDecision.model_validate(payload)

    def test_multiple_updates(self):
        decision = PreferenceDecision.model_validate(decision_payload(
            should_update_spice=True,
            spice_level=2,
            should_update_image_preference=True,
            image_preference="older runners",
        ))
        assert decision.updates() == {"spice_level": 2, "image_preference": "older runners"}


class TestParseJsonObject:

    def test_plain_json(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_code_fenced_json(self):
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_json_embedded_in_prose(self):
        assert parse_json_object('Sure! Here you go: {"a": 1} Enjoy.') == {"a": 1}

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2]"])
    def test_rejects_non_objects(self, raw):
        with pytest.raises(ValueError):
            parse_json_object(raw)


class TestRetryLoop:

    @pytest.fixture
    def completion(self):
        return MagicMock()

    def test_first_attempt_success(self, completion):
        completion.complete.return_value = VALID_SPICE_JSON
        result = PreferenceInterpreter(completion).interpret("make it level 4")

        assert result.attempts == 1
        assert not result.used_fallback
        assert result.updates == {"spice_level": 4}
        assert result.reply_text == "Drill sergeant mode: ON"
        assert completion.complete.call_count == 1

    def test_invalid_twice_then_valid(self, completion):
        completion.complete.side_effect = ["not json", '{"broken": ', VALID_SPICE_JSON]
        result = PreferenceInterpreter(completion).interpret("level 4 please")

        assert result.attempts == 3
        assert not result.used_fallback
        assert result.updates == {"spice_level": 4}
        assert len(result.errors) == 2
        assert completion.complete.call_count == 3

    def test_retry_prompt_carries_previous_error(self, completion):
        invalid = json.dumps(decision_payload(should_update_spice=True, spice_level=9))
        completion.complete.side_effect = [invalid, VALID_SPICE_JSON]
        PreferenceInterpreter(completion).interpret("level 9!!")

        first_prompt = completion.complete.call_args_list[0][0][0]
        second_prompt = completion.complete.call_args_list[1][0][0]
        prefix = CORRECTION_TEMPLATE.split("{error}")[0]
        assert prefix not in first_prompt
        assert prefix in second_prompt
        assert "between 1 and 5" in second_prompt

    def test_always_invalid_returns_fallback_after_three(self, completion):
        completion.complete.return_value = "I'm not JSON"
        result = PreferenceInterpreter(completion).interpret("whatever")

        assert result.used_fallback
        assert result.attempts == 3
        assert completion.complete.call_count == 3
        assert result.updates == {}
        assert result.reply_text == FALLBACK_REPLY
        assert result.decision == FALLBACK_DECISION
        assert len(result.errors) == 3

    def test_upstream_exceptions_count_as_attempts(self, completion):
        completion.complete.side_effect = RuntimeError("timeout")
        result = PreferenceInterpreter(completion).interpret("level 3")

        assert result.used_fallback
        assert completion.complete.call_count == 3
        assert all("timeout" in e for e in result.errors)

    def test_configured_attempts(self, completion):
        completion.complete.return_value = "nope"
        config = VoiceEngineConfig(max_structured_attempts=5)
        result = PreferenceInterpreter(completion, config).interpret("hi")
        assert result.attempts == 5
        assert completion.complete.call_count == 5

    def test_completion_arguments(self, completion):
        completion.complete.return_value = VALID_SPICE_JSON
        PreferenceInterpreter(completion).interpret("level 4")
        _, user_message, max_tokens, temperature = completion.complete.call_args[0]
        assert user_message == "User's message: level 4"
        assert max_tokens == 400
        assert temperature == 0.7


class TestPreferencePrompt:

    def test_persona_and_current_preferences_rendered(self):
        persona = PersonaSnapshot(name="Coach Mike", primary_response_style="tough_love")
        prompt = PreferenceInterpreter(MagicMock()).build_prompt(
            persona, {"spice_level": 2, "image_preference": None}
        )
        assert "You are replying as Coach Mike." in prompt
        assert "Your coaching style: tough_love." in prompt
        assert "current preferences: spice_level=2." in prompt
        assert "4: drill sergeant" in prompt
        assert '"custom_coach_handle"' in prompt

    def test_prompt_without_persona(self):
        prompt = PreferenceInterpreter(MagicMock()).build_prompt()
        assert prompt.startswith("You process SMS messages")
