"""
Coach Profiles

Creating, provisioning and retiring coach personas.

- create_coach: validated user-authored persona
- provision_coach_from_preset: one ready-made persona per response style
- deactivate_coach: soft delete (active=False)
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, ValidationError
from models import Coach
from services.coach_voice.config import DEFAULT_CONFIG
from services.coach_voice.taxonomies import RESPONSE_STYLES, ResponseStyle
from services.coach_voice.voice_profile import merge_catchphrases

logger = logging.getLogger(__name__)


TRAIT_NAMES = ("energy_level", "directness", "formality", "emotion_focus")
TRAIT_MIN = 1
TRAIT_MAX = 10
DEFAULT_TRAITS = {name: 5 for name in TRAIT_NAMES}

HANDLE_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{1,63}$")


COACH_PRESETS: Dict[str, Dict[str, Any]] = {
    ResponseStyle.TOUGH_LOVE.value: {
        "name": "Tough Love Coach",
        "handle": "tough-love",
        "description": "A no-nonsense coach who pushes you to your limits",
        "communication_traits": {"energy_level": 8, "directness": 9, "formality": 4, "emotion_focus": 3},
        "catchphrases": ["No excuses!", "Push through the pain!", "Champions are made in moments like this!"],
    },
    ResponseStyle.EMPATHETIC_MIRROR.value: {
        "name": "Empathetic Coach",
        "handle": "empathetic",
        "description": "A caring coach who understands your struggles",
        "communication_traits": {"energy_level": 6, "directness": 4, "formality": 4, "emotion_focus": 9},
        "catchphrases": ["I understand how you feel", "You're not alone in this", "Let's work through this together"],
    },
    ResponseStyle.REFRAME_MASTER.value: {
        "name": "Reframe Coach",
        "handle": "reframe",
        "description": "An optimist who turns every setback into a setup",
        "communication_traits": {"energy_level": 7, "directness": 5, "formality": 4, "emotion_focus": 6},
        "catchphrases": ["Every setback is a setup", "Look at it this way"],
    },
    ResponseStyle.DATA_DRIVEN.value: {
        "name": "Data Coach",
        "handle": "data-coach",
        "description": "A coach who uses facts and research to motivate",
        "communication_traits": {"energy_level": 5, "directness": 7, "formality": 7, "emotion_focus": 3},
        "catchphrases": ["Studies show that...", "The data indicates...", "Research proves..."],
    },
    ResponseStyle.STORY_TELLER.value: {
        "name": "Storyteller Coach",
        "handle": "storyteller",
        "description": "A coach who motivates with stories from the trenches",
        "communication_traits": {"energy_level": 5, "directness": 4, "formality": 3, "emotion_focus": 7},
        "catchphrases": ["Let me tell you about", "I remember when I"],
    },
    ResponseStyle.CHEERLEADER.value: {
        "name": "Cheerleader Coach",
        "handle": "cheerleader",
        "description": "Your loudest fan, celebrating every rep",
        "communication_traits": {"energy_level": 10, "directness": 5, "formality": 2, "emotion_focus": 8},
        "catchphrases": ["YES! You've got this!", "I'm SO proud of you!"],
    },
    ResponseStyle.WISE_MENTOR.value: {
        "name": "Wise Mentor",
        "handle": "wise-mentor",
        "description": "A calm guide focused on the long game",
        "communication_traits": {"energy_level": 3, "directness": 5, "formality": 6, "emotion_focus": 5},
        "catchphrases": ["True growth comes from consistency", "Trust the process"],
    },
}


def normalize_handle(handle: str) -> str:
    return (handle or "").strip().lstrip("@").lower()


def validate_traits(traits: Optional[Mapping[str, Any]]) -> Dict[str, int]:
    """Fill missing traits with 5 and reject unknown names or out-of-range values."""
    traits = dict(traits or {})
    unknown = set(traits) - set(TRAIT_NAMES)
    if unknown:
        raise ValidationError(f"Unknown communication traits: {', '.join(sorted(unknown))}", field="communication_traits")

    validated = dict(DEFAULT_TRAITS)
    for name, value in traits.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer", field="communication_traits")
        if not TRAIT_MIN <= value <= TRAIT_MAX:
            raise ValidationError(
                f"{name} must be between {TRAIT_MIN} and {TRAIT_MAX}",
                field="communication_traits",
            )
        validated[name] = value
    return validated


def validate_style(style: Optional[str], field: str, required: bool = True) -> Optional[str]:
    if style is None and not required:
        return None
    if style not in RESPONSE_STYLES:
        raise ValidationError(
            f"{field} must be one of: {', '.join(RESPONSE_STYLES)}",
            field=field,
        )
    return style


def create_coach(
    db: Session,
    name: str,
    handle: str,
    primary_response_style: str,
    description: Optional[str] = None,
    secondary_response_style: Optional[str] = None,
    communication_traits: Optional[Mapping[str, Any]] = None,
    catchphrases: Optional[Sequence[str]] = None,
    public: bool = False,
    is_preset: bool = False,
) -> Coach:
    if not name or not name.strip():
        raise ValidationError("Coach name is required", field="name")

    handle = normalize_handle(handle)
    if not HANDLE_RE.match(handle):
        raise ValidationError(
            "Handle must be 2-64 characters of lowercase letters, digits, '-' or '_'",
            field="handle",
        )
    if db.query(Coach).filter(Coach.handle == handle).first() is not None:
        raise ConflictError(f"Coach handle already taken: {handle}")

    phrases: List[str] = merge_catchphrases(
        [p.strip() for p in (catchphrases or []) if p and p.strip()],
        [],
        DEFAULT_CONFIG.catchphrase_cap,
    )

    coach = Coach(
        name=name.strip(),
        handle=handle,
        description=description,
        primary_response_style=validate_style(primary_response_style, "primary_response_style"),
        secondary_response_style=validate_style(
            secondary_response_style, "secondary_response_style", required=False
        ),
        communication_traits=validate_traits(communication_traits),
        voice_profile={},
        catchphrases=phrases,
        public=public,
        is_preset=is_preset,
        active=True,
        processing_status="pending",
    )
    db.add(coach)
    db.flush()

    logger.info(
        f"Created coach {coach.handle} ({coach.primary_response_style})",
        extra={"extra_fields": {"coach_id": str(coach.id), "handle": coach.handle}},
    )
    return coach


def provision_coach_from_preset(db: Session, style: str, handle: Optional[str] = None) -> Coach:
    """Create (or return the existing) preset coach for a response style."""
    preset = COACH_PRESETS.get(style)
    if preset is None:
        raise NotFoundError("Coach preset", style)

    target_handle = normalize_handle(handle or preset["handle"])
    existing = db.query(Coach).filter(Coach.handle == target_handle).first()
    if existing is not None and existing.is_preset and existing.primary_response_style == style:
        return existing

    return create_coach(
        db,
        name=preset["name"],
        handle=target_handle,
        primary_response_style=style,
        description=preset["description"],
        communication_traits=preset["communication_traits"],
        catchphrases=preset["catchphrases"],
        public=True,
        is_preset=True,
    )


def deactivate_coach(db: Session, coach_id: UUID) -> Coach:
    coach = db.query(Coach).filter(Coach.id == coach_id).first()
    if coach is None:
        raise NotFoundError("Coach", str(coach_id))
    if coach.active:
        coach.active = False
        db.flush()
        logger.info(f"Deactivated coach {coach.handle}")
    return coach
