"""
Coach Voice API Router

Endpoints for coach personas: creation, preset provisioning, content
ingestion, reply generation and SMS preference interpretation.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from core.config import settings
from core.database import get_db
from core.exceptions import APIException, BadRequestError, NotFoundError, ServiceUnavailableError, ValidationError
from models import Subscriber
from schemas import (
    CoachCreate,
    CoachPresetCreate,
    CoachResponse,
    ContentIngestResponse,
    PreferenceMessageRequest,
    PreferenceMessageResponse,
    ReplyRequest,
    ReplyResponse,
)
from services import coach_voice_service as cvs
from services.coach_profiles import create_coach, deactivate_coach, provision_coach_from_preset
from services.llm_gateway import get_completion_client, get_embedding_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/coaches", tags=["coach-voice"])


# Result error codes -> HTTP errors
_NOT_FOUND_CODES = {cvs.ERROR_COACH_NOT_FOUND}
_UNAVAILABLE_CODES = {cvs.ERROR_COMPLETION_FAILED, cvs.ERROR_STORAGE}
_VALIDATION_CODES = {cvs.ERROR_INVALID_CONTEXT, cvs.ERROR_INVALID_MESSAGE, cvs.ERROR_INVALID_CONTENT_TYPE}


def get_voice_service(db: Session = Depends(get_db)) -> cvs.CoachVoiceService:
    return cvs.CoachVoiceService(
        db,
        embedding_client=get_embedding_client(),
        completion_client=get_completion_client(),
    )


def _raise_for_result(error_code: str, error: str, resource_id: UUID) -> None:
    if error_code in _NOT_FOUND_CODES:
        raise NotFoundError("Coach", str(resource_id))
    if error_code in _UNAVAILABLE_CODES:
        raise ServiceUnavailableError(error)
    if error_code in _VALIDATION_CODES:
        raise ValidationError(error, field=error_code)
    raise BadRequestError(error, error_code=error_code.upper())


@router.post("", response_model=CoachResponse, status_code=status.HTTP_201_CREATED)
def create_coach_endpoint(payload: CoachCreate, db: Session = Depends(get_db)):
    """Create a user-authored coach persona."""
    coach = create_coach(
        db,
        name=payload.name,
        handle=payload.handle,
        primary_response_style=payload.primary_response_style,
        description=payload.description,
        secondary_response_style=payload.secondary_response_style,
        communication_traits=payload.communication_traits.model_dump(),
        catchphrases=payload.catchphrases,
        public=payload.public,
    )
    return coach


@router.post("/presets", response_model=CoachResponse, status_code=status.HTTP_201_CREATED)
def provision_preset_endpoint(payload: CoachPresetCreate, db: Session = Depends(get_db)):
    """Provision the ready-made coach for a response style."""
    return provision_coach_from_preset(db, payload.style, handle=payload.handle)


@router.delete("/{coach_id}", response_model=CoachResponse)
def deactivate_coach_endpoint(coach_id: UUID, db: Session = Depends(get_db)):
    """Soft-delete a coach (active=False)."""
    return deactivate_coach(db, coach_id)


@router.post("/{coach_id}/content", response_model=ContentIngestResponse, status_code=status.HTTP_201_CREATED)
async def upload_content_endpoint(
    coach_id: UUID,
    file: UploadFile = File(...),
    content_type: str = Form(...),
    service: cvs.CoachVoiceService = Depends(get_voice_service),
):
    """
    Upload one file of coach material.

    The file is analyzed for voice patterns, tagged, embedded and stored as a
    new content chunk.
    """
    raw_bytes = await file.read()
    if len(raw_bytes) > settings.MAX_UPLOAD_BYTES:
        raise APIException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
            error_code="FILE_TOO_LARGE",
        )

    result = service.ingest_content(coach_id, raw_bytes, file.filename or "", content_type)
    if not result.success:
        _raise_for_result(result.error_code, result.error, coach_id)

    return ContentIngestResponse(
        success=True,
        chunk_id=result.chunk_id,
        voice_sample=result.voice_sample,
        word_count=result.word_count,
        processing_status=result.processing_status,
        intent_tags=result.tags.get("intent_tags", []),
        situation_tags=result.tags.get("situation_tags", []),
        voice_profile_delta=result.voice_profile_delta,
    )


@router.post("/{coach_id}/reply", response_model=ReplyResponse)
def generate_reply_endpoint(
    coach_id: UUID,
    payload: ReplyRequest,
    service: cvs.CoachVoiceService = Depends(get_voice_service),
):
    """Generate an in-character SMS reply from a coach."""
    context = cvs.ReplyContext(
        emotional_need=payload.emotional_need,
        situation=payload.situation,
        previous_messages=[m.model_dump() for m in payload.previous_messages or []],
        subscriber_id=payload.subscriber_id,
    )
    result = service.generate_reply(coach_id, payload.user_message, context)
    if not result.success:
        _raise_for_result(result.error_code, result.error, coach_id)

    return ReplyResponse(
        success=True,
        reply_text=result.reply_text,
        emotional_need=result.emotional_need,
        situation=result.situation,
        used_chunk_ids=result.used_chunk_ids,
        retrieval_status=result.retrieval_status,
        response_length=len(result.reply_text),
    )


@router.post("/preferences/interpret", response_model=PreferenceMessageResponse)
def interpret_preference_endpoint(
    payload: PreferenceMessageRequest,
    service: cvs.CoachVoiceService = Depends(get_voice_service),
):
    """
    Interpret an SMS preference message.

    With a phone_number the decision is also applied to that subscriber.
    """
    subscriber = None
    current = None
    if payload.phone_number:
        subscriber = service.db.query(Subscriber).filter(Subscriber.phone_number == payload.phone_number).first()
        if subscriber is None:
            subscriber = Subscriber(phone_number=payload.phone_number)
            service.db.add(subscriber)
            service.db.flush()
        current = {
            "spice_level": subscriber.spice_level,
            "image_preference": subscriber.image_preference,
            "coach_style": subscriber.coach_style,
        }

    result = service.interpret_preference_message(payload.coach_id, payload.user_message, current)

    applied = {}
    if subscriber is not None and not result.used_fallback:
        applied = service.apply_preference_updates(subscriber, result)

    return PreferenceMessageResponse(
        updates=result.updates,
        reply_text=result.reply_text,
        attempts=result.attempts,
        used_fallback=result.used_fallback,
        applied={k: str(v) if isinstance(v, UUID) else v for k, v in applied.items()},
    )
