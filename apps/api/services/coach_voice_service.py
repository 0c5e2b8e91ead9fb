"""
Coach Voice Service

Entry points for the coach voice pipeline:

- ingest_content: uploaded file -> text -> tags, features, embedding ->
  stored chunk, and (for voice samples) an updated coach voice profile
- generate_reply: inbound message -> retrieval -> persona prompt -> reply
- interpret_preference_message: inbound SMS -> validated preference decision
- apply_preference_updates: write a decision onto a Subscriber

None of the entry points raise. Failures come back as result objects with
an error message and a machine-readable error_code.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Coach, Subscriber
from services.coach_content_store import CoachContentStore, ConversationLogStore
from services.coach_voice import (
    ContentTagger,
    ContentType,
    EMOTIONAL_NEEDS,
    PersonaSnapshot,
    PreferenceInterpreter,
    PreferenceResult,
    PromptAssembler,
    SITUATIONS,
    SemanticRetriever,
    TextFeatureExtractor,
    VoiceEngineConfig,
    VoiceProfileAggregator,
    is_voice_sample,
)
from services.llm_gateway import CompletionClient, EmbeddingClient
from services.text_extraction import TextExtractionError, extract_text

logger = logging.getLogger(__name__)


MAX_MESSAGE_CHARS = 1000


# Error codes surfaced to callers
ERROR_INVALID_CONTENT_TYPE = "invalid_content_type"
ERROR_COACH_NOT_FOUND = "coach_not_found"
ERROR_UNSUPPORTED_FILE = "unsupported_file_type"
ERROR_EXTRACTION_FAILED = "extraction_failed"
ERROR_CONTENT_TOO_SHORT = "content_too_short"
ERROR_INVALID_MESSAGE = "invalid_message"
ERROR_INVALID_CONTEXT = "invalid_context"
ERROR_COMPLETION_FAILED = "completion_failed"
ERROR_STORAGE = "storage_error"


@dataclass
class IngestResult:
    success: bool
    chunk_id: Optional[UUID] = None
    voice_profile_delta: Dict[str, Any] = field(default_factory=dict)
    tags: Dict[str, List[str]] = field(default_factory=dict)
    voice_sample: bool = False
    word_count: int = 0
    processing_status: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class ReplyResult:
    success: bool
    reply_text: Optional[str] = None
    emotional_need: Optional[str] = None
    situation: Optional[str] = None
    used_chunk_ids: List[UUID] = field(default_factory=list)
    retrieval_status: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class ReplyContext:
    """Optional caller-supplied context for generate_reply."""
    emotional_need: Optional[str] = None
    situation: Optional[str] = None
    # [{"role": "user"|"assistant", "content": str}, ...], oldest first
    previous_messages: Optional[List[Mapping[str, Any]]] = None
    subscriber_id: Optional[str] = None

    @classmethod
    def coerce(cls, value: Union["ReplyContext", Mapping[str, Any], None]) -> "ReplyContext":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls(
            emotional_need=value.get("emotional_need"),
            situation=value.get("situation"),
            previous_messages=value.get("previous_messages"),
            subscriber_id=value.get("subscriber_id"),
        )


class CoachVoiceService:
    """
    Wires the voice pipeline components to storage and the LLM gateway.

    One instance per request/session. The embedding and completion clients
    are injected so tests can pass stubs.
    """

    def __init__(
        self,
        db: Session,
        embedding_client: EmbeddingClient,
        completion_client: CompletionClient,
        config: Optional[VoiceEngineConfig] = None,
        text_extractor: Callable[[bytes, str], str] = extract_text,
    ):
        self.db = db
        self.config = config or VoiceEngineConfig.from_settings()
        self.embedding_client = embedding_client
        self.completion_client = completion_client
        self.text_extractor = text_extractor

        self.store = CoachContentStore(db)
        self.conversations = ConversationLogStore(db, retention=self.config.conversation_retention)
        self.feature_extractor = TextFeatureExtractor()
        self.tagger = ContentTagger()
        self.aggregator = VoiceProfileAggregator(self.config)
        self.retriever = SemanticRetriever(embedding_client, self.store, self.config)
        self.assembler = PromptAssembler(config=self.config)
        self.interpreter = PreferenceInterpreter(completion_client, self.config)

    # =========================================================================
    # INGESTION
    # =========================================================================

    def ingest_content(
        self,
        coach_id: UUID,
        raw_bytes: bytes,
        filename: str,
        content_type: str,
    ) -> IngestResult:
        """
        Ingest one uploaded file for a coach.

        Always creates a new chunk; existing chunks are never modified.
        An embedding failure still stores the chunk, marked embedding_failed.
        """
        valid_types = {t.value for t in ContentType}
        if content_type not in valid_types:
            return IngestResult(
                success=False,
                error=f"Invalid content type: {content_type}",
                error_code=ERROR_INVALID_CONTENT_TYPE,
            )

        try:
            coach = self.store.get_coach(coach_id, active_only=True)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load coach {coach_id} for ingestion: {e}")
            return IngestResult(success=False, error="Failed to load coach", error_code=ERROR_STORAGE)
        if coach is None:
            return IngestResult(
                success=False,
                error=f"Coach not found or inactive: {coach_id}",
                error_code=ERROR_COACH_NOT_FOUND,
            )

        try:
            text = self.text_extractor(raw_bytes, filename)
        except TextExtractionError as e:
            return IngestResult(
                success=False,
                error=str(e),
                error_code=ERROR_UNSUPPORTED_FILE if e.unsupported else ERROR_EXTRACTION_FAILED,
            )
        except Exception as e:
            logger.error(f"Unexpected extraction error for {filename}: {e}")
            return IngestResult(success=False, error=str(e), error_code=ERROR_EXTRACTION_FAILED)

        if not text or len(text.strip()) < self.config.min_content_chars:
            return IngestResult(
                success=False,
                error="No meaningful text content found in file",
                error_code=ERROR_CONTENT_TOO_SHORT,
            )

        embedding = None
        processing_status = "processed"
        try:
            embedding = self.embedding_client.embed(text)
        except Exception as e:
            processing_status = "embedding_failed"
            logger.warning(
                f"Embedding failed for {filename}, storing chunk without vector: {e}",
                extra={"extra_fields": {"coach_id": str(coach_id), "file_name": filename}},
            )

        features = self.feature_extractor.extract(text)
        tags = self.tagger.tag(text, content_type)
        voice_sample = is_voice_sample(
            text,
            tags.intent_tags,
            features.catchphrases,
            min_chars=self.config.voice_sample_min_chars,
        )

        try:
            chunk = self.store.insert_chunk({
                "coach_id": coach.id,
                "content": text,
                "content_type": content_type,
                "file_name": filename,
                "intent_tags": tags.intent_tags,
                "situation_tags": tags.situation_tags,
                "voice_sample": voice_sample,
                "sentence_structure": features.sentence_structure,
                "energy_level": features.energy_level,
                "word_count": features.word_count,
                "embedding": embedding,
                "processing_status": processing_status,
            })

            # Read-modify-write on the coach row; concurrent ingestions for the
            # same coach may overwrite each other's descriptor fields.
            update = self.aggregator.merge(
                coach.voice_profile, coach.catchphrases, features, voice_sample
            )
            coach_fields: Dict[str, Any] = {
                "total_content_pieces": self.store.count_chunks(coach.id),
                "processing_status": "ready",
            }
            if update.merged:
                coach_fields["voice_profile"] = update.voice_profile
                coach_fields["catchphrases"] = update.catchphrases
            self.store.update_coach(coach.id, coach_fields)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store content chunk for coach {coach_id}: {e}")
            return IngestResult(success=False, error="Failed to store content chunk", error_code=ERROR_STORAGE)

        logger.info(
            f"Processed content {chunk.id} for coach {coach.handle}",
            extra={"extra_fields": {
                "coach_id": str(coach.id),
                "chunk_id": str(chunk.id),
                "voice_sample": voice_sample,
                "word_count": features.word_count,
                "processing_status": processing_status,
            }},
        )

        return IngestResult(
            success=True,
            chunk_id=chunk.id,
            voice_profile_delta=update.delta,
            tags=tags.to_dict(),
            voice_sample=voice_sample,
            word_count=features.word_count,
            processing_status=processing_status,
        )

    # =========================================================================
    # REPLIES
    # =========================================================================

    def generate_reply(
        self,
        coach_id: UUID,
        user_message: str,
        context: Union[ReplyContext, Mapping[str, Any], None] = None,
    ) -> ReplyResult:
        started = time.monotonic()
        ctx = ReplyContext.coerce(context)

        if not user_message or not user_message.strip() or len(user_message) > MAX_MESSAGE_CHARS:
            return ReplyResult(
                success=False,
                error=f"Message must be between 1 and {MAX_MESSAGE_CHARS} characters",
                error_code=ERROR_INVALID_MESSAGE,
            )
        if ctx.emotional_need is not None and ctx.emotional_need not in EMOTIONAL_NEEDS:
            return ReplyResult(
                success=False,
                error=f"Unknown emotional need: {ctx.emotional_need}",
                error_code=ERROR_INVALID_CONTEXT,
            )
        if ctx.situation is not None and ctx.situation not in SITUATIONS:
            return ReplyResult(
                success=False,
                error=f"Unknown situation: {ctx.situation}",
                error_code=ERROR_INVALID_CONTEXT,
            )

        try:
            coach = self.store.get_coach(coach_id, active_only=True)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load coach {coach_id} for reply: {e}")
            return ReplyResult(success=False, error="Failed to load coach", error_code=ERROR_STORAGE)
        if coach is None:
            return ReplyResult(
                success=False,
                error="Coach not found or inactive",
                error_code=ERROR_COACH_NOT_FOUND,
            )

        turns: Sequence[Any] = ctx.previous_messages or []
        if not turns and ctx.subscriber_id:
            try:
                turns = self.conversations.get_recent_turns(
                    ctx.subscriber_id, self.config.prompt_conversation_turns
                )
            except SQLAlchemyError as e:
                logger.warning(f"Failed to load conversation for {ctx.subscriber_id}, replying without it: {e}")
                turns = []

        retrieval = self.retriever.retrieve(coach.id, user_message)
        persona = PersonaSnapshot.from_coach(coach)
        emotional_need, situation = self.assembler.infer_context(
            user_message, ctx.emotional_need, ctx.situation
        )
        prompt = self.assembler.build_reply_prompt(
            persona,
            user_message,
            emotional_need=emotional_need,
            situation=situation,
            exemplars=retrieval.chunks,
            turns=turns,
        )

        base = ReplyResult(
            success=False,
            emotional_need=emotional_need,
            situation=situation,
            used_chunk_ids=retrieval.chunk_ids,
            retrieval_status=retrieval.status,
        )

        try:
            reply_text = self.completion_client.complete(
                prompt,
                user_message,
                self.config.reply_max_tokens,
                self.config.reply_temperature,
            ).strip()
        except Exception as e:
            logger.error(
                f"Reply generation failed for coach {coach.handle}: {e}",
                extra={"extra_fields": {"coach_id": str(coach.id)}},
            )
            base.error = "Failed to generate response"
            base.error_code = ERROR_COMPLETION_FAILED
            return base

        if ctx.subscriber_id:
            self._record_conversation(coach, ctx.subscriber_id, user_message, reply_text)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._log_reply(coach, ctx.subscriber_id, user_message, reply_text, base, elapsed_ms)

        logger.info(
            f"Generated reply for coach {coach.handle}",
            extra={"extra_fields": {
                "coach_id": str(coach.id),
                "emotional_need": emotional_need,
                "situation": situation,
                "retrieval_status": retrieval.status,
                "relevant_content_count": len(retrieval.chunks),
                "response_length": len(reply_text),
                "response_time_ms": elapsed_ms,
            }},
        )

        base.success = True
        base.reply_text = reply_text
        return base

    def _record_conversation(self, coach: Coach, subscriber_id: str, user_message: str, reply_text: str) -> None:
        try:
            with self.db.begin_nested():
                self.conversations.append_turn(subscriber_id, "user", user_message, coach_id=coach.id)
                self.conversations.append_turn(subscriber_id, "assistant", reply_text, coach_id=coach.id)
                coach.total_conversations = (coach.total_conversations or 0) + 1
        except SQLAlchemyError as e:
            logger.warning(f"Failed to record conversation for subscriber {subscriber_id}: {e}")

    def _log_reply(
        self,
        coach: Coach,
        subscriber_id: Optional[str],
        user_message: str,
        reply_text: str,
        result: ReplyResult,
        elapsed_ms: int,
    ) -> None:
        try:
            with self.db.begin_nested():
                self.store.log_reply({
                    "coach_id": coach.id,
                    "subscriber_id": subscriber_id,
                    "user_message": user_message,
                    "reply_text": reply_text,
                    "emotional_need": result.emotional_need,
                    "situation": result.situation,
                    "used_chunk_ids": [str(i) for i in result.used_chunk_ids],
                    "retrieval_status": result.retrieval_status,
                    "response_time_ms": elapsed_ms,
                })
        except SQLAlchemyError as e:
            # analytics only
            logger.warning(f"Failed to log interaction for coach {coach.handle}: {e}")

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    def interpret_preference_message(
        self,
        coach_or_persona: Union[UUID, PersonaSnapshot, None],
        user_message: str,
        current_preferences: Optional[Mapping[str, Any]] = None,
    ) -> PreferenceResult:
        """
        Interpret a preference SMS in the voice of a coach.

        Accepts a coach id or an already-built PersonaSnapshot. An unknown
        coach id falls back to an unvoiced prompt.
        """
        persona: Optional[PersonaSnapshot] = None
        if isinstance(coach_or_persona, PersonaSnapshot):
            persona = coach_or_persona
        elif coach_or_persona is not None:
            coach = None
            try:
                coach = self.store.get_coach(coach_or_persona, active_only=True)
            except SQLAlchemyError as e:
                logger.warning(f"Failed to load coach {coach_or_persona}: {e}")
            if coach is None:
                logger.warning(f"Coach {coach_or_persona} not found, interpreting without persona")
            else:
                persona = PersonaSnapshot.from_coach(coach)

        return self.interpreter.interpret(user_message, persona, current_preferences)

    def apply_preference_updates(self, subscriber: Subscriber, result: PreferenceResult) -> Dict[str, Any]:
        """
        Write the decision's updates onto a subscriber.

        Returns the columns actually changed. A custom coach handle that does
        not resolve to an active coach is skipped.
        """
        changed: Dict[str, Any] = {}
        updates = result.updates

        if "spice_level" in updates:
            subscriber.spice_level = updates["spice_level"]
            changed["spice_level"] = updates["spice_level"]
        if "image_preference" in updates:
            subscriber.image_preference = updates["image_preference"]
            changed["image_preference"] = updates["image_preference"]
        if "coach_style" in updates:
            subscriber.coach_style = updates["coach_style"]
            changed["coach_style"] = updates["coach_style"]
        if "custom_coach_handle" in updates:
            coach = self.store.get_coach_by_handle(updates["custom_coach_handle"].lower())
            if coach is None or not coach.active:
                logger.warning(f"Custom coach handle not found: {updates['custom_coach_handle']}")
            else:
                subscriber.custom_coach_id = coach.id
                changed["custom_coach_id"] = coach.id

        if changed:
            self.db.flush()
            logger.info(
                f"Updated preferences for subscriber {subscriber.id}",
                extra={"extra_fields": {"subscriber_id": str(subscriber.id), "fields": list(changed)}},
            )
        return changed
