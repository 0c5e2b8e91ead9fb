from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from uuid import UUID
from typing import Optional, List, Dict, Any, Literal


class CommunicationTraits(BaseModel):
    energy_level: int = Field(default=5, ge=1, le=10)
    directness: int = Field(default=5, ge=1, le=10)
    formality: int = Field(default=5, ge=1, le=10)
    emotion_focus: int = Field(default=5, ge=1, le=10)


class CoachCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    handle: str = Field(..., min_length=2, max_length=64)
    description: Optional[str] = None
    primary_response_style: str = "empathetic_mirror"
    secondary_response_style: Optional[str] = None
    communication_traits: CommunicationTraits = Field(default_factory=CommunicationTraits)
    catchphrases: List[str] = Field(default_factory=list)
    public: bool = False


class CoachPresetCreate(BaseModel):
    style: str
    handle: Optional[str] = None


class CoachResponse(BaseModel):
    id: UUID
    name: str
    handle: str
    description: Optional[str] = None
    primary_response_style: str
    secondary_response_style: Optional[str] = None
    communication_traits: Dict[str, Any]
    voice_profile: Dict[str, Any]
    catchphrases: List[str]
    is_preset: bool
    active: bool
    public: bool
    total_content_pieces: int
    total_conversations: int
    processing_status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContentIngestResponse(BaseModel):
    """Result of processing one uploaded coach file"""
    success: bool
    chunk_id: UUID
    voice_sample: bool
    word_count: int
    processing_status: str
    intent_tags: List[str]
    situation_tags: List[str]
    voice_profile_delta: Dict[str, Any]


class PreviousMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ReplyRequest(BaseModel):
    user_message: str = Field(..., min_length=1, max_length=1000)
    emotional_need: Optional[str] = None
    situation: Optional[str] = None
    previous_messages: Optional[List[PreviousMessage]] = None
    subscriber_id: Optional[str] = None


class ReplyResponse(BaseModel):
    success: bool
    reply_text: str
    emotional_need: str
    situation: str
    used_chunk_ids: List[UUID]
    retrieval_status: Optional[str] = None
    response_length: int


class PreferenceMessageRequest(BaseModel):
    user_message: str = Field(..., min_length=1, max_length=1000)
    coach_id: Optional[UUID] = None
    # When set, updates are applied to this subscriber (created on first contact)
    phone_number: Optional[str] = None


class PreferenceMessageResponse(BaseModel):
    updates: Dict[str, Any]
    reply_text: str
    attempts: int
    used_fallback: bool
    applied: Dict[str, Any] = Field(default_factory=dict)
