"""
API tests for the coach voice router.

The database dependency is overridden with the transactional test session
and the voice service is built with mock LLM clients.
"""
import json
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from unittest.mock import MagicMock
from uuid import uuid4

from core.config import settings
from core.database import get_db
from main import app
from models import Subscriber
from routers.coach_voice import get_voice_service
from services.coach_voice import RetrievedChunk
from services.coach_voice.config import VoiceEngineConfig
from services.coach_voice_service import CoachVoiceService

client = TestClient(app)


PERSONAL_TEXT = (
    b"I remember when I struggled with my first marathon. It was hard and I wanted "
    b"to quit at every mile. But I kept going and finished strong."
)


@pytest.fixture
def voice_service(db_session, mock_embedding_client, mock_completion_client):
    service = CoachVoiceService(
        db_session,
        embedding_client=mock_embedding_client,
        completion_client=mock_completion_client,
        config=VoiceEngineConfig(),
    )
    service.store.find_similar = MagicMock(return_value=[])
    return service


@pytest.fixture(autouse=True)
def override_dependencies(db_session, voice_service):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_voice_service] = lambda: voice_service
    yield
    app.dependency_overrides.clear()


class TestCoachEndpoints:

    def test_create_coach(self):
        response = client.post("/v1/coaches", json={
            "name": "Coach Ana",
            "handle": "Coach-Ana",
            "primary_response_style": "cheerleader",
            "communication_traits": {"energy_level": 10},
        })
        assert response.status_code == 201
        body = response.json()
        assert body["handle"] == "coach-ana"
        assert body["communication_traits"] == {
            "energy_level": 10, "directness": 5, "formality": 5, "emotion_focus": 5,
        }
        assert body["processing_status"] == "pending"

    def test_duplicate_handle(self, test_coach):
        response = client.post("/v1/coaches", json={
            "name": "Imposter",
            "handle": "coach-mike",
            "primary_response_style": "tough_love",
        })
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT"

    def test_trait_out_of_range(self):
        response = client.post("/v1/coaches", json={
            "name": "Coach",
            "handle": "coach-x",
            "communication_traits": {"directness": 12},
        })
        assert response.status_code == 422

    def test_provision_preset(self):
        response = client.post("/v1/coaches/presets", json={"style": "tough_love"})
        assert response.status_code == 201
        assert response.json()["is_preset"] is True
        assert response.json()["handle"] == "tough-love"

    def test_unknown_preset(self):
        response = client.post("/v1/coaches/presets", json={"style": "drill_sergeant"})
        assert response.status_code == 404

    def test_deactivate(self, test_coach):
        response = client.delete(f"/v1/coaches/{test_coach.id}")
        assert response.status_code == 200
        assert response.json()["active"] is False

    def test_deactivate_missing(self):
        assert client.delete(f"/v1/coaches/{uuid4()}").status_code == 404


class TestContentUpload:

    def test_upload(self, test_coach):
        response = client.post(
            f"/v1/coaches/{test_coach.id}/content",
            files={"file": ("story.txt", PERSONAL_TEXT, "text/plain")},
            data={"content_type": "blog_post"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["voice_sample"] is True
        assert "personal" in body["intent_tags"]
        assert body["voice_profile_delta"]["samples_processed"] == 1

    def test_unsupported_file(self, test_coach):
        response = client.post(
            f"/v1/coaches/{test_coach.id}/content",
            files={"file": ("deck.pptx", b"data", "application/octet-stream")},
            data={"content_type": "blog_post"},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "UNSUPPORTED_FILE_TYPE"

    def test_invalid_content_type(self, test_coach):
        response = client.post(
            f"/v1/coaches/{test_coach.id}/content",
            files={"file": ("story.txt", PERSONAL_TEXT, "text/plain")},
            data={"content_type": "tweet"},
        )
        assert response.status_code == 422

    def test_unknown_coach(self):
        response = client.post(
            f"/v1/coaches/{uuid4()}/content",
            files={"file": ("story.txt", PERSONAL_TEXT, "text/plain")},
            data={"content_type": "blog_post"},
        )
        assert response.status_code == 404

    def test_file_too_large(self, test_coach, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
        response = client.post(
            f"/v1/coaches/{test_coach.id}/content",
            files={"file": ("story.txt", PERSONAL_TEXT, "text/plain")},
            data={"content_type": "blog_post"},
        )
        assert response.status_code == 413
        assert response.json()["error_code"] == "FILE_TOO_LARGE"


class TestReply:

    def test_reply(self, test_coach, voice_service):
        chunk = RetrievedChunk(id=uuid4(), content="Lock in. Finish the set.", similarity=0.88)
        voice_service.store.find_similar.return_value = [chunk]

        response = client.post(f"/v1/coaches/{test_coach.id}/reply", json={
            "user_message": "Just did legs and I'm exhausted",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["reply_text"] == "No excuses. Lace up and get it done!"
        assert body["response_length"] == len(body["reply_text"])
        assert body["emotional_need"] == "commiseration"
        assert body["situation"] == "post_workout"
        assert body["used_chunk_ids"] == [str(chunk.id)]
        assert body["retrieval_status"] == "ok"

    def test_empty_message(self, test_coach):
        response = client.post(f"/v1/coaches/{test_coach.id}/reply", json={"user_message": ""})
        assert response.status_code == 422

    def test_unknown_emotional_need(self, test_coach):
        response = client.post(f"/v1/coaches/{test_coach.id}/reply", json={
            "user_message": "Hi",
            "emotional_need": "rage",
        })
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_INVALID_CONTEXT"

    def test_completion_unavailable(self, test_coach, mock_completion_client):
        mock_completion_client.complete.side_effect = RuntimeError("upstream down")
        response = client.post(f"/v1/coaches/{test_coach.id}/reply", json={"user_message": "Hi"})
        assert response.status_code == 503

    def test_unknown_coach(self):
        response = client.post(f"/v1/coaches/{uuid4()}/reply", json={"user_message": "Hi"})
        assert response.status_code == 404

    def test_database_unavailable(self, test_coach, voice_service):
        voice_service.store.get_coach = MagicMock(
            side_effect=OperationalError("SELECT", {}, Exception("db down"))
        )
        response = client.post(f"/v1/coaches/{test_coach.id}/reply", json={"user_message": "Hi"})
        assert response.status_code == 503


class TestPreferenceInterpretation:

    @staticmethod
    def decision(**fields):
        payload = {
            "should_update_spice": False,
            "spice_level": None,
            "should_update_image_preference": False,
            "image_preference": None,
            "should_update_coach_style": False,
            "coach_style": None,
            "should_update_custom_coach": False,
            "custom_coach_handle": None,
            "reply_text": "You got it.",
        }
        payload.update(fields)
        return json.dumps(payload)

    def test_applies_updates_to_new_subscriber(self, test_coach, db_session, mock_completion_client):
        mock_completion_client.complete.return_value = self.decision(
            should_update_spice=True, spice_level=4, reply_text="Level 4. Let's work."
        )
        response = client.post("/v1/coaches/preferences/interpret", json={
            "user_message": "spice it up to 4",
            "coach_id": str(test_coach.id),
            "phone_number": "+15555550100",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["updates"] == {"spice_level": 4}
        assert body["applied"] == {"spice_level": 4}
        assert body["reply_text"] == "Level 4. Let's work."
        assert body["attempts"] == 1

        subscriber = db_session.query(Subscriber).filter(Subscriber.phone_number == "+15555550100").one()
        assert subscriber.spice_level == 4

    def test_switch_custom_coach(self, test_coach, mock_completion_client):
        mock_completion_client.complete.return_value = self.decision(
            should_update_custom_coach=True, custom_coach_handle="@coach-mike"
        )
        response = client.post("/v1/coaches/preferences/interpret", json={
            "user_message": "switch me to @coach-mike",
            "phone_number": "+15555550101",
        })
        assert response.json()["applied"] == {"custom_coach_id": str(test_coach.id)}

    def test_fallback_applies_nothing(self, test_coach, mock_completion_client):
        mock_completion_client.complete.return_value = "not json"
        response = client.post("/v1/coaches/preferences/interpret", json={
            "user_message": "asdf",
            "phone_number": "+15555550102",
        })
        body = response.json()
        assert response.status_code == 200
        assert body["used_fallback"] is True
        assert body["attempts"] == 3
        assert body["updates"] == {}
        assert body["applied"] == {}

    def test_without_phone_number(self, mock_completion_client):
        mock_completion_client.complete.return_value = self.decision(
            should_update_image_preference=True, image_preference="powerlifters"
        )
        response = client.post("/v1/coaches/preferences/interpret", json={"user_message": "show me powerlifters"})
        body = response.json()
        assert body["updates"] == {"image_preference": "powerlifters"}
        assert body["applied"] == {}
