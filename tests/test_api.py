"""API tests with in-process fakes for every external provider"""

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from faddl_ai.config import settings
from faddl_ai.api.main import (
    app,
    run,
    get_compliance_checker,
    get_conversation_intelligence,
    get_escalation_system,
    get_matching_engine,
    get_moderation_system,
    get_profile_enhancer,
)
from faddl_ai.conversation.intelligence import ConversationIntelligence
from faddl_ai.data.schema import Gender
from faddl_ai.matching.matching_engine import MatchingEngine
from faddl_ai.matching.similarity_matcher import SimilarityMatcher
from faddl_ai.moderation.content_moderation import ContentModerationSystem
from faddl_ai.personalization.profile_enhancement import ProfileEnhancer

from tests.fakes import (
    REFERENCE_YEAR,
    FakeContent,
    FakeCultural,
    FakeRouter,
    FakeSafety,
    RecordingSink,
    make_embeddings,
    make_profile,
)

FAMILY_INTRO = "Assalamu alaikum, I would like my family to be involved in getting to know you for marriage"
MEET_ALONE = "Let's meet alone tonight, don't tell anyone"


@pytest.fixture
def client():
    moderation = ContentModerationSystem(
        safety_classifier=FakeSafety(),
        cultural_analyzer=FakeCultural(score=0.9, confidence=0.8),
        content_analyzer=FakeContent(appropriateness=0.9),
        audit_sink=RecordingSink(),
        batch_size=2,
        batch_delay_seconds=0,
    )
    engine = MatchingEngine(SimilarityMatcher(reference_year=REFERENCE_YEAR, use_llm_explanations=False))
    conversation = ConversationIntelligence(moderation_system=moderation, llm_router=FakeRouter(None))
    enhancer = ProfileEnhancer(llm_router=FakeRouter(None), reference_year=REFERENCE_YEAR)

    app.dependency_overrides[get_moderation_system] = lambda: moderation
    app.dependency_overrides[get_escalation_system] = lambda: moderation.escalation_system
    app.dependency_overrides[get_compliance_checker] = lambda: moderation.compliance_checker
    app.dependency_overrides[get_matching_engine] = lambda: engine
    app.dependency_overrides[get_conversation_intelligence] = lambda: conversation
    app.dependency_overrides[get_profile_enhancer] = lambda: enhancer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def conversation_context(stage="introduction"):
    return {
        "participants": [
            {"id": "brother_1", "gender": "male", "cultural_background": "south_asian"},
            {"id": "sister_1", "gender": "female", "cultural_background": "arab"},
        ],
        "stage": stage,
    }


class TestSystemEndpoints:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "FADDL AI API"
        assert "moderation" in body["endpoints"]
        assert body["endpoints"]["profile"] == "/api/v1/profile/enhancement"

    def test_run_uses_settings(self):
        with patch("faddl_ai.api.main.uvicorn.run") as uvicorn_run, patch("faddl_ai.api.main.logger"):
            run()

        kwargs = uvicorn_run.call_args.kwargs
        assert uvicorn_run.call_args.args[0] == "faddl_ai.api.main:app"
        assert kwargs["host"] == settings.api_host
        assert kwargs["port"] == settings.api_port


class TestModerationEndpoints:
    """Moderation, compliance and escalation routes"""

    def test_moderate_approved(self, client):
        response = client.post("/api/v1/moderation", json={"content": FAMILY_INTRO, "user_id": "user_1"})

        assert response.status_code == 200
        body = response.json()
        assert body["approved"] is True
        assert body["escalation"]["required"] is False

    def test_moderate_rejected(self, client):
        body = client.post("/api/v1/moderation", json={"content": MEET_ALONE, "user_id": "user_1"}).json()

        assert body["approved"] is False
        assert "alone_meetings" in body["islamic_compliance"]["violations"]
        assert body["escalation"]["guardian_alert"]["severity"] == "high"
        assert body["ticket"]["status"] == "pending"

    def test_batch_keeps_order(self, client):
        payload = [
            {"content": MEET_ALONE, "user_id": "a"},
            {"content": FAMILY_INTRO, "user_id": "b"},
            {"content": MEET_ALONE, "user_id": "c"},
        ]
        body = client.post("/api/v1/moderation/batch", json=payload).json()
        assert [r["approved"] for r in body] == [False, True, False]

    def test_stats(self, client):
        client.post("/api/v1/moderation", json={"content": MEET_ALONE, "user_id": "user_1"})

        moderation = client.get("/api/v1/moderation/stats").json()
        escalation = client.get("/api/v1/escalation/stats").json()

        assert moderation["total_moderated"] == 1
        assert escalation["total"] == 1
        assert escalation["by_reviewer_type"]["human"] == 1

    def test_compliance(self, client):
        response = client.post("/api/v1/compliance", json={"content": MEET_ALONE})

        assert response.status_code == 200
        assert "alone_meetings" in response.json()["violations"]

    def test_ticket_requires_escalation(self, client):
        payload = {
            "request": {"content": FAMILY_INTRO, "user_id": "user_1"},
            "escalation": {"required": False},
        }
        assert client.post("/api/v1/escalation/tickets", json=payload).status_code == 400

    def test_ticket_created(self, client):
        payload = {
            "request": {"content": MEET_ALONE, "user_id": "user_1"},
            "escalation": {"required": True, "reason": "Islamic compliance concerns", "severity": "high",
                           "reviewer_type": "human", "priority": 40},
        }
        body = client.post("/api/v1/escalation/tickets", json=payload).json()

        assert body["id"].startswith("ESC-")
        assert body["priority"] == 40


class TestMatchingEndpoints:
    def _payload(self, embeddings_b):
        return {
            "profile_a": make_profile("a").model_dump(mode="json"),
            "embeddings_a": make_embeddings("a").model_dump(mode="json"),
            "profile_b": make_profile("b", gender=Gender.FEMALE).model_dump(mode="json"),
            "embeddings_b": embeddings_b.model_dump(mode="json"),
        }

    def test_similarity(self, client):
        response = client.post("/api/v1/matching/similarity", json=self._payload(make_embeddings("b")))

        assert response.status_code == 200
        body = response.json()
        assert body["similarity"]["profile_id"] == "b"
        assert 0.0 <= body["similarity"]["overall_score"] <= 1.0
        assert body["explanation"]["recommendations"]

    def test_mismatched_embeddings_conflict(self, client):
        response = client.post(
            "/api/v1/matching/similarity", json=self._payload(make_embeddings("b", model="legacy-model"))
        )

        assert response.status_code == 409
        assert response.json()["error"] == "EMBEDDING_MISMATCH"


class TestConversationEndpoints:
    def test_suggestions(self, client):
        payload = {
            "context": conversation_context(),
            "recipient_profile": make_profile("sister_1", gender=Gender.FEMALE, ethnicity="arab").model_dump(mode="json"),
        }
        body = client.post("/api/v1/conversation/suggestions", json=payload).json()

        assert 0 < len(body) <= 5
        assert all(s["islamic_guidance"] for s in body)

    def test_analyze(self, client):
        payload = {
            "message": MEET_ALONE,
            "context": conversation_context("getting_to_know"),
            "sender_profile": make_profile("brother_1").model_dump(mode="json"),
        }
        body = client.post("/api/v1/conversation/analyze", json=payload).json()

        assert body["sentiment"] == "concerned"
        assert body["escalation_needed"] is True


class TestProfileEndpoints:
    def test_enhancement(self, client):
        payload = {
            "user_id": "user_a",
            "profile": make_profile(bio="Looking for a spouse", photo_count=0).model_dump(mode="json"),
            "cultural_background": "convert",
        }
        response = client.post("/api/v1/profile/enhancement", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert 0 < len(body) <= 8
        assert body[0]["priority"] == "high"
        assert {"bio", "photos"} <= {s["section"] for s in body}

    def test_completeness(self, client):
        profile = make_profile(education="bachelors", profession="engineer", photo_count=3)
        body = client.post("/api/v1/profile/completeness", json=profile.model_dump(mode="json")).json()

        assert body["user_id"] == "user_a"
        assert body["completeness"] == 0.9

    def test_invalid_profile_rejected(self, client):
        response = client.post("/api/v1/profile/completeness", json={"user_id": "user_a"})
        assert response.status_code == 422


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
