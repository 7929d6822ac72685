"""Tests for the /generate API endpoints."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from bilingual_stories.api.dependencies import get_pipeline
from bilingual_stories.api.main import app
from bilingual_stories.config import PipelineSettings
from bilingual_stories.core.programs.story_pipeline import StoryPipeline

from .conftest import FakeIllustrator, FakeTextGenerator


@pytest.fixture
def override_pipeline(no_llm_keys):
    """Install a pipeline for one test and return a TestClient."""
    clients = []

    def _install(pipeline):
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        client = TestClient(app)
        clients.append(client)
        return client

    yield _install

    for client in clients:
        client.close()
    app.dependency_overrides.clear()


class TestGenerateStory:
    """Tests for POST /generate."""

    def test_text_only_story(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "ageGroup": "6-8", "chineseLevel": "beginner"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Story generated successfully"
        story = data["story"]
        assert story["storyTitle"] == "The Brave Mouse"
        assert story["chineseTitle"] == "勇敢的小老鼠"
        assert len(story["storyPages"]) == 3
        for page in story["storyPages"]:
            assert page["english"]
            assert page["chinese"]
            assert page["image"] is None

    def test_illustrated_story(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={
                "prompt": "a brave mouse",
                "ageGroup": "6-8",
                "chineseLevel": "beginner",
                "includeImages": True,
                "subjectReference": "https://i.imgur.com/mimi.png",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Story generated successfully with custom images"
        assert [p["image"] for p in data["story"]["storyPages"]] == [
            "https://img.example.com/page1.png",
            "https://img.example.com/page2.png",
            "https://img.example.com/page3.png",
        ]

    def test_partial_illustration_failure_still_200(self, override_pipeline, generated_text):
        client = override_pipeline(StoryPipeline(
            text_generator=FakeTextGenerator(result=generated_text),
            illustrator=FakeIllustrator(fail_pages={0}),
            settings=PipelineSettings(),
        ))

        response = client.post(
            "/generate",
            json={
                "prompt": "a brave mouse",
                "ageGroup": "3-5",
                "chineseLevel": "beginner",
                "includeImages": True,
                "subjectReference": "https://i.imgur.com/mimi.png",
            },
        )

        assert response.status_code == 200
        pages = response.json()["story"]["storyPages"]
        assert pages[0]["image"] is None
        assert pages[1]["image"] is not None

    def test_snake_case_fields_accepted(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "age_group": "6-8", "chinese_level": "beginner"},
        )

        assert response.status_code == 200


class TestGenerateStoryErrors:
    """Tests for error responses from POST /generate."""

    def test_missing_subject_reference_is_400(self, client_with_pipeline):
        client, pipeline = client_with_pipeline

        response = client.post(
            "/generate",
            json={
                "prompt": "a brave mouse",
                "ageGroup": "6-8",
                "chineseLevel": "beginner",
                "includeImages": True,
            },
        )

        assert response.status_code == 400
        assert response.json() == {"error": "subjectReference is required when includeImages is true"}
        assert pipeline.text_generator.calls == []

    def test_missing_fields_is_400(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post("/generate", json={"prompt": "a brave mouse"})

        assert response.status_code == 400
        assert "prompt, ageGroup, and chineseLevel are required" in response.json()["error"]

    def test_unknown_age_group_is_400(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "ageGroup": "1-2", "chineseLevel": "beginner"},
        )

        assert response.status_code == 400
        assert "ageGroup" in response.json()["error"]

    def test_malformed_body_is_400(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "ageGroup": "6-8", "chineseLevel": "beginner", "includeImages": "maybe"},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request:")
        assert "includeImages" in response.json()["error"]

    def test_prompt_too_long_is_400(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={"prompt": "x" * 2001, "ageGroup": "6-8", "chineseLevel": "beginner"},
        )

        assert response.status_code == 400

    def test_invalid_reference_is_500(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.post(
            "/generate",
            json={
                "prompt": "a brave mouse",
                "ageGroup": "6-8",
                "chineseLevel": "beginner",
                "includeImages": True,
                "subjectReference": "https://www.google.com/imgres?imgurl=https://x.com/a.png",
            },
        )

        assert response.status_code == 500
        assert response.json()["error"].startswith("Failed to generate story: ")

    def test_text_failure_is_500(self, override_pipeline):
        client = override_pipeline(StoryPipeline(
            text_generator=FakeTextGenerator(error=ValueError("quota exceeded")),
            settings=PipelineSettings(),
        ))

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "ageGroup": "6-8", "chineseLevel": "beginner"},
        )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error.startswith("Failed to generate story: ")
        assert "quota exceeded" in error
        assert "story" not in response.json()

    def test_unexpected_error_is_500(self, override_pipeline):
        broken = MagicMock()
        broken.execute = AsyncMock(side_effect=RuntimeError("boom"))
        client = override_pipeline(broken)

        response = client.post(
            "/generate",
            json={"prompt": "a brave mouse", "ageGroup": "6-8", "chineseLevel": "beginner"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate story: boom"}


class TestDescribeEndpoint:
    """Tests for GET /generate and /health."""

    def test_get_generate_describes_fields(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.get("/generate")

        assert response.status_code == 200
        data = response.json()
        assert data["endpoint"] == "POST /generate"
        assert data["requiredFields"] == ["prompt", "ageGroup", "chineseLevel"]
        assert "subjectReference" in data["optionalFields"]
        assert data["message"]

    def test_health(self, client_with_pipeline):
        client, _ = client_with_pipeline

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_repeated_startups_without_llm_keys(self, no_llm_keys):
        """Each TestClient runs the lifespan in a new thread; DSPy is left alone without keys."""
        with patch("bilingual_stories.api.main.configure_dspy") as configure:
            for _ in range(2):
                with TestClient(app) as client:
                    assert client.get("/health").status_code == 200

        configure.assert_not_called()

    def test_startup_configures_dspy_when_key_present(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

        with patch("bilingual_stories.api.main.configure_dspy") as configure:
            with TestClient(app):
                pass

        configure.assert_called_once()
