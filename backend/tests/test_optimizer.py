"""
Tests for the AI content optimizer.

Tests cover:
- Prompt construction and completion parsing (mocked client)
- Upstream failures mapped to retryable errors
- Optimize endpoints with auth and CSRF
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobtracker.errors import UpstreamServiceError
from jobtracker.main import app
from jobtracker.services.optimizer import ContentOptimizer, get_optimizer


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def mock_openai():
    """Create a mock AsyncOpenAI client."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion("  Improved text  "))
    return client


@pytest.fixture
def optimizer(mock_openai):
    return ContentOptimizer(openai_client=mock_openai, model="test-model")


class TestContentOptimizer:
    """Test ContentOptimizer against a mocked client."""

    @pytest.mark.asyncio
    async def test_optimize_resume_section(self, optimizer, mock_openai):
        result = await optimizer.optimize_resume_section("Experience", "Did things", "Python role")
        assert result == "Improved text"

        kwargs = mock_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        prompt = kwargs["messages"][1]["content"]
        assert "Experience" in prompt
        assert "Did things" in prompt
        assert "Python role" in prompt

    @pytest.mark.asyncio
    async def test_optional_job_description(self, optimizer, mock_openai):
        await optimizer.optimize_resume_section("Skills", "Python")
        prompt = mock_openai.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "(none provided)" in prompt

    @pytest.mark.asyncio
    async def test_cover_letter_operations(self, optimizer, mock_openai):
        assert await optimizer.optimize_cover_letter("Dear team", "Job", "Resume bit") == "Improved text"
        assert await optimizer.generate_cover_letter("My resume", "Job") == "Improved text"
        assert await optimizer.improve_resume("My resume", "Job") == "Improved text"
        assert mock_openai.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_client_error_is_retryable(self, optimizer, mock_openai):
        mock_openai.chat.completions.create.side_effect = RuntimeError("connection reset")
        with pytest.raises(UpstreamServiceError) as exc:
            await optimizer.improve_resume("My resume", "Job")
        assert exc.value.status_code == 502
        assert exc.value.to_dict()["retryable"] is True

    @pytest.mark.asyncio
    async def test_empty_completion(self, optimizer, mock_openai):
        mock_openai.chat.completions.create.return_value = completion("   ")
        with pytest.raises(UpstreamServiceError):
            await optimizer.generate_cover_letter("My resume", "Job")

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        with pytest.raises(UpstreamServiceError) as exc:
            await ContentOptimizer(openai_client=None).improve_resume("r", "j")
        assert exc.value.status_code == 503


@pytest.fixture
def override_optimizer(client, optimizer):
    app.dependency_overrides[get_optimizer] = lambda: optimizer
    yield optimizer
    app.dependency_overrides.pop(get_optimizer, None)


class TestOptimizeEndpoints:
    """Test /api/optimize routes."""

    @pytest.mark.asyncio
    async def test_resume_section(self, auth_client, override_optimizer):
        response = await auth_client.post("/api/optimize/resume-section", json={
            "section_title": "Experience", "section_content": "Did things",
        })
        assert response.status_code == 200
        assert response.json() == {"optimized_content": "Improved text"}

    @pytest.mark.asyncio
    async def test_generate_cover_letter(self, auth_client, override_optimizer):
        response = await auth_client.post("/api/optimize/generate-cover-letter", json={
            "resume": "My resume", "job_description": "Job",
        })
        assert response.json() == {"cover_letter": "Improved text"}

    @pytest.mark.asyncio
    async def test_upstream_failure_response(self, auth_client, override_optimizer, mock_openai):
        mock_openai.chat.completions.create.side_effect = RuntimeError("boom")
        response = await auth_client.post("/api/optimize/improve-resume", json={
            "resume_text": "My resume", "job_description": "Job",
        })
        assert response.status_code == 502
        assert response.json()["retryable"] is True

    @pytest.mark.asyncio
    async def test_requires_csrf(self, auth_client, override_optimizer, mock_openai):
        del auth_client.headers["X-CSRF-Token"]
        response = await auth_client.post("/api/optimize/cover-letter", json={
            "current_cover_letter": "Dear team", "job_description": "Job",
        })
        assert response.status_code == 403
        mock_openai.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_login(self, client, override_optimizer):
        response = await client.post("/api/optimize/improve-resume", json={
            "resume_text": "My resume", "job_description": "Job",
        })
        assert response.status_code == 401
