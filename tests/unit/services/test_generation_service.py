import json
import uuid
from unittest.mock import AsyncMock, call

import pytest

from profile_enrichment.core.config import LLMSettings
from profile_enrichment.core.exceptions import (
    GenerationErrorCode,
    GenerationFailedError,
    GenerationServiceError,
    RateLimitError,
)
from profile_enrichment.models.profile import MergedProfile
from profile_enrichment.services.enrichment.contracts import SubjectContext
from profile_enrichment.services.enrichment.generation_service import GenerationService
from profile_enrichment.services.enrichment.retry_policy import RetryPolicy


@pytest.fixture
def llm_settings():
    return LLMSettings()


@pytest.fixture
def client():
    client = AsyncMock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def service(client, llm_settings, sleep):
    return GenerationService(client, llm_settings, RetryPolicy(sleep=sleep))


@pytest.fixture
def context():
    return SubjectContext(
        subject_id=uuid.uuid4(),
        full_name="Dana Levi",
        current_role="Backend Developer",
        target_role="Tech Lead",
        company_name="Acme",
    )


@pytest.fixture
def repositories():
    return [
        {"name": "api-gateway", "language": "Go", "url": "https://example.com/api-gateway"},
        {"name": "dotfiles", "html_url": "https://example.com/dotfiles"},
    ]


class TestGenerateBio:

    @pytest.mark.asyncio
    async def test_returns_completion_text(self, service, client, context, llm_settings):
        client.complete.return_value = "Dana Levi is a backend developer at Acme."
        merged = MergedProfile(skills=["Python"], work_experience=["Backend Developer at Acme"])

        bio = await service.generate_bio(context, merged)

        assert bio == "Dana Levi is a backend developer at Acme."
        kwargs = client.complete.await_args.kwargs
        assert kwargs["model"] == llm_settings.bio_model
        assert kwargs["max_tokens"] == llm_settings.bio_max_tokens
        assert "Dana Levi" in kwargs["prompt"]
        assert "Python" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_retries_rate_limits_with_backoff(self, service, client, context, sleep):
        client.complete.side_effect = [
            RateLimitError("rate limit"),
            RateLimitError("rate limit"),
            "Final bio",
        ]

        bio = await service.generate_bio(context, MergedProfile(skills=["Python"]))

        assert bio == "Final bio"
        assert sleep.await_args_list == [call(2.0), call(4.0)]

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_not_retried(self, service, client, context, sleep):
        client.complete.side_effect = GenerationServiceError(
            "unauthorized", code=GenerationErrorCode.AUTHENTICATION, status_code=401
        )

        with pytest.raises(GenerationFailedError):
            await service.generate_bio(context, MergedProfile(skills=["Python"]))

        assert client.complete.await_count == 1
        sleep.assert_not_awaited()


class TestGenerateProjectSummaries:

    @pytest.mark.asyncio
    async def test_parses_summaries_and_maps_urls(self, service, client, repositories):
        client.complete.return_value = "```json\n" + json.dumps([
            {"repository_name": "api-gateway", "summary": "A Go gateway."},
            {"repository_name": "dotfiles", "summary": "Shell configuration."},
            {"repository_name": "unknown", "summary": "Not in the input."},
            {"repository_name": "", "summary": "Dropped."},
        ]) + "\n```"

        summaries = await service.generate_project_summaries(repositories)

        assert [(s.project_name, s.source_url) for s in summaries] == [
            ("api-gateway", "https://example.com/api-gateway"),
            ("dotfiles", "https://example.com/dotfiles"),
            ("unknown", None),
        ]
        assert summaries[0].summary == "A Go gateway."

    @pytest.mark.asyncio
    async def test_skips_items_with_non_string_fields(self, service, client, repositories):
        client.complete.return_value = json.dumps([
            {"name": "api-gateway", "summary": 42},
            {"name": ["dotfiles"], "summary": "Shell configuration."},
            {"repository_name": "dotfiles", "summary": "  Shell configuration.  "},
        ])

        summaries = await service.generate_project_summaries(repositories)

        assert [(s.project_name, s.summary) for s in summaries] == [
            ("dotfiles", "Shell configuration."),
        ]

    @pytest.mark.asyncio
    async def test_repositories_with_odd_field_types(self, service, client):
        client.complete.return_value = json.dumps([{"name": "api-gateway", "summary": "A Go gateway."}])

        summaries = await service.generate_project_summaries(
            [{"name": "api-gateway", "url": 7}, {"name": ["not", "hashable"]}]
        )

        assert [(s.project_name, s.source_url) for s in summaries] == [("api-gateway", None)]

    @pytest.mark.asyncio
    async def test_unparseable_response_fails(self, service, client, repositories):
        client.complete.return_value = "Here are some summaries for you!"

        with pytest.raises(GenerationFailedError):
            await service.generate_project_summaries(repositories)

    @pytest.mark.asyncio
    async def test_no_repositories_skips_generation(self, service, client):
        assert await service.generate_project_summaries([]) == []
        client.complete.assert_not_awaited()


class TestGenerateValueStatement:

    @pytest.mark.asyncio
    async def test_prompt_mentions_target_role(self, service, client, context, llm_settings):
        client.complete.return_value = "Dana Levi is progressing toward Tech Lead."

        statement = await service.generate_value_statement(context)

        assert statement == "Dana Levi is progressing toward Tech Lead."
        kwargs = client.complete.await_args.kwargs
        assert kwargs["model"] == llm_settings.value_statement_model
        assert "Tech Lead" in kwargs["prompt"]
