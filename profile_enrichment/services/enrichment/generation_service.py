"""Bio, project-summary and value-statement generation.

Each public method makes one logical generation call under the retry policy
and raises GenerationFailedError when the call cannot be completed. Falling
back is the orchestrator's decision, not this service's.
"""

from typing import Any, Dict, List, Optional

from profile_enrichment.core.config import LLMSettings
from profile_enrichment.core.exceptions import GenerationFailedError
from profile_enrichment.models.profile import MergedProfile, ProjectSummary
from profile_enrichment.prompts.enrichment_prompts import (
    BIO_SYSTEM_INSTRUCTION,
    PROJECT_SUMMARIES_SYSTEM_INSTRUCTION,
    VALUE_STATEMENT_SYSTEM_INSTRUCTION,
    build_bio_prompt,
    build_project_summaries_prompt,
    build_value_statement_prompt,
)
from profile_enrichment.services.enrichment.contracts import SubjectContext
from profile_enrichment.services.enrichment.retry_policy import RetryPolicy
from profile_enrichment.utils.json_parser import parse_json_safely, strip_code_fences
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _first_string(repository: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = repository.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _repository_name(repository: Dict[str, Any]) -> str:
    return _first_string(repository, "name", "full_name") or ""


def _repository_url(repository: Dict[str, Any]) -> Optional[str]:
    return _first_string(repository, "url", "html_url")


class GenerationService:
    """Produces the three enrichment artifacts through a text-generation client."""

    def __init__(self, client, llm_settings: LLMSettings, retry_policy: Optional[RetryPolicy] = None):
        """
        Args:
            client: Object exposing ``async complete(prompt, model, max_tokens,
                temperature, system_instruction)``
            llm_settings: Model names, token limits and temperature
            retry_policy: Retry behaviour; defaults to 3 attempts with 2s/4s backoff
        """
        self.client = client
        self.llm_settings = llm_settings
        self.retry_policy = retry_policy or RetryPolicy()

    async def _complete(self, label: str, prompt: str, model: str, max_tokens: int, system_instruction: str) -> str:
        async def call() -> str:
            return await self.client.complete(
                prompt=prompt,
                model=model,
                max_tokens=max_tokens,
                temperature=self.llm_settings.temperature,
                system_instruction=system_instruction,
            )

        return await self.retry_policy.run(call, label=label)

    async def generate_bio(self, subject: SubjectContext, merged: MergedProfile) -> str:
        prompt = build_bio_prompt(
            full_name=subject.full_name,
            current_role=subject.current_role,
            company_name=subject.company_name,
            merged=merged,
        )
        bio = await self._complete(
            "bio generation",
            prompt,
            self.llm_settings.bio_model,
            self.llm_settings.bio_max_tokens,
            BIO_SYSTEM_INSTRUCTION,
        )
        return strip_code_fences(bio)

    async def generate_project_summaries(self, repositories: List[Dict[str, Any]]) -> List[ProjectSummary]:
        """Summarise up to max_projects_in_prompt repositories in one call.

        Raises:
            GenerationFailedError: If the call fails or the response is not a JSON array
        """
        repositories = [repo for repo in repositories if isinstance(repo, dict)]
        if not repositories:
            return []

        prompt = build_project_summaries_prompt(
            repositories, max_projects=self.llm_settings.max_projects_in_prompt
        )
        response = await self._complete(
            "project summaries generation",
            prompt,
            self.llm_settings.project_summary_model,
            self.llm_settings.project_summary_max_tokens,
            PROJECT_SUMMARIES_SYSTEM_INSTRUCTION,
        )

        parsed = parse_json_safely(strip_code_fences(response))
        if not isinstance(parsed, list):
            LOGGER.error(f"Project summaries response is not a JSON array: {response[:300]}")
            raise GenerationFailedError("Failed to parse project summaries response", attempts=1)

        urls = {_repository_name(repo): _repository_url(repo) for repo in repositories}
        summaries: List[ProjectSummary] = []
        for item in parsed:
            if not isinstance(item, dict):
                continue
            name = item.get("repository_name") or item.get("name")
            summary = item.get("summary") or item.get("description")
            if not isinstance(name, str) or not isinstance(summary, str):
                LOGGER.warning("Skipping malformed project summary", extra={"item": str(item)[:200]})
                continue
            name, summary = name.strip(), summary.strip()
            if not name or not summary:
                continue
            summaries.append(
                ProjectSummary(project_name=name, source_url=urls.get(name), summary=summary)
            )

        LOGGER.info(
            f"Generated {len(summaries)} project summaries",
            extra={"repositories": len(repositories)}
        )
        return summaries

    async def generate_value_statement(self, subject: SubjectContext) -> str:
        prompt = build_value_statement_prompt(
            full_name=subject.full_name,
            current_role=subject.current_role,
            target_role=subject.target_role,
            company_name=subject.company_name,
        )
        statement = await self._complete(
            "value statement generation",
            prompt,
            self.llm_settings.value_statement_model,
            self.llm_settings.value_statement_max_tokens,
            VALUE_STATEMENT_SYSTEM_INSTRUCTION,
        )
        return strip_code_fences(statement)
