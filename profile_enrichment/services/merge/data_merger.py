"""Merges per-source raw records into one profile.

Precedence is declared per field in FIELD_RULES rather than as one global
source order: each field names its merge strategy, the sources it reads in
order, and the sources placed in front of them.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from profile_enrichment.models.profile import DataSource, MergedProfile
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.services.base_service import BaseService
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

Payloads = Mapping[DataSource, Dict[str, Any]]
SourceExtractor = Callable[[Payloads], List[Any]]


class MergeStrategy(str, Enum):
    """How the entries gathered for one field are combined."""

    CONCAT = "concat"  # ordered, duplicates kept
    UNION = "union"  # trimmed strings, empties dropped, first spelling wins
    VERBATIM = "verbatim"  # single source copied as-is


@dataclass(frozen=True)
class FieldRule:
    strategy: MergeStrategy
    sources: Tuple[SourceExtractor, ...]
    front: Tuple[SourceExtractor, ...] = ()


def _as_list(value: Any, split_on: Optional[str] = None) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        if split_on is None:
            return [value] if value.strip() else []
        return [part.strip() for part in value.split(split_on) if part.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def entries(source: DataSource, *keys: str, split_on: Optional[str] = None) -> SourceExtractor:
    """Extractor reading the first present key of a source payload."""

    def extract(payloads: Payloads) -> List[Any]:
        payload = payloads.get(source) or {}
        for key in keys:
            if payload.get(key):
                return _as_list(payload[key], split_on)
        return []

    extract.__name__ = f"{source.value}:{'|'.join(keys)}"
    return extract


def provider_b_language_tags(payloads: Payloads) -> List[str]:
    """Language tags from a code-hosting payload: top-level list/map, then per repository."""
    payload = payloads.get(DataSource.PROVIDER_B) or {}
    tags: List[str] = []

    languages = payload.get("languages")
    if isinstance(languages, dict):
        tags.extend(languages.keys())
    else:
        tags.extend(_as_list(languages))

    for repository in payload.get("repositories") or []:
        if isinstance(repository, dict) and repository.get("language"):
            tags.append(repository["language"])
    return tags


FIELD_RULES: Dict[str, FieldRule] = {
    "work_experience": FieldRule(
        MergeStrategy.CONCAT,
        sources=(
            entries(DataSource.DOCUMENT, "work_experience"),
            entries(DataSource.PROVIDER_A, "experience", "positions"),
        ),
        front=(entries(DataSource.MANUAL, "work_experience", split_on="\n"),),
    ),
    "education": FieldRule(
        MergeStrategy.CONCAT,
        sources=(
            entries(DataSource.DOCUMENT, "education"),
            entries(DataSource.PROVIDER_A, "education"),
        ),
        front=(entries(DataSource.MANUAL, "education", split_on="\n"),),
    ),
    "skills": FieldRule(
        MergeStrategy.UNION,
        sources=(
            entries(DataSource.DOCUMENT, "skills"),
            entries(DataSource.MANUAL, "skills", split_on=","),
            entries(DataSource.PROVIDER_A, "skills"),
            provider_b_language_tags,
        ),
    ),
    "languages": FieldRule(
        MergeStrategy.UNION,
        sources=(
            entries(DataSource.DOCUMENT, "languages", split_on=","),
            entries(DataSource.MANUAL, "languages", split_on=","),
            entries(DataSource.PROVIDER_A, "languages", split_on=","),
        ),
    ),
    "projects": FieldRule(
        MergeStrategy.VERBATIM,
        sources=(entries(DataSource.PROVIDER_B, "repositories"),),
    ),
    "volunteer": FieldRule(
        MergeStrategy.CONCAT,
        sources=(entries(DataSource.DOCUMENT, "volunteer"),),
        front=(entries(DataSource.MANUAL, "volunteer", split_on="\n"),),
    ),
    "military": FieldRule(
        MergeStrategy.CONCAT,
        sources=(entries(DataSource.DOCUMENT, "military"),),
        front=(entries(DataSource.MANUAL, "military", split_on="\n"),),
    ),
    "courses": FieldRule(
        MergeStrategy.CONCAT,
        sources=(entries(DataSource.DOCUMENT, "courses"),),
        front=(entries(DataSource.MANUAL, "courses", split_on="\n"),),
    ),
}

# Full provider payloads copied onto the merged profile
PROFILE_PASSTHROUGH = {
    "provider_a_profile": DataSource.PROVIDER_A,
    "provider_b_profile": DataSource.PROVIDER_B,
}


def _union(values: List[Any]) -> List[str]:
    result: List[str] = []
    seen = set()
    for value in values:
        if isinstance(value, dict):
            value = value.get("name") or value.get("title") or ""
        if not isinstance(value, str):
            continue
        item = value.strip()
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def apply_rule(rule: FieldRule, payloads: Payloads) -> List[Any]:
    gathered = [item for extract in rule.sources for item in extract(payloads)]
    leading = [item for extract in rule.front for item in extract(payloads)]

    if rule.strategy == MergeStrategy.UNION:
        return _union(leading + gathered)
    if rule.strategy == MergeStrategy.VERBATIM:
        return gathered
    return leading + gathered


def combine(payloads: Payloads) -> MergedProfile:
    """Pure merge of source payloads into a MergedProfile."""
    merged_fields: Dict[str, Any] = {
        field_name: apply_rule(rule, payloads) for field_name, rule in FIELD_RULES.items()
    }
    for field_name, source in PROFILE_PASSTHROUGH.items():
        merged_fields[field_name] = payloads.get(source) or None
    return MergedProfile(**merged_fields)


class DataMerger(BaseService):
    """Builds and stores the merged profile for a subject."""

    def __init__(self, raw_data_repository: RawDataRepository):
        super().__init__()
        self.raw_data_repository = raw_data_repository

    async def run(self, subject_id: uuid.UUID) -> MergedProfile:
        return await self.merge(subject_id)

    async def merge(self, subject_id: uuid.UUID) -> MergedProfile:
        """Merge every ingested record and persist the result under the merged source.

        An empty result is stored too. Re-running with unchanged records
        yields an identical profile.
        """
        records = await self.raw_data_repository.list_by_subject(subject_id, include_merged=False)

        payloads: Dict[DataSource, Dict[str, Any]] = {}
        for record in records:
            try:
                source = DataSource(record.source)
            except ValueError:
                LOGGER.warning(
                    "Skipping raw record with unknown source",
                    extra={"subject_id": str(subject_id), "source": record.source}
                )
                continue
            if source != DataSource.MERGED:
                payloads[source] = record.data or {}

        merged = combine(payloads)

        await self.raw_data_repository.upsert(
            subject_id, DataSource.MERGED, merged.model_dump(mode="json")
        )

        LOGGER.info(
            "Merged raw data",
            extra={
                "subject_id": str(subject_id),
                "sources": sorted(source.value for source in payloads),
                "has_content": merged.has_content(),
            }
        )
        return merged
