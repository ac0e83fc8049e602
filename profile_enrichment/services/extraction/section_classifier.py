"""Rule-based CV section classifier.

Sorts the lines of an extracted CV into the fixed profile buckets using an
ordered cascade of tiers. Each tier only runs when the earlier ones leave
work for it, so the tier order is the tie-break:

1. Heading-anchored sections (keywords and synonyms)
2. Line-level fallback for unassigned lines (course -> project -> military)
3. Document-wide token and pattern extraction, only when every bucket is empty
4. Raw text chunks into work_experience, only when still empty

Every bucket is then bullet-stripped, PII-filtered, redacted and de-duplicated.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from profile_enrichment.models.profile import ProfileField, StructuredBuckets
from profile_enrichment.services.extraction.constants import (
    BULLET_PREFIX_PATTERN,
    COURSE_PATTERN,
    EDUCATION_PATTERN,
    HEADING_CONNECTOR_PATTERN,
    HEADING_KEYWORDS,
    HEADING_MINOR_WORDS,
    HEADING_SYNONYMS,
    JOB_TITLE_PATTERN,
    LAST_RESORT_MAX_CHUNKS,
    LAST_RESORT_MIN_CHUNK,
    LAST_RESORT_TRUNCATE,
    LIST_SEPARATOR_PATTERN,
    MAX_HEADING_LENGTH,
    MILITARY_PATTERN,
    PROJECT_PATTERN,
    SPOKEN_LANGUAGES,
    STOP_KEYWORDS,
    TECH_TOKENS,
    YEAR_RANGE_PATTERN,
)
from profile_enrichment.services.redaction.pii_redactor import PIIRedactor
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Module-level singleton instance
_section_classifier_instance: Optional["SectionClassifier"] = None

LIST_FIELDS = (ProfileField.SKILLS, ProfileField.LANGUAGES)


@dataclass
class ClassificationContext:
    """Mutable working state shared by the tiers of one classify() call."""

    raw_text: str
    lines: List[str]
    buckets: Dict[ProfileField, List[str]] = field(
        default_factory=lambda: {bucket: [] for bucket in ProfileField}
    )
    # Indexes of lines that are headings or already placed in a bucket
    consumed: Set[int] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not any(self.buckets.values())

    def assign(self, bucket: ProfileField, index: int, entry: str) -> None:
        self.buckets[bucket].append(entry)
        self.consumed.add(index)


class SectionClassifier:
    """Classifies free CV text into StructuredBuckets.

    Pure and deterministic: the same text always yields the same buckets,
    and malformed input yields empty buckets rather than an exception.
    """

    def __init__(self, redactor: Optional[PIIRedactor] = None):
        self.redactor = redactor or PIIRedactor.get_instance()

        self.heading_index: Dict[str, ProfileField] = {}
        for bucket, keywords in HEADING_KEYWORDS.items():
            for keyword in keywords:
                self.heading_index[keyword] = bucket
        self.heading_index.update(HEADING_SYNONYMS)
        self.heading_prefixes = sorted(self.heading_index, key=len, reverse=True)
        self.stop_keywords = frozenset(STOP_KEYWORDS)

        self.bullet_regex = re.compile(BULLET_PREFIX_PATTERN)
        self.heading_connector_regex = re.compile(HEADING_CONNECTOR_PATTERN)
        self.separator_regex = re.compile(LIST_SEPARATOR_PATTERN)
        self.course_regex = re.compile(COURSE_PATTERN, re.IGNORECASE)
        self.project_regex = re.compile(PROJECT_PATTERN, re.IGNORECASE)
        self.military_regex = re.compile(MILITARY_PATTERN, re.IGNORECASE)
        self.education_regex = re.compile(EDUCATION_PATTERN, re.IGNORECASE)
        self.job_title_regex = re.compile(JOB_TITLE_PATTERN, re.IGNORECASE)
        self.year_range_regex = re.compile(YEAR_RANGE_PATTERN, re.IGNORECASE)
        self.tech_token_regexes = self._compile_token_patterns(TECH_TOKENS)
        self.language_token_regexes = self._compile_token_patterns(SPOKEN_LANGUAGES)

        # Line-level fallback, first match wins
        self.line_detectors: List[Tuple[ProfileField, Callable[[str], bool]]] = [
            (ProfileField.COURSES, self._is_course_line),
            (ProfileField.PROJECTS, lambda line: bool(self.project_regex.search(line))),
            (ProfileField.MILITARY, lambda line: bool(self.military_regex.search(line))),
        ]

        self.tiers: List[Tuple[str, Callable[[ClassificationContext], None]]] = [
            ("headings", self._extract_by_headings),
            ("line_fallback", self._classify_unassigned_lines),
            ("document_wide", self._extract_document_wide),
            ("last_resort", self._extract_last_resort),
        ]

    @classmethod
    def get_instance(cls) -> "SectionClassifier":
        """Get or create the shared SectionClassifier."""
        global _section_classifier_instance
        if _section_classifier_instance is None:
            _section_classifier_instance = cls()
        return _section_classifier_instance

    def classify(self, raw_text: Any) -> StructuredBuckets:
        """Classify CV text into buckets. Never raises."""
        if not isinstance(raw_text, str) or not raw_text.strip():
            return StructuredBuckets()

        try:
            lines = [line.strip() for line in raw_text.splitlines() if line.strip()]
            context = ClassificationContext(raw_text=raw_text, lines=lines)

            for name, tier in self.tiers:
                tier(context)
                LOGGER.debug(
                    "Classification tier finished",
                    extra={"tier": name, "entries": sum(len(v) for v in context.buckets.values())}
                )

            return StructuredBuckets(
                **{bucket.value: self._finalize(bucket, entries) for bucket, entries in context.buckets.items()}
            )
        except Exception as e:
            LOGGER.error(f"CV classification failed, returning empty buckets: {e}", exc_info=True)
            return StructuredBuckets()

    def match_heading(self, line: str) -> Optional[Tuple[ProfileField, str]]:
        """Return (bucket, inline content) when the line is a known bucket heading."""
        raw_label, inline = self._split_heading(line)
        if raw_label is None:
            return None
        label = self._normalize_label(raw_label)
        bucket = self.heading_index.get(label)
        if bucket is None:
            bucket = self._match_heading_prefix(raw_label, label)
        if bucket is None:
            return None
        return bucket, inline

    def is_stop_heading(self, line: str) -> bool:
        raw_label, _ = self._split_heading(line)
        return raw_label is not None and self._normalize_label(raw_label) in self.stop_keywords

    def looks_like_heading(self, line: str) -> bool:
        """Heading-shaped line with no bucket signal: short, no commas, colon-terminated or all caps."""
        if len(line) >= MAX_HEADING_LENGTH or "," in line:
            return False
        if line.endswith(":"):
            return True
        letters = [ch for ch in line if ch.isalpha()]
        return bool(letters) and line.isupper() and len(line.split()) >= 2

    def _split_heading(self, line: str) -> Tuple[Optional[str], str]:
        """Split a candidate heading into its label (original casing) and inline content."""
        text = self.bullet_regex.sub("", line).lstrip("#").strip()

        if ":" in text:
            label, _, inline = text.partition(":")
            if not label.strip() or len(label) >= MAX_HEADING_LENGTH:
                return None, ""
            return label.strip(), inline.strip()

        if len(text) >= MAX_HEADING_LENGTH:
            return None, ""
        return text, ""

    def _match_heading_prefix(self, raw_label: str, label: str) -> Optional[ProfileField]:
        """Longest keyword that starts the label on a word boundary.

        The rest of the label must open with a connector ("and", "&", "(") or the
        label must be title-cased, so sentences such as "Experience with Go" stay content.
        """
        if "," in raw_label or raw_label.endswith("."):
            return None

        for keyword in self.heading_prefixes:
            if not label.startswith(keyword):
                continue
            rest = label[len(keyword):]
            if rest[:1].isalnum():
                continue
            if self.heading_connector_regex.match(rest) or self._is_title_cased(raw_label):
                return self.heading_index[keyword]
            return None
        return None

    @staticmethod
    def _is_title_cased(raw_label: str) -> bool:
        words = re.findall(r"[^\W\d_][\w'\-]*", raw_label)
        return bool(words) and all(
            word[0].isupper() or word.lower() in HEADING_MINOR_WORDS for word in words
        )

    @staticmethod
    def _normalize_label(label: str) -> str:
        return " ".join(label.lower().split())

    def _extract_by_headings(self, context: ClassificationContext) -> None:
        current: Optional[ProfileField] = None

        for index, line in enumerate(context.lines):
            heading = self.match_heading(line)
            if heading is not None:
                current, inline = heading
                context.consumed.add(index)
                if inline:
                    context.assign(current, index, inline)
                continue

            if self.is_stop_heading(line):
                context.consumed.add(index)
                current = None
                continue

            if current is None:
                continue

            if self.looks_like_heading(line):
                current = None
                continue

            context.assign(current, index, line)

    def _classify_unassigned_lines(self, context: ClassificationContext) -> None:
        for index, line in enumerate(context.lines):
            if index in context.consumed:
                continue
            for bucket, detector in self.line_detectors:
                if detector(line):
                    context.assign(bucket, index, line)
                    break

    def _extract_document_wide(self, context: ClassificationContext) -> None:
        if not context.is_empty():
            return

        lowered = context.raw_text.lower()
        context.buckets[ProfileField.SKILLS].extend(
            self._find_tokens(lowered, self.tech_token_regexes)
        )
        context.buckets[ProfileField.LANGUAGES].extend(
            self._find_tokens(lowered, self.language_token_regexes)
        )

        for index, line in enumerate(context.lines):
            if self.education_regex.search(line):
                context.assign(ProfileField.EDUCATION, index, line)
            elif (
                self.job_title_regex.search(line)
                or self.bullet_regex.match(line)
                or self.year_range_regex.search(line)
            ):
                context.assign(ProfileField.WORK_EXPERIENCE, index, line)

        if not context.is_empty():
            LOGGER.info("No section headings found, used document-wide extraction")

    def _extract_last_resort(self, context: ClassificationContext) -> None:
        if not context.is_empty():
            return

        chunks = [
            chunk.strip()
            for chunk in re.split(r"(?<=[.!?])\s+|\n+", context.raw_text)
            if len(chunk.strip()) >= LAST_RESORT_MIN_CHUNK
        ]
        if chunks:
            context.buckets[ProfileField.WORK_EXPERIENCE].extend(chunks[:LAST_RESORT_MAX_CHUNKS])
        else:
            context.buckets[ProfileField.WORK_EXPERIENCE].append(
                context.raw_text.strip()[:LAST_RESORT_TRUNCATE]
            )
        LOGGER.info("Falling back to raw text chunks for work experience")

    def _finalize(self, bucket: ProfileField, entries: List[str]) -> List[str]:
        """Strip bullets, drop sensitive lines, redact, split list buckets and de-duplicate."""
        cleaned = [self.bullet_regex.sub("", entry).strip() for entry in entries]
        kept = [self.redactor.redact(entry) for entry in self.redactor.filter_sensitive(cleaned)]

        if bucket in LIST_FIELDS:
            kept = [item.strip() for entry in kept for item in self.separator_regex.split(entry)]

        result: List[str] = []
        seen: Set[str] = set()
        for entry in kept:
            if entry and entry not in seen:
                seen.add(entry)
                result.append(entry)
        return result

    def _is_course_line(self, line: str) -> bool:
        return bool(self.course_regex.search(line)) and not self.military_regex.search(line)

    @staticmethod
    def _compile_token_patterns(tokens: Dict[str, str]) -> List[Tuple[re.Pattern, str]]:
        return [
            (re.compile(rf"(?<![a-z0-9]){re.escape(token)}(?![a-z0-9+#])"), canonical)
            for token, canonical in tokens.items()
        ]

    @staticmethod
    def _find_tokens(lowered_text: str, patterns: List[Tuple[re.Pattern, str]]) -> List[str]:
        """Canonical names of tokens present in the text, by first occurrence."""
        hits = []
        for regex, canonical in patterns:
            match = regex.search(lowered_text)
            if match:
                hits.append((match.start(), canonical))
        return [canonical for _, canonical in sorted(hits)]


def classify(raw_text: Any) -> StructuredBuckets:
    return SectionClassifier.get_instance().classify(raw_text)
