"""Line-level PII filtering and substring redaction for CV text.

Two complementary operations:
- filter_sensitive drops whole lines that look like contact details, dates,
  addresses or bare place names.
- redact keeps the line but replaces sensitive substrings with explicit markers
  so a reader can see something was removed.

Neither operation raises; anything that is not a string is treated as empty.
"""

import re
from typing import Any, Iterable, List, Optional, Pattern, Tuple

from profile_enrichment.services.extraction.constants import (
    INSTITUTION_TERMS,
    JOB_TITLE_TERMS,
    PROFESSIONAL_TERMS,
    SPOKEN_LANGUAGES,
    TECH_ACRONYMS,
    TECH_TOKENS,
)
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

EMAIL_MARKER = "[EMAIL_REMOVED]"
PHONE_MARKER = "[PHONE_REMOVED]"
DATE_MARKER = "[DATE_REMOVED]"
ADDRESS_MARKER = "[ADDRESS_REMOVED]"
POSTAL_CODE_MARKER = "[POSTAL_CODE_REMOVED]"
ID_MARKER = "[ID_REMOVED]"

_MONTHS = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

# Module-level singleton instance
_pii_redactor_instance: Optional["PIIRedactor"] = None


class PIIRedactor:
    """Rule-based detector for personal data in free text."""

    EMAIL_PATTERN = r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b"
    PHONE_PATTERN = r"\+?\d{1,3}[-\s]?\d{6,12}"
    DATE_PATTERNS = [
        r"\b\d{4}-\d{2}-\d{2}\b",
        r"\b\d{1,2}/\d{1,2}/\d{4}\b",
        rf"\b{_MONTHS}\.?\s+\d{{1,2}},?\s+\d{{4}}\b",
        rf"\b\d{{1,2}}\s+{_MONTHS}\.?,?\s+\d{{4}}\b",
    ]
    YEAR_PATTERN = r"\b(?:19|20)\d{2}\b"
    ADDRESS_KEYWORD_PATTERN = (
        r"\b(?:street|st\.|road|rd\.|avenue|ave\.|blvd|boulevard|lane|city|district"
        r"|region|village|zip|postal|postcode|location)\b"
    )
    NUMERIC_LEADING_PATTERN = r"^\d{1,4}\s+\w+(?:\s+\w+){0,4}$"
    SINGLE_CAPITALIZED_WORD_PATTERN = r"^[A-Z][a-z'\-]{3,19}$"
    COMMA_PLACE_PATTERN = (
        r"^[A-Z][A-Za-z'\-]+(?:\s+[A-Z][a-z'\-]+)*\s*,\s*[A-Z][A-Za-z'\-]+(?:\s+[A-Za-z'\-]+)*$"
    )
    DASH_PLACE_PATTERN = (
        r"^[A-Z][A-Za-z'\-]+(?:\s+[A-Z][a-z'\-]+)*\s+-\s+[A-Z][A-Za-z'\-]+(?:\s+[A-Za-z'\-]+)*$"
    )
    BULLET_ONLY_PATTERN = r"^[•\-\*·▪●◦–>]$"
    ALL_CAPS_PATTERN = r"^[A-Z][A-Z\s]*[A-Z]$"

    # Substring rules for redact(), applied in order
    STREET_ADDRESS_PATTERN = (
        r"\b\d{1,5}\s+(?:[A-Za-z']+\s+){0,3}"
        r"(?:street|st\.|road|rd\.|avenue|ave\.|boulevard|blvd|lane|ln\.|drive|dr\.)"
    )
    POSTAL_CODE_PATTERN = r"\b(?:zip(?:\s+code)?|postal\s+code|postcode)\s*[:#]?\s*\d[\dA-Z-]{2,9}\b"
    ID_PATTERN = (
        r"\b(?:id|passport|ssn|national\s+id)\b(?:\s+(?:no\.?|number))?\s*[:#]?\s*(?=[A-Z-]*\d)[A-Z0-9-]{5,}\b"
    )

    def __init__(self):
        self.email_regex = re.compile(self.EMAIL_PATTERN, re.IGNORECASE)
        self.phone_regex = re.compile(self.PHONE_PATTERN)
        self.date_regexes = [re.compile(p, re.IGNORECASE) for p in self.DATE_PATTERNS]
        self.year_regex = re.compile(self.YEAR_PATTERN)
        self.address_keyword_regex = re.compile(self.ADDRESS_KEYWORD_PATTERN, re.IGNORECASE)
        self.numeric_leading_regex = re.compile(self.NUMERIC_LEADING_PATTERN)
        self.single_word_regex = re.compile(self.SINGLE_CAPITALIZED_WORD_PATTERN)
        self.comma_place_regex = re.compile(self.COMMA_PLACE_PATTERN)
        self.dash_place_regex = re.compile(self.DASH_PLACE_PATTERN)
        self.bullet_only_regex = re.compile(self.BULLET_ONLY_PATTERN)
        self.all_caps_regex = re.compile(self.ALL_CAPS_PATTERN)

        self.redaction_rules: List[Tuple[Pattern, str]] = [
            (self.email_regex, EMAIL_MARKER),
            (re.compile(self.ID_PATTERN, re.IGNORECASE), ID_MARKER),
            (re.compile(self.POSTAL_CODE_PATTERN, re.IGNORECASE), POSTAL_CODE_MARKER),
            *[(regex, DATE_MARKER) for regex in self.date_regexes],
            (re.compile(self.STREET_ADDRESS_PATTERN, re.IGNORECASE), ADDRESS_MARKER),
            (self.phone_regex, PHONE_MARKER),
        ]

        self.allowed_terms = frozenset(
            JOB_TITLE_TERMS
            + INSTITUTION_TERMS
            + PROFESSIONAL_TERMS
            + list(TECH_TOKENS)
            + list(SPOKEN_LANGUAGES)
        )
        self.tech_acronyms = frozenset(TECH_ACRONYMS)

        # Ordered (name, predicate) rules; first hit marks the line sensitive
        self.line_rules = [
            ("bullet_only", self._is_bullet_only),
            ("punctuation_only", self._is_punctuation_only),
            ("digits_only", self._is_digits_only),
            ("all_caps", self._is_unknown_all_caps),
            ("email", lambda line: bool(self.email_regex.search(line))),
            ("phone", lambda line: bool(self.phone_regex.search(line))),
            ("date", self._has_date),
            ("year", self._is_bare_year),
            ("place", self._is_place),
            ("address_keyword", self._has_address_keyword),
            ("numeric_leading", self._is_numeric_leading_phrase),
            ("single_capitalized_word", self._is_unknown_capitalized_word),
        ]

    @classmethod
    def get_instance(cls) -> "PIIRedactor":
        """Get or create the shared PIIRedactor."""
        global _pii_redactor_instance
        if _pii_redactor_instance is None:
            _pii_redactor_instance = cls()
        return _pii_redactor_instance

    def redact(self, line: Any) -> str:
        """Replace sensitive substrings with markers; unmatched text is returned unchanged."""
        if not isinstance(line, str):
            return ""

        redacted = line
        for regex, marker in self.redaction_rules:
            redacted = regex.sub(marker, redacted)
        return redacted

    def is_sensitive(self, line: Any) -> bool:
        """Whether the whole line should be dropped."""
        if not isinstance(line, str):
            return True

        trimmed = line.strip()
        if not trimmed:
            return True

        for name, rule in self.line_rules:
            if rule(trimmed):
                LOGGER.debug("Dropping sensitive line", extra={"rule": name})
                return True
        return False

    def filter_sensitive(self, lines: Any) -> List[str]:
        """Return the lines that are not sensitive, trimmed, in their original order."""
        if not isinstance(lines, (list, tuple)):
            return []
        return [line.strip() for line in lines if not self.is_sensitive(line)]

    def _contains_allowed_term(self, line: str) -> bool:
        lowered = line.lower()
        words = {word.strip(".") for word in re.findall(r"[a-z0-9+#.]+", lowered)}
        if words & self.allowed_terms:
            return True
        # Multi-word terms such as "machine learning"
        return any(" " in term and term in lowered for term in self.allowed_terms)

    def _is_bullet_only(self, line: str) -> bool:
        return bool(self.bullet_only_regex.match(line))

    def _is_punctuation_only(self, line: str) -> bool:
        return not any(ch.isalnum() for ch in line)

    def _is_digits_only(self, line: str) -> bool:
        return bool(re.fullmatch(r"[\d\s]+", line))

    def _is_unknown_all_caps(self, line: str) -> bool:
        if not self.all_caps_regex.match(line):
            return False
        words = line.lower().split()
        return not all(word in self.tech_acronyms for word in words)

    def _has_date(self, line: str) -> bool:
        return any(regex.search(line) for regex in self.date_regexes)

    def _is_bare_year(self, line: str) -> bool:
        if re.fullmatch(r"\d{4}", line):
            return True
        return len(line) < 10 and bool(self.year_regex.search(line))

    def _is_place(self, line: str) -> bool:
        if not (self.comma_place_regex.match(line) or self.dash_place_regex.match(line)):
            return False
        return not self._contains_allowed_term(line)

    def _has_address_keyword(self, line: str) -> bool:
        if not self.address_keyword_regex.search(line):
            return False
        lowered = line.lower()
        return not any(term in lowered for term in INSTITUTION_TERMS)

    def _is_numeric_leading_phrase(self, line: str) -> bool:
        if not self.numeric_leading_regex.match(line):
            return False
        return not self._contains_allowed_term(line)

    def _is_unknown_capitalized_word(self, line: str) -> bool:
        if not self.single_word_regex.match(line):
            return False
        return line.lower() not in self.allowed_terms


def redact(line: Any) -> str:
    return PIIRedactor.get_instance().redact(line)


def filter_sensitive(lines: Iterable[Any]) -> List[str]:
    return PIIRedactor.get_instance().filter_sensitive(lines)
