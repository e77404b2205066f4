"""
Curated Legal Knowledge Corpus and Context Builder

The corpus holds Ontario employment-law reference material curated outside
this library: case-law summaries, doctrinal principles, and statute sections
tagged with keywords. The builder turns a user question into a bounded
markdown block drawn from that corpus:

    ## Relevant Case Law           (up to 5, landmark cases first)
    ## Relevant Legal Principles   (up to 5)
    ## Relevant Legislation        (up to 3 sections, first keyword with hits)

Legislation scanning stops at the first keyword that yields any sections, so
the same statute is never cited twice under different keywords.
"""

import re
import logging
from typing import Optional
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .db import DatabaseConfig, PostgresStore

logger = logging.getLogger(__name__)


STOP_WORDS = frozenset([
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "can", "shall", "to", "of", "in", "for",
    "on", "with", "at", "by", "from", "as", "into", "through", "during",
    "before", "after", "above", "below", "between", "and", "but", "or",
    "not", "no", "nor", "so", "yet", "both", "each", "every", "all",
    "any", "few", "more", "most", "other", "some", "such", "than", "too",
    "very", "just", "because", "about", "what", "which", "who", "whom",
    "this", "that", "these", "those", "my", "your", "his", "her", "its",
    "our", "their", "i", "me", "you", "he", "she", "it", "we", "they",
])

_NON_KEYWORD_CHARS = re.compile(r"[^a-z0-9\s-]")


def extract_keywords(query: str) -> list[str]:
    """
    Keywords of a query, in order of appearance.

    Lowercases, strips punctuation (hyphens survive), drops stop words and
    tokens of two characters or fewer. Duplicates are kept.
    """
    if not query:
        return []
    cleaned = _NON_KEYWORD_CHARS.sub("", query.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]


# =============================================================================
# Corpus records
# =============================================================================

@dataclass(frozen=True)
class LegalCase:
    case_name: str
    citation: str
    court: str = ""
    court_level: str = ""
    decision_date: str = ""
    summary: Optional[str] = None
    ratio: Optional[str] = None
    key_holdings: list[str] = field(default_factory=list)
    is_landmark: bool = False
    neutral_citation: Optional[str] = None


@dataclass(frozen=True)
class LegalPrinciple:
    name: str
    category: str
    description: str = ""
    elements: list[str] = field(default_factory=list)
    current_status: str = "active"


@dataclass(frozen=True)
class Legislation:
    title: str
    citation: str = ""
    short_title: Optional[str] = None
    jurisdiction: str = "ON"

    @property
    def display_title(self) -> str:
        return self.short_title or self.title or "Unknown"


@dataclass(frozen=True)
class LegislationSection:
    section_number: str
    content: str
    title: Optional[str] = None
    keywords: list[str] = field(default_factory=list)
    legislation: Optional[Legislation] = None


# =============================================================================
# Row validation
# =============================================================================

class _CorpusRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _arrays_and_dates(cls, value, info):
        if value is None:
            annotation = cls.model_fields[info.field_name].annotation
            if annotation == list[str]:
                return []
            if annotation is str:
                return ""
            return None
        # psycopg2 returns datetime.date for date columns
        if hasattr(value, "isoformat") and not isinstance(value, str):
            return value.isoformat()
        return value


class CaseRow(_CorpusRow):
    case_name: str
    citation: str
    court: str = ""
    court_level: str = ""
    decision_date: str = ""
    summary: Optional[str] = None
    ratio: Optional[str] = None
    key_holdings: list[str] = []
    is_landmark: bool = False
    neutral_citation: Optional[str] = None

    def to_record(self) -> LegalCase:
        return LegalCase(**self.model_dump())


class PrincipleRow(_CorpusRow):
    name: str
    category: str = ""
    description: str = ""
    elements: list[str] = []
    current_status: str = "active"

    def to_record(self) -> LegalPrinciple:
        return LegalPrinciple(**self.model_dump())


class LegislationSectionRow(_CorpusRow):
    section_number: str
    content: str = ""
    title: Optional[str] = None
    keywords: list[str] = []
    legislation_title: Optional[str] = None
    legislation_short_title: Optional[str] = None
    legislation_citation: Optional[str] = None

    def to_record(self) -> LegislationSection:
        legislation = None
        if self.legislation_title or self.legislation_short_title:
            legislation = Legislation(
                title=self.legislation_title or "",
                short_title=self.legislation_short_title,
                citation=self.legislation_citation or "",
            )
        return LegislationSection(
            section_number=self.section_number,
            content=self.content,
            title=self.title,
            keywords=list(self.keywords),
            legislation=legislation,
        )


def _validate_rows(rows: list[dict], model: type[_CorpusRow], label: str) -> list:
    records = []
    for row in rows:
        try:
            records.append(model.model_validate(row).to_record())
        except ValidationError as e:
            logger.warning(f"{label}: skipping malformed row: {e.error_count()} validation errors")
    return records


def _like_patterns(terms: list[str]) -> list[str]:
    escaped = (t.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") for t in terms)
    return [f"%{t}%" for t in escaped]


# =============================================================================
# Postgres corpus
# =============================================================================

class PostgresLegalCorpus(PostgresStore):
    """Read-only keyword lookups over the curated legal tables."""

    def __init__(self, db_config: Optional[DatabaseConfig] = None, pool=None):
        super().__init__(db_config, pool=pool)

    def search_cases(self, terms: list[str], limit: int = 20) -> list[LegalCase]:
        """Cases whose name, summary or ratio contains any term; landmark cases first."""
        if not terms:
            return []
        patterns = _like_patterns(terms)
        sql = """
        SELECT * FROM legal_cases
        WHERE case_name ILIKE ANY(%s) OR summary ILIKE ANY(%s) OR ratio ILIKE ANY(%s)
        ORDER BY is_landmark DESC, decision_date DESC NULLS LAST, case_name
        LIMIT %s
        """
        rows = self._fetch_all(sql, [patterns, patterns, patterns, limit], "search_cases")
        return _validate_rows(rows, CaseRow, "search_cases")

    def search_principles(self, terms: list[str], limit: int = 10) -> list[LegalPrinciple]:
        """Principles whose name, description or category contains any term."""
        if not terms:
            return []
        patterns = _like_patterns(terms)
        sql = """
        SELECT * FROM legal_principles
        WHERE name ILIKE ANY(%s) OR description ILIKE ANY(%s) OR category ILIKE ANY(%s)
        ORDER BY name
        LIMIT %s
        """
        rows = self._fetch_all(sql, [patterns, patterns, patterns, limit], "search_principles")
        return _validate_rows(rows, PrincipleRow, "search_principles")

    def search_legislation_sections(self, keyword: str) -> list[LegislationSection]:
        """Sections tagged with the keyword, joined with their statute."""
        sql = """
        SELECT s.section_number, s.title, s.content, s.keywords,
               l.title AS legislation_title,
               l.short_title AS legislation_short_title,
               l.citation AS legislation_citation
        FROM legal_legislation_sections s
        LEFT JOIN legal_legislation l ON l.id = s.legislation_id
        WHERE s.keywords @> ARRAY[%s]::text[]
        ORDER BY l.title, s.section_number
        """
        rows = self._fetch_all(sql, [keyword], "search_legislation_sections")
        return _validate_rows(rows, LegislationSectionRow, "search_legislation_sections")

    def get_case_by_citation(self, citation: str) -> Optional[LegalCase]:
        sql = "SELECT * FROM legal_cases WHERE citation = %s LIMIT 1"
        cases = _validate_rows(
            self._fetch_all(sql, [citation], "get_case_by_citation"), CaseRow, "get_case_by_citation"
        )
        return cases[0] if cases else None


# =============================================================================
# Context builder
# =============================================================================

def render_cases(cases: list[LegalCase]) -> list[str]:
    lines = ["## Relevant Case Law\n"]
    for c in cases:
        lines.append(f"### {c.case_name} ({c.citation})")
        lines.append(f"**Court:** {c.court} | **Level:** {c.court_level} | **Date:** {c.decision_date}")
        if c.ratio:
            lines.append(f"**Ratio:** {c.ratio}")
        if c.key_holdings:
            lines.append("**Key Holdings:**")
            lines.extend(f"- {h}" for h in c.key_holdings)
        lines.append("")
    return lines


def render_principles(principles: list[LegalPrinciple]) -> list[str]:
    lines = ["## Relevant Legal Principles\n"]
    for p in principles:
        lines.append(f"### {p.name} ({p.category})")
        lines.append(p.description)
        if p.elements:
            lines.append("**Elements:**")
            lines.extend(f"- {e}" for e in p.elements)
        lines.append(f"**Status:** {p.current_status}")
        lines.append("")
    return lines


def render_legislation(sections: list[LegislationSection]) -> list[str]:
    lines = ["## Relevant Legislation\n"]
    for s in sections:
        title = s.legislation.display_title if s.legislation else "Unknown"
        lines.append(f"### {title} s.{s.section_number}")
        if s.title:
            lines.append(f"**{s.title}**")
        lines.append(s.content)
        lines.append("")
    return lines


class LegalContextBuilder:
    """
    Builds the knowledge-base block for a question.

    Each lookup is independent: a failing case, principle, or legislation
    lookup drops only its own section.
    """

    max_cases = 5
    max_principles = 5
    max_legislation_keywords = 3
    max_legislation_sections = 3

    def __init__(self, corpus):
        """
        Args:
            corpus: Object with search_cases, search_principles and
                search_legislation_sections (e.g. PostgresLegalCorpus)
        """
        self.corpus = corpus

    def build_legal_context(self, query: str) -> str:
        """
        Render case law, principles and legislation relevant to a query.

        Returns:
            Markdown block, or "" when the query is empty or nothing matched
        """
        if not query or not query.strip():
            return ""

        keywords = extract_keywords(query)
        if not keywords:
            return ""

        lines = []
        cases = self._find_cases(keywords)
        if cases:
            lines.extend(render_cases(cases))

        principles = self._find_principles(keywords)
        if principles:
            lines.extend(render_principles(principles))

        sections = self._find_legislation(keywords)
        if sections:
            lines.extend(render_legislation(sections))

        logger.info(
            f"Legal context: {len(cases)} cases, {len(principles)} principles, "
            f"{len(sections)} legislation sections"
        )
        return "\n".join(lines).rstrip("\n")

    def _find_cases(self, keywords: list[str]) -> list[LegalCase]:
        try:
            cases = self.corpus.search_cases(keywords)
        except Exception as e:
            logger.warning(f"Case law lookup failed, omitting section: {e}")
            return []
        # Stable sort keeps corpus order within landmark / non-landmark groups
        cases = sorted(cases, key=lambda c: not c.is_landmark)
        return cases[:self.max_cases]

    def _find_principles(self, keywords: list[str]) -> list[LegalPrinciple]:
        try:
            principles = self.corpus.search_principles(keywords)
        except Exception as e:
            logger.warning(f"Principle lookup failed, omitting section: {e}")
            return []
        return principles[:self.max_principles]

    def _find_legislation(self, keywords: list[str]) -> list[LegislationSection]:
        try:
            for keyword in keywords[:self.max_legislation_keywords]:
                sections = self.corpus.search_legislation_sections(keyword)
                if sections:
                    logger.debug(f"Legislation matched on keyword '{keyword}'")
                    return sections[:self.max_legislation_sections]
        except Exception as e:
            logger.warning(f"Legislation lookup failed, omitting section: {e}")
        return []
