"""
Citation Extraction and Source References

Two kinds of citation flow through an answer:

- Legal authority citations written by the model itself
  (e.g. "2008 SCC 39", "R.S.O. 1990, c. E.14"), pulled out of the
  response text with pattern matching.
- [Source N] labels pointing back at the ranked document chunks that
  were placed in the prompt.
"""

import re
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .search_backend import SearchResult

logger = logging.getLogger(__name__)


# Canadian legal citation patterns
CITATION_PATTERNS = [
    # Neutral citations: 2008 SCC 39, 2020 ONCA 123, 2015 CanLII 1234
    re.compile(r"\d{4}\s+(?:SCC|ONCA|ONSC|BCCA|ABCA|CanLII)\s+\d+"),
    # Reporter citations: [1997] 3 SCR 701, [2004] OJ No 123
    re.compile(r"\[\d{4}\]\s+\d+\s+(?:SCR|OR|OJ)\s+(?:No\s+)?\d+"),
    # Statutes: R.S.O. 1990, c. E.14 / S.O. 2000, c. 41
    re.compile(r"(?:R\.S\.O\.|S\.O\.|R\.S\.C\.)\s+\d{4},\s+c\.\s+[\w.-]+"),
    # Regulations: O. Reg. 288/01
    re.compile(r"O\.\s*Reg\.\s*\d+/\d+"),
]

SOURCE_LABEL_PATTERN = re.compile(r"\[Source (\d+)\]")

CONTENT_PREVIEW_CHARS = 200


def extract_citations(text: Optional[str]) -> list[str]:
    """
    Extract legal citations from model output.

    Args:
        text: Model response text (None is treated as empty)

    Returns:
        De-duplicated citations. Grouped by pattern, first-seen order
        within each group.
    """
    if not text or not isinstance(text, str):
        return []

    citations = []
    for pattern in CITATION_PATTERNS:
        citations.extend(pattern.findall(text))

    return list(dict.fromkeys(citations))


@dataclass(frozen=True)
class SourceReference:
    """A numbered pointer from an answer back to a retrieved chunk."""
    source_index: int
    chunk_id: str
    file_id: str
    file_name: str
    file_type: str
    page_number: Optional[int] = None
    section_heading: Optional[str] = None
    content_preview: str = ""
    timestamp_start: Optional[float] = None

    def label(self) -> str:
        """Inline label the model is asked to use."""
        return f"[Source {self.source_index}]"

    def short_format(self) -> str:
        """Human-readable location, e.g. [Contract.pdf, page 4, section "Termination"]."""
        parts = [self.file_name]
        if self.page_number:
            parts.append(f"page {self.page_number}")
        if self.section_heading:
            parts.append(f'section "{self.section_heading}"')
        return f"[{', '.join(parts)}]"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["label"] = self.label()
        data["short_citation"] = self.short_format()
        return data


def sources_from_results(results: list[SearchResult]) -> list[SourceReference]:
    """Number ranked search results as [Source 1..N], in rank order."""
    return [
        SourceReference(
            source_index=i,
            chunk_id=r.chunk_id,
            file_id=r.file_id,
            file_name=r.source_file_name,
            file_type=r.source_file_type,
            page_number=r.page_number,
            section_heading=r.section_heading,
            content_preview=r.content[:CONTENT_PREVIEW_CHARS],
            timestamp_start=r.timestamp_start,
        )
        for i, r in enumerate(results, start=1)
    ]


def referenced_sources(text: str, sources: list[SourceReference]) -> list[SourceReference]:
    """Sources whose [Source N] label appears in the text, in source order."""
    if not text or not sources:
        return []
    cited = {int(n) for n in SOURCE_LABEL_PATTERN.findall(text)}
    return [s for s in sources if s.source_index in cited]


def merge_citations(
    response_text: str,
    provider_citations: list[str],
    sources: list[SourceReference],
) -> list[str]:
    """
    Combine model-reported authority citations with the [Source N] labels
    the response actually uses.

    Returns:
        Provider citations first, then source labels; no duplicates
    """
    labels = [s.label() for s in referenced_sources(response_text, sources)]
    return list(dict.fromkeys([*provider_citations, *labels]))
