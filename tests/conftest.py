"""
Shared fixtures and test utilities for Case Research tests.

Provides mock services, sample data, and reusable fixtures so that all tests
can run without API keys, databases, or external network access.
"""

import sys
import hashlib
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


PROJECT_ID = "11111111-1111-1111-1111-111111111111"
OTHER_PROJECT_ID = "22222222-2222-2222-2222-222222222222"


# ---------------------------------------------------------------------------
# Mock model provider
# ---------------------------------------------------------------------------

class MockModelProvider:
    """Deterministic chat provider that records every call."""

    def __init__(self, name="Mock", available=True, text="Mock answer.", citations=None, error=None):
        self._name = name
        self.available = available
        self.text = text
        self.citations = citations
        self.error = error
        self.calls = []

    @property
    def name(self):
        return self._name

    def is_available(self):
        return self.available

    def generate(self, messages, profile):
        from execution.case_research.providers import GenerationResult
        self.calls.append((messages, profile))
        if self.error is not None:
            raise self.error
        return GenerationResult(text=self.text, citations=list(self.citations or []))


@pytest.fixture
def fast_provider():
    return MockModelProvider(name="MockGemini", text="Fast answer.")


@pytest.fixture
def deep_provider():
    return MockModelProvider(
        name="MockOpenAI",
        text="Under Bardal v Globe & Mail Ltd, the factors are applied.",
        citations=["2008 SCC 39"],
    )


# ---------------------------------------------------------------------------
# Mock embedding service
# ---------------------------------------------------------------------------

class MockEmbeddingService:
    """Deterministic mock embedding provider -- never calls external APIs."""

    supports_batch = True

    def __init__(self, name="MockEmbed", dimensions=1536, available=True, error=None):
        self._name = name
        self._dimensions = dimensions
        self.available = available
        self.error = error
        self.query_calls = 0
        self.batch_calls = 0

    @property
    def name(self):
        return self._name

    @property
    def dimensions(self):
        return self._dimensions

    def is_available(self):
        return self.available

    def embed_query(self, text):
        self.query_calls += 1
        if self.error is not None:
            raise self.error
        return self._deterministic_embedding(text)

    def embed_documents(self, texts):
        self.batch_calls += 1
        if self.error is not None:
            raise self.error
        return [self._deterministic_embedding(t) for t in texts]

    def _deterministic_embedding(self, text):
        h = hashlib.sha256(text.encode()).hexdigest()
        seed = int(h[:8], 16)
        return [((seed + i) % 1000) / 1000.0 for i in range(self._dimensions)]


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService()


@pytest.fixture
def embedding_gateway(mock_embedding_service):
    from execution.case_research.embeddings import EmbeddingGateway
    return EmbeddingGateway(mock_embedding_service)


@pytest.fixture
def empty_gateway():
    """Gateway with no available provider: every embed returns []."""
    from execution.case_research.embeddings import EmbeddingGateway
    return EmbeddingGateway(MockEmbeddingService(available=False))


# ---------------------------------------------------------------------------
# Sample search results and mock search backend
# ---------------------------------------------------------------------------

def make_result(chunk_id, file_id="f1", content="content", score=1.0, **kwargs):
    from execution.case_research.search_backend import SearchResult
    return SearchResult(
        chunk_id=chunk_id,
        file_id=file_id,
        content=content,
        source_file_name=kwargs.pop("source_file_name", f"{file_id}.pdf"),
        source_file_type=kwargs.pop("source_file_type", "pdf"),
        score=score,
        **kwargs,
    )


@pytest.fixture
def sample_search_results():
    return [
        make_result("c1", "f1", "The employee was terminated without cause after 10 years.",
                    score=0.9, page_number=2, section_heading="Termination"),
        make_result("c2", "f2", "Severance pay under the ESA is owed after five years.", score=0.7),
        make_result("c3", "f1", "Notice of termination was given in writing.", score=0.5, page_number=4),
    ]


class MockSearchBackend:
    """In-memory search backend with per-project file scoping."""

    def __init__(self, chunks=None, project_files=None, embedding_dimensions=1536,
                 hybrid_error=None, hybrid_results=None):
        self.chunks = list(chunks or [])
        self.project_files = dict(project_files or {})
        self.embedding_dimensions = embedding_dimensions
        self.hybrid_error = hybrid_error
        self.hybrid_results = hybrid_results
        self.calls = []

    def project_file_ids(self, scope_id):
        self.calls.append(("project_file_ids", scope_id))
        return list(self.project_files.get(scope_id, []))

    def hybrid_search(self, query_text, query_embedding_json, match_count, scope_id, file_type=None):
        self.calls.append(("hybrid_search", query_text, match_count, scope_id, file_type))
        if self.hybrid_error is not None:
            raise self.hybrid_error
        if self.hybrid_results is not None:
            return list(self.hybrid_results)
        allowed = set(self.project_files.get(scope_id, []))
        return [
            c for c in self.chunks
            if c.file_id in allowed and (file_type is None or c.source_file_type == file_type)
        ][:match_count]

    def text_search(self, query_text, file_ids, file_type=None, limit=8):
        self.calls.append(("text_search", query_text, tuple(file_ids), file_type, limit))
        words = [w.lower() for w in query_text.split()]
        matches = [
            c for c in self.chunks
            if c.file_id in file_ids
            and (file_type is None or c.source_file_type == file_type)
            and any(w in c.content.lower() for w in words)
        ]
        return matches[:limit]

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def mock_search_backend(sample_search_results):
    outside = make_result("c9", "f9", "Termination letter for another client.", score=0.99)
    return MockSearchBackend(
        chunks=sample_search_results + [outside],
        project_files={PROJECT_ID: ["f1", "f2"], OTHER_PROJECT_ID: ["f9"]},
    )


# ---------------------------------------------------------------------------
# Mock legal corpus
# ---------------------------------------------------------------------------

class MockLegalCorpus:
    """In-memory curated corpus; substring matching like the SQL lookups."""

    def __init__(self, cases=None, principles=None, sections_by_keyword=None, fail_on=()):
        self.cases = list(cases or [])
        self.principles = list(principles or [])
        self.sections_by_keyword = dict(sections_by_keyword or {})
        self.fail_on = set(fail_on)
        self.calls = []

    def _check(self, method):
        if method in self.fail_on:
            raise RuntimeError(f"{method} unavailable")

    def search_cases(self, terms, limit=20):
        self.calls.append(("search_cases", tuple(terms)))
        self._check("search_cases")
        return [
            c for c in self.cases
            if any(t in f"{c.case_name} {c.summary or ''} {c.ratio or ''}".lower() for t in terms)
        ][:limit]

    def search_principles(self, terms, limit=10):
        self.calls.append(("search_principles", tuple(terms)))
        self._check("search_principles")
        return [
            p for p in self.principles
            if any(t in f"{p.name} {p.description} {p.category}".lower() for t in terms)
        ][:limit]

    def search_legislation_sections(self, keyword):
        self.calls.append(("search_legislation_sections", keyword))
        self._check("search_legislation_sections")
        return list(self.sections_by_keyword.get(keyword, []))


@pytest.fixture
def sample_cases():
    from execution.case_research.knowledge import LegalCase
    return [
        LegalCase(
            case_name="Ordinary v Employer",
            citation="2015 ONSC 100",
            court="Ontario Superior Court",
            court_level="trial",
            decision_date="2015-03-01",
            ratio="Notice turns on the Bardal factors.",
        ),
        LegalCase(
            case_name="Bardal v Globe & Mail Ltd",
            citation="(1960) 24 DLR (2d) 140",
            court="Ontario High Court",
            court_level="trial",
            decision_date="1960-01-01",
            summary="Leading case on reasonable notice.",
            ratio="Reasonable notice depends on character of employment, length of service, age and availability of similar employment.",
            key_holdings=["Notice is assessed case by case", "No rule of thumb"],
            is_landmark=True,
        ),
    ]


@pytest.fixture
def sample_principles():
    from execution.case_research.knowledge import LegalPrinciple
    return [
        LegalPrinciple(
            name="Reasonable Notice",
            category="termination",
            description="An employee dismissed without cause is owed reasonable notice at common law.",
            elements=["Character of employment", "Length of service"],
        ),
    ]


@pytest.fixture
def sample_sections():
    from execution.case_research.knowledge import Legislation, LegislationSection
    esa = Legislation(title="Employment Standards Act, 2000", short_title="ESA", citation="S.O. 2000, c. 41")
    return {
        "notice": [
            LegislationSection(section_number="57", title="Notice periods",
                               content="The notice of termination shall be given...", legislation=esa),
        ],
        "severance": [
            LegislationSection(section_number="64", title="Entitlement to severance",
                               content="An employer who severs an employment relationship...", legislation=esa),
        ],
    }


@pytest.fixture
def mock_corpus(sample_cases, sample_principles, sample_sections):
    return MockLegalCorpus(sample_cases, sample_principles, sample_sections)
