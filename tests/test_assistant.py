"""
Tests for execution/case_research/assistant.py

Covers: the end-to-end ask() flow with in-memory doubles -- retrieval limit
from the effort profile, knowledge context skipped for quick, search context
placed after case context, merged citations, and fail-fast routing.
"""

import pytest

from tests.conftest import MockModelProvider, PROJECT_ID


@pytest.fixture
def assistant_parts(mock_search_backend, embedding_gateway, mock_corpus, fast_provider):
    from execution.case_research.knowledge import LegalContextBuilder
    from execution.case_research.retriever import HybridRetriever
    from execution.case_research.router import ModelRouter

    deep = MockModelProvider(
        name="MockOpenAI",
        text="Per 2008 SCC 39 and the termination letter [Source 1], notice is owed.",
        citations=["2008 SCC 39"],
    )
    retriever = HybridRetriever(mock_search_backend, embedding_gateway)
    router = ModelRouter(fast_provider, deep, knowledge_builder=LegalContextBuilder(mock_corpus))
    return retriever, router, deep


class TestLegalResearchAssistant:

    def test_deep_answer_with_sources(self, assistant_parts, mock_search_backend):
        from execution.case_research.assistant import LegalResearchAssistant
        retriever, router, deep = assistant_parts
        assistant = LegalResearchAssistant(retriever, router)

        result = assistant.ask("reasonable notice", PROJECT_ID, effort_level="deep",
                               case_context="Client employed 10 years.")

        assert result.answer.provider_used.value == "deep_reasoning"
        assert [s.label() for s in result.sources] == ["[Source 1]", "[Source 2]", "[Source 3]"]
        assert result.citations == ["2008 SCC 39", "[Source 1]"]
        assert mock_search_backend.calls[0][2] == 15

        user = deep.calls[0][0][-1]["content"]
        assert "## Relevant Case Law" in user
        assert "[Source N]" in user
        assert user.index("Client employed 10 years.") < user.index("--- DOCUMENT SEARCH RESULTS ---")

    def test_quick_skips_knowledge(self, assistant_parts, mock_corpus, mock_search_backend, fast_provider):
        from execution.case_research.assistant import LegalResearchAssistant
        retriever, router, _ = assistant_parts

        result = LegalResearchAssistant(retriever, router).ask("notice", PROJECT_ID, effort_level="quick")

        assert mock_corpus.calls == []
        assert mock_search_backend.calls[0][2] == 5
        assert result.answer.provider_used.value == "fast_multimodal"
        assert result.answer.citations == ()
        assert "## Relevant" not in fast_provider.calls[0][0][-1]["content"]

    def test_follow_ups(self, assistant_parts, fast_provider):
        from execution.case_research.assistant import LegalResearchAssistant
        retriever, router, _ = assistant_parts
        fast_provider.text = "Is severance owed?\nWhat is the ESA minimum?"

        result = LegalResearchAssistant(retriever, router).ask(
            "reasonable notice", PROJECT_ID, effort_level="deep", include_follow_ups=True
        )

        assert result.follow_ups == ["Is severance owed?", "What is the ESA minimum?"]

    def test_no_provider_fails_before_retrieval(self, mock_search_backend, embedding_gateway):
        from execution.case_research.assistant import LegalResearchAssistant
        from execution.case_research.retriever import HybridRetriever
        from execution.case_research.router import ModelRouter, NoProviderConfigured
        router = ModelRouter(MockModelProvider(available=False), MockModelProvider(available=False))
        assistant = LegalResearchAssistant(HybridRetriever(mock_search_backend, embedding_gateway), router)

        with pytest.raises(NoProviderConfigured):
            assistant.ask("notice", PROJECT_ID)

        assert mock_search_backend.calls == []

    def test_to_dict(self, assistant_parts):
        from execution.case_research.assistant import LegalResearchAssistant
        retriever, router, _ = assistant_parts
        data = LegalResearchAssistant(retriever, router).ask("notice", PROJECT_ID, effort_level="deep").to_dict()
        assert data["sources"][0]["label"] == "[Source 1]"
        assert data["effort_level"] == "deep"
