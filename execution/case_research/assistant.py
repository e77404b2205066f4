"""
Legal Research Assistant

End-to-end question answering over a project's case documents:

1. Check a model backend is configured (fail fast otherwise)
2. In parallel: retrieve document chunks, build knowledge-base context
3. Format the retrieved chunks as numbered sources after the case context
4. Route to the selected model backend
5. Merge model-reported citations with the [Source N] labels it used
"""

import logging
from typing import Optional, Union
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor

from .citation import SourceReference, merge_citations, sources_from_results
from .classifier import classify_query
from .config import EffortLevel, get_effort_profile, resolve_effort
from .context import build_case_context
from .router import ModelRouter, RoutedAnswer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResearchAnswer:
    """A routed answer together with the sources offered to the model."""
    answer: RoutedAnswer
    sources: list[SourceReference] = field(default_factory=list)
    citations: list[str] = field(default_factory=list)
    follow_ups: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            **self.answer.to_dict(),
            "citations": list(self.citations),
            "sources": [s.to_dict() for s in self.sources],
            "follow_ups": list(self.follow_ups),
        }


class LegalResearchAssistant:
    """Ties retrieval, knowledge context and routing together for one question."""

    def __init__(self, retriever, router: ModelRouter):
        """
        Args:
            retriever: HybridRetriever (or any object with search())
            router: ModelRouter, whose knowledge_builder is used for context
        """
        self.retriever = retriever
        self.router = router

    def ask(
        self,
        query: str,
        scope_id: str,
        effort_level: Union[EffortLevel, str, None] = None,
        history: Optional[list[dict]] = None,
        case_context: Optional[str] = None,
        file_type: Optional[str] = None,
        include_follow_ups: bool = False,
    ) -> ResearchAnswer:
        """
        Answer a question about a project.

        Args:
            query: User question
            scope_id: Project whose documents may be searched
            effort_level: quick, standard, thorough or deep (default standard)
            history: Prior turns as {"role", "content"} dicts
            case_context: Extra case text supplied by the caller
            file_type: Optional source file type filter for retrieval
            include_follow_ups: Also suggest follow-up questions

        Returns:
            ResearchAnswer

        Raises:
            NoProviderConfigured: if no model backend is available
        """
        effort = resolve_effort(effort_level)
        profile = get_effort_profile(effort)

        # Raises before any retrieval work when nothing can answer
        self.router.select_provider(classify_query(query), effort)

        builder = self.router.knowledge_builder
        with ThreadPoolExecutor(max_workers=2) as executor:
            search_future = executor.submit(
                self.retriever.search, query, scope_id, file_type, profile.retrieval_chunk_limit
            )
            knowledge_future = None
            if effort != EffortLevel.QUICK and builder is not None:
                knowledge_future = executor.submit(builder.build_legal_context, query)

            results = search_future.result()
            legal_context = knowledge_future.result() if knowledge_future else ""

        sources = sources_from_results(results)
        logger.info(f"Research context: {len(sources)} sources, {len(legal_context)} chars of legal context")

        answer = self.router.route(
            query,
            effort_level=effort,
            history=history,
            case_context=build_case_context(case_context, results),
            sources=sources,
            legal_context=legal_context,
        )
        citations = merge_citations(answer.response_text, list(answer.citations), sources)

        follow_ups = []
        if include_follow_ups:
            follow_ups = self.router.generate_follow_ups(query, answer.response_text)

        return ResearchAnswer(
            answer=answer,
            sources=sources,
            citations=citations,
            follow_ups=follow_ups,
        )
