"""
Model Router for Legal Questions

Routes each question to one of two model backends:

- fast_multimodal: quick factual questions, document Q&A, summaries
- deep_reasoning:  legal analysis, strategy, multi-step reasoning

The caller's effort level overrides complexity-based selection (quick
prefers the fast backend, deep prefers the reasoning backend); when the
preferred backend is not configured the complexity rule decides. With no
backend configured at all, routing fails with NoProviderConfigured before
any provider is called.
"""

import time
import logging
from enum import Enum
from typing import Optional, Union
from dataclasses import dataclass

from .classifier import ComplexityLevel, classify_query
from .config import EffortLevel, get_effort_profile, resolve_effort
from .context import deep_reasoning_messages, fast_messages, knowledge_block
from .metrics import RouteEvent, UsageNotifier
from .prompts import FOLLOW_UP_PROMPT
from .providers import coerce_generation

logger = logging.getLogger(__name__)


class NoProviderConfigured(RuntimeError):
    """No model provider is available for the request."""


class ProviderHandle(str, Enum):
    FAST_MULTIMODAL = "fast_multimodal"
    DEEP_REASONING = "deep_reasoning"


@dataclass(frozen=True)
class RoutedAnswer:
    """Final output of one routed question."""
    response_text: str
    provider_used: ProviderHandle
    complexity: ComplexityLevel
    citations: tuple[str, ...]
    effort_level: EffortLevel

    def to_dict(self) -> dict:
        return {
            "response_text": self.response_text,
            "provider_used": self.provider_used.value,
            "complexity": self.complexity.value,
            "citations": list(self.citations),
            "effort_level": self.effort_level.value,
        }


class ModelRouter:
    """
    Selects a provider and effort profile per question and delegates to it.

    Usage:
        fast, deep = build_providers()
        router = ModelRouter(fast, deep, knowledge_builder=LegalContextBuilder(corpus))
        answer = router.route("Is a 10-year employee owed more than ESA notice?", effort_level="thorough")
    """

    MAX_FOLLOW_UPS = 3
    MAX_FOLLOW_UP_CHARS = 120

    def __init__(
        self,
        fast_provider=None,
        deep_provider=None,
        knowledge_builder=None,
        notifier: Optional[UsageNotifier] = None,
    ):
        """
        Args:
            fast_provider: fast_multimodal backend (name, is_available, generate)
            deep_provider: deep_reasoning backend (name, is_available, generate)
            knowledge_builder: Object with build_legal_context(query)
            notifier: Optional usage notifier for route events
        """
        self.fast_provider = fast_provider
        self.deep_provider = deep_provider
        self.knowledge_builder = knowledge_builder
        self._notifier = notifier

    def _available(self, handle: ProviderHandle) -> bool:
        provider = self._provider(handle)
        return provider is not None and provider.is_available()

    def _provider(self, handle: ProviderHandle):
        if handle == ProviderHandle.FAST_MULTIMODAL:
            return self.fast_provider
        return self.deep_provider

    def select_by_complexity(self, complexity: ComplexityLevel) -> ProviderHandle:
        if complexity == ComplexityLevel.DEEP and self._available(ProviderHandle.DEEP_REASONING):
            return ProviderHandle.DEEP_REASONING
        if self._available(ProviderHandle.FAST_MULTIMODAL):
            return ProviderHandle.FAST_MULTIMODAL
        if self._available(ProviderHandle.DEEP_REASONING):
            return ProviderHandle.DEEP_REASONING
        raise NoProviderConfigured(
            "No AI model configured. Set GEMINI_API_KEY or OPENAI_API_KEY."
        )

    def select_provider(
        self,
        complexity: ComplexityLevel,
        effort: Union[EffortLevel, str, None] = None,
    ) -> ProviderHandle:
        """
        Pick the backend for a question.

        Raises:
            NoProviderConfigured: if neither backend is available
        """
        effort = resolve_effort(effort)
        if effort == EffortLevel.QUICK and self._available(ProviderHandle.FAST_MULTIMODAL):
            return ProviderHandle.FAST_MULTIMODAL
        if effort == EffortLevel.DEEP and self._available(ProviderHandle.DEEP_REASONING):
            return ProviderHandle.DEEP_REASONING
        return self.select_by_complexity(complexity)

    def route(
        self,
        query: str,
        effort_level: Union[EffortLevel, str, None] = None,
        history: Optional[list[dict]] = None,
        case_context: Optional[str] = None,
        sources: Optional[list] = None,
        legal_context: Optional[str] = None,
    ) -> RoutedAnswer:
        """
        Answer a question with the selected backend.

        Args:
            query: User question
            effort_level: quick, standard, thorough or deep (default standard)
            history: Prior turns as {"role", "content"} dicts
            case_context: Case-specific text, including formatted search results
            sources: Search sources offered to the model; when non-empty the
                model is told to cite them as [Source N]
            legal_context: Precomputed knowledge context (built here when None)

        Returns:
            RoutedAnswer

        Raises:
            NoProviderConfigured: if no backend is available
            ProviderError: if the selected backend call fails
        """
        start_time = time.time()
        effort = resolve_effort(effort_level)
        profile = get_effort_profile(effort)
        complexity = classify_query(query)

        handle = self.select_provider(complexity, effort)
        provider = self._provider(handle)
        logger.info(
            f"Routing query: complexity={complexity.value}, effort={effort.value}, "
            f"provider={handle.value} ({provider.name})"
        )

        if effort == EffortLevel.QUICK:
            legal_context = ""
        elif legal_context is None:
            legal_context = (
                self.knowledge_builder.build_legal_context(query)
                if self.knowledge_builder is not None else ""
            )

        knowledge = knowledge_block(legal_context, has_sources=bool(sources))
        case_context = case_context or ""

        if handle == ProviderHandle.DEEP_REASONING:
            messages = deep_reasoning_messages(query, history, knowledge, case_context)
        else:
            messages = fast_messages(query, history, knowledge, case_context)

        result = coerce_generation(provider.generate(messages, profile), provider.name)
        citations = result.citations if handle == ProviderHandle.DEEP_REASONING else []

        elapsed = (time.time() - start_time) * 1000
        logger.info(f"{provider.name} answered in {elapsed:.0f}ms with {len(citations)} citations")
        self._notify(handle, complexity, effort, len(citations), elapsed)

        return RoutedAnswer(
            response_text=result.text,
            provider_used=handle,
            complexity=complexity,
            citations=tuple(citations),
            effort_level=effort,
        )

    def generate_follow_ups(self, query: str, response: str) -> list[str]:
        """
        Suggest up to three follow-up questions using the fast backend.

        Returns:
            Short questions, or [] if the fast backend is unavailable or fails
        """
        if not self._available(ProviderHandle.FAST_MULTIMODAL):
            return []

        prompt = FOLLOW_UP_PROMPT.format(query=query[:500], response=response[:1000])
        try:
            result = self.fast_provider.generate(
                [{"role": "user", "content": prompt}],
                get_effort_profile(EffortLevel.QUICK),
            )
        except Exception as e:
            logger.warning(f"Follow-up generation failed: {e}")
            return []

        text = coerce_generation(result, self.fast_provider.name).text
        lines = [line.strip() for line in text.split("\n")]
        return [
            line for line in lines
            if line and len(line) < self.MAX_FOLLOW_UP_CHARS
        ][:self.MAX_FOLLOW_UPS]

    def _notify(self, handle, complexity, effort, citations_count, elapsed) -> None:
        if self._notifier is None:
            return
        self._notifier.notify(RouteEvent(
            provider=handle.value,
            complexity=complexity.value,
            effort_level=effort.value,
            citations_count=citations_count,
            latency_ms=elapsed,
        ))
