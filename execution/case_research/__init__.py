"""
Case Research - Query Routing and Context Assembly for Legal Q&A

This module provides:
- Complexity classification of legal questions
- Effort-based model routing across a fast and a deep-reasoning backend
- Embeddings with provider preference and fallback
- Hybrid (vector + full-text) retrieval over case documents with RRF
- Knowledge-base context from a curated legal corpus
- Citation-annotated context assembly
"""

from .classifier import ComplexityLevel, classify_query
from .config import EffortLevel, EffortProfile, get_effort_profile
from .embeddings import EmbeddingGateway, get_embedding_gateway
from .search_backend import PostgresSearchBackend, SearchResult
from .retriever import HybridRetriever
from .knowledge import LegalContextBuilder, PostgresLegalCorpus
from .context import format_search_context
from .providers import GeminiChatProvider, OpenAIReasoningProvider, ProviderError
from .router import ModelRouter, NoProviderConfigured, RoutedAnswer
from .assistant import LegalResearchAssistant, ResearchAnswer

__all__ = [
    "ComplexityLevel",
    "classify_query",
    "EffortLevel",
    "EffortProfile",
    "get_effort_profile",
    "EmbeddingGateway",
    "get_embedding_gateway",
    "PostgresSearchBackend",
    "SearchResult",
    "HybridRetriever",
    "LegalContextBuilder",
    "PostgresLegalCorpus",
    "format_search_context",
    "GeminiChatProvider",
    "OpenAIReasoningProvider",
    "ProviderError",
    "ModelRouter",
    "NoProviderConfigured",
    "RoutedAnswer",
    "LegalResearchAssistant",
    "ResearchAnswer",
]

__version__ = "0.1.0"
