"""
Embedding Gateway for the Legal Research Assistant

Converts text to vectors through a fixed provider preference order:

    1. OpenAI text-embedding-3-small  (1536-dim, cheaper, true batch calls)
    2. Gemini text-embedding-004      (768-dim, one text per call)

Vectors from the two providers have different dimensionality and are never
mixed: a single gateway call uses exactly one provider. When no provider is
usable the gateway returns an empty vector, which callers treat as
"no embedding available" rather than an error.

Architecture:
    BaseEmbeddingService      -- shared truncation, caching, batching
        OpenAIEmbeddingService    -- preferred provider
        GeminiEmbeddingService    -- secondary provider
    EmbeddingGateway          -- provider selection for embed / embed_batch
"""

import json
import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Optional
from dataclasses import dataclass
from pathlib import Path

from .config import MAX_EMBEDDING_CHARS, ProviderSettings

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for one embedding provider."""
    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 256
    max_chars: int = MAX_EMBEDDING_CHARS  # silent truncation before embedding
    max_chars_per_batch: int = 400000
    cache_dir: Optional[str] = None
    use_cache: bool = True
    max_cache_entries: int = 1000  # in-memory LRU bound


class BaseEmbeddingService:
    """
    Base class for API-based embedding providers.

    Provides shared functionality:
    - Truncation to the provider-safe character limit
    - Memory and file-based caching
    - Batch splitting (for providers with true batch calls)

    Subclasses implement:
    - _init_client(): build the provider SDK client from the API key
    - _embed_texts(): one provider request for a list of texts

    And set these class attributes:
    - _provider_name: Human-readable provider name for logs
    - _env_var_name: Environment variable holding the API key
    - supports_batch: Whether one request may carry many texts
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""
    supports_batch: bool = False

    def __init__(
        self,
        config: Optional[EmbeddingConfig] = None,
        api_key: Optional[str] = None,
        client=None,
    ):
        """
        Initialize embedding provider.

        Args:
            config: Optional configuration. Uses defaults if not provided.
            api_key: Provider API key. The provider is unavailable without one.
            client: Pre-built SDK client (skips _init_client)
        """
        self.config = config or EmbeddingConfig()
        self._api_key = api_key
        self._client = client
        self._cache = OrderedDict()
        self._cache_lock = threading.Lock()

        if self.config.cache_dir:
            self._cache_path = Path(self.config.cache_dir)
            self._cache_path.mkdir(parents=True, exist_ok=True)
        else:
            self._cache_path = None

        if self._client is None and self._api_key:
            self._init_client()
        elif self._client is None:
            logger.info(f"{self._env_var_name} not set. {self._provider_name} embeddings unavailable.")

    def _init_client(self):
        """Initialize the provider-specific API client. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _init_client()")

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts with a single provider request. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _embed_texts()")

    @property
    def name(self) -> str:
        return self._provider_name

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self.config.dimensions

    def is_available(self) -> bool:
        """True iff the provider has a usable client."""
        return self._client is not None

    def _truncate(self, text: str) -> str:
        return text[:self.config.max_chars]

    def embed_query(self, text: str) -> list[float]:
        """
        Embed one text.

        Args:
            text: Text to embed (truncated to config.max_chars)

        Returns:
            Embedding vector
        """
        if not self._client:
            raise RuntimeError(
                f"{self._provider_name} client not initialized. "
                f"Check {self._env_var_name}."
            )

        text = self._truncate(text)
        cache_key = self._get_cache_key(text)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        result = self._embed_texts([text])
        if not result or not result[0]:
            return []

        self._set_cached(cache_key, result[0])
        return result[0]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """
        Embed many texts, preserving input order.

        Providers with true batch support send one request per batch;
        others embed one text per request.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors, same order as texts
        """
        if not texts:
            return []

        if not self._client:
            raise RuntimeError(
                f"{self._provider_name} client not initialized. "
                f"Check {self._env_var_name}."
            )

        if not self.supports_batch:
            return [self.embed_query(text) for text in texts]

        truncated = [self._truncate(t) for t in texts]
        results: list[Optional[list[float]]] = [None] * len(truncated)

        uncached_indices = []
        for i, text in enumerate(truncated):
            cached = self._get_cached(self._get_cache_key(text))
            if cached is not None:
                results[i] = cached
            else:
                uncached_indices.append(i)

        batches = self._create_batches(uncached_indices, truncated)
        logger.info(
            f"Embedding {len(uncached_indices)} texts in {len(batches)} batches"
            f" with {self._provider_name} ({len(texts) - len(uncached_indices)} cached)"
        )

        for batch in batches:
            batch_embeddings = self._embed_texts([truncated[i] for i in batch])
            for idx, embedding in zip(batch, batch_embeddings):
                self._set_cached(self._get_cache_key(truncated[idx]), embedding)
                results[idx] = embedding

        return [r if r is not None else [] for r in results]

    def _create_batches(self, indices: list[int], texts: list[str]) -> list[list[int]]:
        """Split text indices into batches respecting item count and size limits."""
        batches = []
        current_batch = []
        current_chars = 0

        for idx in indices:
            size = len(texts[idx])
            if current_batch and (
                len(current_batch) >= self.config.batch_size
                or current_chars + size > self.config.max_chars_per_batch
            ):
                batches.append(current_batch)
                current_batch = []
                current_chars = 0
            current_batch.append(idx)
            current_chars += size

        if current_batch:
            batches.append(current_batch)

        return batches

    def _get_cache_key(self, text: str) -> str:
        """Generate cache key for text."""
        content = f"{self.config.model}:{text}"
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def _get_cached(self, key: str) -> Optional[list[float]]:
        """Get cached embedding."""
        if not self.config.use_cache:
            return None

        with self._cache_lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            if cache_file.exists():
                try:
                    with open(cache_file) as f:
                        embedding = json.load(f)
                    self._remember(key, embedding)
                    return embedding
                except Exception as e:
                    logger.debug(f"Failed to read embedding cache file {cache_file}: {e}")

        return None

    def _remember(self, key: str, embedding: list[float]) -> None:
        """Store in the bounded in-memory cache, evicting least recently used."""
        with self._cache_lock:
            self._cache[key] = embedding
            self._cache.move_to_end(key)
            while len(self._cache) > self.config.max_cache_entries:
                self._cache.popitem(last=False)

    def _set_cached(self, key: str, embedding: list[float]) -> None:
        """Cache an embedding."""
        if not self.config.use_cache:
            return

        self._remember(key, embedding)

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            try:
                with open(cache_file, 'w') as f:
                    json.dump(embedding, f)
            except Exception as e:
                logger.warning(f"Failed to cache embedding: {e}")


class OpenAIEmbeddingService(BaseEmbeddingService):
    """
    Preferred provider: OpenAI text-embedding-3-small.

    - 1536-dimensional embeddings
    - $0.02 per 1M tokens
    - Many inputs per request; results re-ordered by response index
    """

    _provider_name = "OpenAI"
    _env_var_name = "OPENAI_API_KEY"
    supports_batch = True

    def _init_client(self):
        """Initialize the OpenAI client."""
        try:
            from openai import OpenAI
            self._client = OpenAI(api_key=self._api_key)
            logger.info(f"OpenAI embedding client initialized with model {self.config.model}")
        except ImportError:
            logger.error("openai package not installed. Run: pip install openai")
            raise

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            response = self._client.embeddings.create(
                model=self.config.model,
                input=texts,
            )
        except Exception as e:
            logger.error(f"{self._provider_name} embedding failed: {e}")
            raise

        data = sorted(response.data, key=lambda d: d.index)
        return [list(d.embedding) for d in data]


class GeminiEmbeddingService(BaseEmbeddingService):
    """
    Secondary provider: Gemini text-embedding-004.

    - 768-dimensional embeddings
    - One text per request (no batch endpoint used)
    """

    _provider_name = "Gemini"
    _env_var_name = "GEMINI_API_KEY"
    supports_batch = False

    def _init_client(self):
        """Initialize the Google GenAI client."""
        try:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"Gemini embedding client initialized with model {self.config.model}")
        except ImportError:
            logger.error("google-genai package not installed. Run: pip install google-genai")
            raise

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            try:
                result = self._client.models.embed_content(
                    model=self.config.model,
                    contents=text,
                )
            except Exception as e:
                logger.error(f"{self._provider_name} embedding failed: {e}")
                raise
            embeddings = getattr(result, "embeddings", None) or []
            vectors.append(list(embeddings[0].values) if embeddings else [])
        return vectors


class EmbeddingGateway:
    """
    Single entry point for query and document embeddings.

    Tries the preferred provider, then the secondary one. A provider that
    fails mid-call is not replaced by the other provider for that call:
    the gateway returns an empty result instead, so a retrieval call never
    compares vectors from two different embedding spaces.
    """

    def __init__(
        self,
        preferred: Optional[BaseEmbeddingService] = None,
        secondary: Optional[BaseEmbeddingService] = None,
    ):
        self._providers = [p for p in (preferred, secondary) if p is not None]

    @property
    def active_provider(self) -> Optional[BaseEmbeddingService]:
        """First available provider in preference order, or None."""
        for provider in self._providers:
            if provider.is_available():
                return provider
        return None

    @property
    def dimensions(self) -> int:
        """Vector size of the active provider (0 when none is available)."""
        provider = self.active_provider
        return provider.dimensions if provider else 0

    def embed(self, text: str) -> list[float]:
        """
        Embed one text with the best available provider.

        Returns:
            Embedding vector, or [] when no provider is usable
        """
        provider = self.active_provider
        if provider is None:
            logger.warning("No embedding provider available, returning empty vector")
            return []

        try:
            return provider.embed_query(text)
        except Exception as e:
            logger.warning(f"{provider.name} embedding failed, returning empty vector: {e}")
            return []

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed many texts with one provider, preserving input order.

        Returns:
            One vector per input text, or [] when no provider is usable
        """
        if not texts:
            return []

        provider = self.active_provider
        if provider is None:
            logger.warning(f"No embedding provider available for batch of {len(texts)}")
            return []

        try:
            return provider.embed_documents(texts)
        except Exception as e:
            logger.warning(f"{provider.name} batch embedding failed ({len(texts)} texts): {e}")
            return []


def get_embedding_gateway(settings: Optional[ProviderSettings] = None) -> EmbeddingGateway:
    """
    Factory function for the default OpenAI -> Gemini embedding chain.

    Args:
        settings: Provider settings. Read from the environment if not provided.

    Returns:
        Configured EmbeddingGateway
    """
    settings = settings or ProviderSettings.from_env()

    preferred = OpenAIEmbeddingService(
        EmbeddingConfig(
            model=settings.openai_embedding_model,
            dimensions=1536,
            batch_size=256,
        ),
        api_key=settings.openai_api_key,
    )
    secondary = GeminiEmbeddingService(
        EmbeddingConfig(
            model=settings.gemini_embedding_model,
            dimensions=768,
            batch_size=1,
        ),
        api_key=settings.gemini_api_key,
    )
    return EmbeddingGateway(preferred, secondary)
