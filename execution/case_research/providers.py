"""
Model Providers for Answer Generation

Two backends, selected per query by the ModelRouter:

    fast_multimodal  -- Gemini chat (fast, general purpose, no citation report)
    deep_reasoning   -- OpenAI reasoning model (legal analysis, self-reported
                        citations extracted from its own output)

Providers receive fully assembled chat messages ({"role", "content"} dicts)
and the EffortProfile for the request; they never build context themselves.
Availability is a property of the handle (credential present, client built)
and is checked on every call.
"""

import logging
from typing import Optional
from dataclasses import dataclass, field

from .citation import extract_citations
from .config import EffortProfile, ProviderSettings, ReasoningDepth

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """A model provider call failed."""


@dataclass
class GenerationResult:
    """Text and self-reported citations from one provider call."""
    text: str = ""
    citations: list[str] = field(default_factory=list)
    confidence: Optional[str] = None


def coerce_generation(result, provider_name: str = "provider") -> GenerationResult:
    """
    Normalize whatever a provider returned into a GenerationResult.

    Missing text becomes "", citations that are not a list of strings
    become []. Never raises.
    """
    if isinstance(result, str):
        return GenerationResult(text=result)

    text = getattr(result, "text", None)
    if text is None and isinstance(result, dict):
        text = result.get("text")
    if not isinstance(text, str):
        if text is not None:
            logger.warning(f"{provider_name} returned non-string text, using empty response")
        text = ""

    citations = getattr(result, "citations", None)
    if citations is None and isinstance(result, dict):
        citations = result.get("citations")
    if citations is None:
        citations = []
    elif not isinstance(citations, list) or not all(isinstance(c, str) for c in citations):
        logger.warning(f"{provider_name} returned malformed citations, ignoring them")
        citations = []

    confidence = getattr(result, "confidence", None)
    if confidence is None and isinstance(result, dict):
        confidence = result.get("confidence")

    return GenerationResult(text=text, citations=list(citations), confidence=confidence)


class BaseModelProvider:
    """
    Base class for chat model providers.

    Subclasses implement:
    - _init_client(): build the SDK client from the API key
    - generate(): one chat request

    And set:
    - _provider_name / _env_var_name: used in logs
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        """
        Args:
            api_key: Provider API key. The provider is unavailable without one.
            model: Model name override
            client: Pre-built SDK client (skips _init_client)
        """
        self._api_key = api_key
        self._client = client
        if model:
            self.model = model

        if self._client is None and self._api_key:
            self._init_client()
        elif self._client is None:
            logger.info(f"{self._env_var_name} not set. {self._provider_name} chat unavailable.")

    def _init_client(self):
        raise NotImplementedError("Subclasses must implement _init_client()")

    @property
    def name(self) -> str:
        return self._provider_name

    def is_available(self) -> bool:
        return self._client is not None

    def generate(self, messages: list[dict], profile: EffortProfile) -> GenerationResult:
        raise NotImplementedError("Subclasses must implement generate()")

    def _require_client(self):
        if self._client is None:
            raise ProviderError(
                f"{self._provider_name} client not initialized. Check {self._env_var_name}."
            )


# Model families that reject a custom temperature
REASONING_MODEL_PREFIXES = ("gpt-5", "o1", "o3", "o4")
MINIMAL_EFFORT_MODEL_PREFIXES = ("gpt-5",)


class OpenAIReasoningProvider(BaseModelProvider):
    """
    Deep-reasoning provider on the OpenAI chat completions API.

    - reasoning_effort follows the profile's depth. For depth "none",
      gpt-5 models get "minimal", o-series models get neither effort nor
      temperature, and other chat models get a low temperature
    - max_completion_tokens follows the profile
    - citations are pattern-matched from the response text
    """

    _provider_name = "OpenAI"
    _env_var_name = "OPENAI_API_KEY"
    model = "gpt-5"
    temperature = 0.2

    def is_reasoning_model(self) -> bool:
        """Reasoning models only accept the default temperature."""
        return self.model.startswith(REASONING_MODEL_PREFIXES)

    def _init_client(self):
        try:
            from openai import OpenAI
            self._client = OpenAI(api_key=self._api_key)
            logger.info(f"OpenAI chat client initialized with model {self.model}")
        except ImportError:
            logger.error("openai package not installed. Run: pip install openai")
            raise

    def generate(self, messages: list[dict], profile: EffortProfile) -> GenerationResult:
        self._require_client()

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_completion_tokens": profile.max_output_tokens,
        }
        if profile.reasoning_depth != ReasoningDepth.NONE:
            kwargs["reasoning_effort"] = profile.reasoning_depth.value
        elif self.model.startswith(MINIMAL_EFFORT_MODEL_PREFIXES):
            kwargs["reasoning_effort"] = "minimal"
        elif not self.is_reasoning_model():
            kwargs["temperature"] = self.temperature

        try:
            response = self._client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"{self._provider_name} generation failed: {e}")
            raise ProviderError(f"{self._provider_name} generation failed: {e}") from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            logger.warning(f"{self._provider_name} response had no message content")
            content = ""

        citations = extract_citations(content)
        return GenerationResult(
            text=content,
            citations=citations,
            confidence="high" if citations else "medium",
        )


class GeminiChatProvider(BaseModelProvider):
    """
    Fast multimodal provider on the Google GenAI API.

    System messages become the system instruction; other roles map to
    "user" or "model". Returns no citations.
    """

    _provider_name = "Gemini"
    _env_var_name = "GEMINI_API_KEY"
    model = "gemini-2.5-pro"
    temperature = 0.7

    def _init_client(self):
        try:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"Gemini chat client initialized with model {self.model}")
        except ImportError:
            logger.error("google-genai package not installed. Run: pip install google-genai")
            raise

    @staticmethod
    def to_contents(messages: list[dict]) -> tuple[Optional[str], list[dict]]:
        """Split chat messages into (system_instruction, Gemini contents)."""
        system_parts = []
        contents = []
        for message in messages:
            role = message.get("role")
            content = message.get("content") or ""
            if role == "system":
                system_parts.append(content)
                continue
            contents.append({
                "role": "user" if role == "user" else "model",
                "parts": [{"text": content}],
            })
        return ("\n\n".join(system_parts) or None), contents

    def generate(self, messages: list[dict], profile: EffortProfile) -> GenerationResult:
        self._require_client()

        system_instruction, contents = self.to_contents(messages)
        config = {
            "temperature": self.temperature,
            "max_output_tokens": profile.max_output_tokens,
        }
        if system_instruction:
            config["system_instruction"] = system_instruction

        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"{self._provider_name} generation failed: {e}")
            raise ProviderError(f"{self._provider_name} generation failed: {e}") from e

        text = getattr(response, "text", None)
        if not isinstance(text, str):
            logger.warning(f"{self._provider_name} response had no text")
            text = ""

        return GenerationResult(text=text, citations=[])


def build_providers(settings: Optional[ProviderSettings] = None) -> tuple[GeminiChatProvider, OpenAIReasoningProvider]:
    """Construct (fast_provider, deep_provider) from settings or the environment."""
    settings = settings or ProviderSettings.from_env()
    fast = GeminiChatProvider(api_key=settings.gemini_api_key, model=settings.gemini_chat_model)
    deep = OpenAIReasoningProvider(api_key=settings.openai_api_key, model=settings.openai_reasoning_model)
    return fast, deep
