"""
Effort and Provider Configuration for the Legal Research Assistant

Effort levels trade latency and cost against reasoning depth. Each level
maps to a fixed EffortProfile; the mapping is a static table and never
changes at runtime.

Provider credentials and model names come from the environment (a local
.env file is loaded if present).
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dotenv import load_dotenv

load_dotenv()


class EffortLevel(str, Enum):
    QUICK = "quick"
    STANDARD = "standard"
    THOROUGH = "thorough"
    DEEP = "deep"


class ReasoningDepth(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class EffortProfile:
    """Reasoning and size budget for one effort level."""
    reasoning_depth: ReasoningDepth
    max_output_tokens: int
    retrieval_chunk_limit: int


EFFORT_PROFILES = {
    EffortLevel.QUICK: EffortProfile(ReasoningDepth.NONE, 1500, 5),
    EffortLevel.STANDARD: EffortProfile(ReasoningDepth.LOW, 2000, 8),
    EffortLevel.THOROUGH: EffortProfile(ReasoningDepth.MEDIUM, 3000, 12),
    EffortLevel.DEEP: EffortProfile(ReasoningDepth.HIGH, 4000, 15),
}

DEFAULT_EFFORT = EffortLevel.STANDARD

# Fixed character caps (no token counting, keeps assembly reproducible)
MAX_EMBEDDING_CHARS = 8000
MAX_SOURCE_CHARS = 800
MAX_CASE_CONTEXT_CHARS = 30000
MAX_HISTORY_TURNS = 6

# Reciprocal Rank Fusion constant
RRF_K = 60

DEFAULT_SEARCH_LIMIT = 8


def resolve_effort(effort: Optional[Union[EffortLevel, str]]) -> EffortLevel:
    """
    Coerce a caller-supplied effort level.

    Args:
        effort: EffortLevel, its string value, or None

    Returns:
        EffortLevel (standard when None)

    Raises:
        ValueError: if the string is not a known effort level
    """
    if effort is None:
        return DEFAULT_EFFORT
    if isinstance(effort, EffortLevel):
        return effort
    try:
        return EffortLevel(str(effort).lower())
    except ValueError:
        valid = ", ".join(e.value for e in EffortLevel)
        raise ValueError(f"Unknown effort level '{effort}'. Expected one of: {valid}")


def get_effort_profile(effort: Optional[Union[EffortLevel, str]] = None) -> EffortProfile:
    """Look up the static profile for an effort level."""
    return EFFORT_PROFILES[resolve_effort(effort)]


@dataclass
class ProviderSettings:
    """Credentials and model names for the model and embedding backends."""
    openai_api_key: Optional[str] = None
    openai_reasoning_model: str = "gpt-5"
    openai_embedding_model: str = "text-embedding-3-small"
    gemini_api_key: Optional[str] = None
    gemini_chat_model: str = "gemini-2.5-pro"
    gemini_embedding_model: str = "text-embedding-004"
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Build settings from environment variables."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_reasoning_model=os.getenv("OPENAI_REASONING_MODEL", "gpt-5"),
            openai_embedding_model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or None,
            gemini_chat_model=os.getenv("GEMINI_CHAT_MODEL", "gemini-2.5-pro"),
            gemini_embedding_model=os.getenv("GEMINI_EMBEDDING_MODEL", "text-embedding-004"),
            database_url=os.getenv("POSTGRES_URL") or os.getenv("DATABASE_URL") or None,
        )
