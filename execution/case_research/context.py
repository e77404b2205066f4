"""
Context Assembly for Model Providers

Turns retrieval output, knowledge-base text and case-specific context into
the chat messages a provider receives. All truncation is by fixed character
caps so the same inputs always produce the same payload.

Payload order:
    system framing -> history -> knowledge context (+ citation instruction)
    -> case context (incl. formatted search results) -> question
"""

import logging
from typing import Optional

from .config import MAX_CASE_CONTEXT_CHARS, MAX_HISTORY_TURNS, MAX_SOURCE_CHARS
from .prompts import (
    CASE_CONTEXT_TRUNCATION_NOTICE,
    CASE_FILE_HEADER,
    CITATION_INSTRUCTION,
    DEEP_REASONING_SYSTEM_PROMPT,
    FAST_CONTEXT_PROMPT,
    KNOWLEDGE_BASE_HEADER,
    QUESTION_HEADER,
    SEARCH_RESULTS_END,
    SEARCH_RESULTS_START,
)
from .search_backend import SearchResult

logger = logging.getLogger(__name__)


def source_label(index: int, result: SearchResult) -> str:
    """Label for one source block, e.g. [Source 2: lease.pdf, page 4, section "Term"]."""
    parts = [f"Source {index}: {result.source_file_name}"]
    if result.page_number:
        parts.append(f"page {result.page_number}")
    if result.section_heading:
        parts.append(f'section "{result.section_heading}"')
    return f"[{', '.join(parts)}]"


def format_search_context(results: list[SearchResult]) -> str:
    """
    Render ranked search results as numbered source blocks.

    Each block carries at most MAX_SOURCE_CHARS characters of chunk content.
    The whole block is wrapped in start/end markers so a provider can be told
    to cite only what lies between them.

    Returns:
        Formatted block, or "" when there are no results
    """
    if not results:
        return ""

    blocks = [
        f"{source_label(i, r)}\n{r.content[:MAX_SOURCE_CHARS]}"
        for i, r in enumerate(results, start=1)
    ]
    return f"\n{SEARCH_RESULTS_START}\n" + "\n\n".join(blocks) + f"\n{SEARCH_RESULTS_END}"


def truncate_case_context(case_context: Optional[str], max_chars: int = MAX_CASE_CONTEXT_CHARS) -> str:
    """Cap caller-supplied case context, marking the cut when one happens."""
    if not case_context:
        return ""
    if len(case_context) <= max_chars:
        return case_context
    logger.info(f"Case context truncated from {len(case_context)} to {max_chars} chars")
    return case_context[:max_chars] + CASE_CONTEXT_TRUNCATION_NOTICE


def build_case_context(case_context: Optional[str], results: Optional[list[SearchResult]] = None) -> str:
    """Truncated case context followed by the formatted search results."""
    return truncate_case_context(case_context) + format_search_context(results or [])


def knowledge_block(legal_context: Optional[str], has_sources: bool) -> str:
    """Knowledge context with the [Source N] instruction appended when sources exist."""
    text = legal_context or ""
    if has_sources:
        text += CITATION_INSTRUCTION
    return text


def deep_reasoning_messages(
    query: str,
    history: Optional[list[dict]] = None,
    knowledge: str = "",
    case_context: str = "",
    max_history_turns: int = MAX_HISTORY_TURNS,
) -> list[dict]:
    """
    System prompt, the last few history turns, and one sectioned user message.
    """
    messages = [{"role": "system", "content": DEEP_REASONING_SYSTEM_PROMPT}]
    for turn in (history or [])[-max_history_turns:]:
        messages.append({"role": turn.get("role", "user"), "content": turn.get("content", "")})

    user_content = ""
    if knowledge:
        user_content += f"{KNOWLEDGE_BASE_HEADER}\n{knowledge}\n\n"
    if case_context:
        user_content += f"{CASE_FILE_HEADER}\n{case_context}\n\n"
    user_content += f"{QUESTION_HEADER}\n{query}"

    messages.append({"role": "user", "content": user_content})
    return messages


def fast_messages(
    query: str,
    history: Optional[list[dict]] = None,
    knowledge: str = "",
    case_context: str = "",
) -> list[dict]:
    """
    Full history, unmodified, followed by one user turn with the context
    blocks joined by blank lines.
    """
    messages = [dict(turn) for turn in (history or [])]
    context = "\n\n".join(block for block in (knowledge, case_context) if block)
    messages.append({
        "role": "user",
        "content": FAST_CONTEXT_PROMPT.format(context=context, question=query),
    })
    return messages
