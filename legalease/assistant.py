"""Single-call chat and summary operations.

Unlike document analysis these have no fallback: any failure from the
Gemini client propagates to the caller, which classifies it for display
(see ``legalease.errors.classify_service_error``).
"""

from __future__ import annotations

import logging

from legalease.analysis import TextGenerator
from legalease.normalizer import clean_text, parse_chat_response
from legalease.prompts import (
    CHAT_GENERATION_CONFIG,
    SUMMARY_GENERATION_CONFIG,
    build_chat_prompt,
    build_prompt_parts,
    build_summary_prompt,
)
from legalease.schema_models import ChatResponse

logger = logging.getLogger(__name__)


def chat_with_document(
    question: str,
    context: str | None,
    doc_id: str | None,
    client: TextGenerator,
) -> ChatResponse:
    if not question or not question.strip():
        raise ValueError("Question is required and must be a non-empty string")

    logger.info("Chat request for document %s (%d characters)", doc_id or "unknown", len(question))
    prompt = build_chat_prompt(question.strip(), context)
    raw_text = client.generate(build_prompt_parts(prompt), CHAT_GENERATION_CONFIG)
    return parse_chat_response(raw_text)


def generate_summary(text: str, language: str | None, client: TextGenerator) -> str:
    if not text or not text.strip():
        raise ValueError("Text content is required and must be a non-empty string")

    logger.info("Generating summary (%d characters, language: %s)", len(text), language or "en")
    prompt = build_summary_prompt(text, language)
    raw_text = client.generate(build_prompt_parts(prompt), SUMMARY_GENERATION_CONFIG)
    return clean_text(raw_text)
