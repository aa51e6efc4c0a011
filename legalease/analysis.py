from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from legalease.chunking import split_text
from legalease.combiner import combine_chunk_analyses
from legalease.config import DEFAULT_MAX_UPLOAD_BYTES
from legalease.errors import UnsupportedFileType
from legalease.extraction import (
    ExtractedContent,
    ImagePayload,
    extract_content,
    parse_image_marker,
    sanitize_text,
    validate_upload,
)
from legalease.fallback import fallback_analysis
from legalease.normalizer import normalize_analysis
from legalease.prompts import ANALYSIS_GENERATION_CONFIG, build_analysis_prompt, build_prompt_parts
from legalease.schema_models import AnalysisResult

logger = logging.getLogger(__name__)

LARGE_DOCUMENT_THRESHOLD = 100_000


class TextGenerator(Protocol):
    def generate(self, parts: list[dict[str, Any]], generation_config: dict[str, Any]) -> str:
        ...


@dataclass(frozen=True)
class AnalysisOutcome:
    """What the orchestrator produced and which path produced it.

    ``path`` is one of ``single_shot``, ``chunked``, ``fallback`` or
    ``rejected``; only a rejected upload has no analysis.
    """

    path: str
    analysis: AnalysisResult | None
    message: str
    text: str = ""
    media_type: str | None = None
    chunk_count: int = 0
    failed_chunks: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.path == "fallback"


def _fallback_outcome(text: str, file_name: str, language: str | None, reason: str, **extra: Any) -> AnalysisOutcome:
    logger.warning("Using fallback analysis for %s: %s", file_name, reason)
    return AnalysisOutcome(
        path="fallback",
        analysis=fallback_analysis(text, file_name, language),
        message="Fallback analysis generated.",
        warnings=[reason],
        **extra,
    )


def _analyze_single(
    client: TextGenerator,
    content: str | ImagePayload,
    language: str | None,
) -> AnalysisResult:
    prompt = build_analysis_prompt(content, language)
    image = content if isinstance(content, ImagePayload) else None
    raw_text = client.generate(build_prompt_parts(prompt, image), ANALYSIS_GENERATION_CONFIG)
    source_text = "" if image is not None else content
    return normalize_analysis(raw_text, language, source_text=source_text)


def _analyze_chunks(
    client: TextGenerator,
    chunks: list[str],
    language: str | None,
) -> tuple[list[AnalysisResult], list[int]]:
    results: list[AnalysisResult] = []
    failed: list[int] = []
    for index, chunk in enumerate(chunks):
        prompt = build_analysis_prompt(chunk, language, chunk_index=index, chunk_count=len(chunks))
        try:
            raw_text = client.generate(build_prompt_parts(prompt), ANALYSIS_GENERATION_CONFIG)
        except Exception as exc:
            # One bad chunk must not void the whole document.
            logger.warning("Failed to analyze chunk %d of %d: %s", index + 1, len(chunks), exc)
            failed.append(index)
            continue
        results.append(normalize_analysis(raw_text, language, source_text=chunk))
    return results, failed


def run_analysis(
    content: str | ExtractedContent,
    file_name: str = "document",
    language: str | None = "en",
    client: TextGenerator | None = None,
) -> AnalysisOutcome:
    """Analyze extracted content. Never raises.

    Images always take the single-shot vision path; text longer than
    ``LARGE_DOCUMENT_THRESHOLD`` characters is chunked and combined.
    """
    if isinstance(content, ExtractedContent):
        payload: str | ImagePayload = content.image if content.image is not None else content.text
        media_type: str | None = content.media_type
    else:
        image = parse_image_marker(content or "")
        payload = image if image is not None else (content or "")
        media_type = image.mime_type if image is not None else None

    fallback_text = "" if isinstance(payload, ImagePayload) else payload

    if not isinstance(payload, ImagePayload) and not payload.strip():
        return _fallback_outcome("", file_name, language, "No text was available for analysis.", media_type=media_type)

    if client is None:
        return _fallback_outcome(
            fallback_text, file_name, language, "Gemini service is not configured.", media_type=media_type
        )

    try:
        if isinstance(payload, ImagePayload) or len(payload) <= LARGE_DOCUMENT_THRESHOLD:
            analysis = _analyze_single(client, payload, language)
            return AnalysisOutcome(
                path="single_shot",
                analysis=analysis,
                message="Document analyzed.",
                media_type=media_type,
                chunk_count=1,
            )

        chunks = split_text(payload)
        logger.info("Analyzing large document %s in %d chunks", file_name, len(chunks))
        results, failed = _analyze_chunks(client, chunks, language)
        warnings = [f"Chunk {index + 1} of {len(chunks)} could not be analyzed." for index in failed]
        if not results:
            return _fallback_outcome(
                fallback_text,
                file_name,
                language,
                "No chunks could be analyzed.",
                media_type=media_type,
                chunk_count=len(chunks),
                failed_chunks=failed,
            )
        return AnalysisOutcome(
            path="chunked",
            analysis=combine_chunk_analyses(results, language),
            message=f"Document analyzed in {len(chunks)} chunks.",
            media_type=media_type,
            chunk_count=len(chunks),
            failed_chunks=failed,
            warnings=warnings,
        )
    except Exception as exc:
        return _fallback_outcome(
            fallback_text, file_name, language, f"Analysis failed: {exc}", media_type=media_type
        )


def analyze_document(
    content: str | ExtractedContent,
    file_name: str = "document",
    language: str | None = "en",
    client: TextGenerator | None = None,
) -> AnalysisResult:
    return run_analysis(content, file_name, language, client).analysis


def analyze_upload(
    filename: str,
    content_type: str | None,
    content_bytes: bytes,
    language: str | None = "en",
    client: TextGenerator | None = None,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> AnalysisOutcome:
    """Validate, extract and analyze an uploaded file.

    An upload that fails validation is rejected (``path == "rejected"``);
    every later failure resolves to the fallback analysis.
    """
    file_name = filename or "document"
    try:
        media_type = validate_upload(filename, content_type, content_bytes, max_bytes=max_bytes)
    except UnsupportedFileType as exc:
        return AnalysisOutcome(path="rejected", analysis=None, message=str(exc))

    logger.info("Processing file: %s (%s)", file_name, media_type)
    try:
        extracted = extract_content(filename, media_type, content_bytes, max_bytes=max_bytes)
    except Exception as exc:
        return _fallback_outcome("", file_name, language, f"Extraction failed: {exc}", media_type=media_type)

    if extracted.is_image:
        return run_analysis(extracted, file_name, language, client)

    text = sanitize_text(extracted.text, collapse_whitespace=False)
    outcome = run_analysis(ExtractedContent(media_type=media_type, text=text), file_name, language, client)
    return replace(outcome, text=sanitize_text(text))
