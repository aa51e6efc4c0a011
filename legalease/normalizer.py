from __future__ import annotations

import json
import logging
import re
from typing import Any

from legalease.extraction import CONTROL_CHARS_PATTERN
from legalease.prompts import DEFAULT_DISCLAIMER, is_hindi
from legalease.schema_models import RISK_LEVELS, AnalysisResult, ChatResponse, Clause, Evidence

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?")
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")

DEFAULT_RISK_LEVEL = "MEDIUM"
DEFAULT_RISK_REASONS = ["Risk assessment required"]
DEFAULT_INDIA_MARKERS = ["general_legal"]
DEFAULT_QUESTIONS = ["What are the main terms and conditions?"]
GENERIC_QUESTIONS = [
    "What are the main terms and conditions?",
    "Are there any risky clauses I should be aware of?",
    "How does this apply under Indian law?",
    "What should I negotiate or clarify?",
]


def clean_text(value: Any) -> str:
    """Collapse whitespace and drop control characters; non-strings become ``""``."""
    if not isinstance(value, str):
        return ""
    return re.sub(r"\s+", " ", CONTROL_CHARS_PATTERN.sub(" ", value)).strip()


def excerpt(value: str, limit: int) -> str:
    cleaned = clean_text(value)
    if len(cleaned) <= limit:
        return cleaned
    return f"{cleaned[:limit]}..."


def extract_json_block(raw_text: str) -> str:
    cleaned = CODE_FENCE_PATTERN.sub("", raw_text or "").strip()
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace : last_brace + 1]
    return cleaned


def parse_json_object(raw_text: str) -> dict[str, Any] | None:
    """Parse the JSON object embedded in model output, or ``None`` if there is none.

    A second attempt drops trailing commas, a common slip in model output.
    Output nested too deeply to decode counts as malformed.
    """
    candidate = extract_json_block(raw_text)
    if not candidate:
        return None

    for attempt in (candidate, TRAILING_COMMA_PATTERN.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(parsed, dict):
            return parsed
        return None
    return None


def _clean_string_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [cleaned for cleaned in (clean_text(item) for item in value) if cleaned]


def _coerce_clause(payload: dict[str, Any]) -> Clause:
    risk_level = payload.get("risk_level")
    return Clause(
        title=clean_text(payload.get("title")) or "Untitled Clause",
        source_excerpt=clean_text(payload.get("source_excerpt")) or "No excerpt available",
        explanation_en=clean_text(payload.get("explanation_en")) or "No explanation available",
        risk_level=risk_level if risk_level in RISK_LEVELS else DEFAULT_RISK_LEVEL,
        risk_reasons=_clean_string_list(payload.get("risk_reasons"), DEFAULT_RISK_REASONS),
        india_markers=_clean_string_list(payload.get("india_markers"), DEFAULT_INDIA_MARKERS),
    )


def coerce_analysis(payload: dict[str, Any], language: str | None = "en") -> AnalysisResult:
    """Force an untrusted parsed payload into the ``AnalysisResult`` shape."""
    missing_local = "हिंदी सारांश उपलब्ध नहीं है" if is_hindi(language) else "No local summary available"
    raw_clauses = payload.get("clauses")
    clauses = (
        [_coerce_clause(item) for item in raw_clauses if isinstance(item, dict)]
        if isinstance(raw_clauses, list)
        else []
    )

    return AnalysisResult(
        summary_en=clean_text(payload.get("summary_en")) or "No English summary available",
        summary_local=clean_text(payload.get("summary_local")) or missing_local,
        clauses=clauses,
        recommended_questions=_clean_string_list(payload.get("recommended_questions"), DEFAULT_QUESTIONS),
        disclaimer=clean_text(payload.get("disclaimer")) or DEFAULT_DISCLAIMER,
    )


def structured_fallback(raw_text: str, language: str | None = "en", source_text: str = "") -> AnalysisResult:
    """Best-effort result for model output that is not a JSON object."""
    summary_local = (
        "दस्तावेज़ का विश्लेषण पूरा हो गया है। कृपया विस्तृत जानकारी के लिए नीचे दिए गए खंडों को देखें।"
        if is_hindi(language)
        else "Document analysis completed. Please review the sections below for detailed information."
    )
    summary_en = clean_text(f"{(raw_text or '')[:500]}...")
    explanation = clean_text(f"{(raw_text or '')[:300]}...")

    return AnalysisResult(
        summary_en=summary_en,
        summary_local=summary_local,
        clauses=[
            Clause(
                title="Document Analysis",
                source_excerpt=excerpt(source_text, 200) or "No excerpt available",
                explanation_en=explanation,
                risk_level="MEDIUM",
                risk_reasons=["Requires legal review", "Complex terms present"],
                india_markers=["general_legal", "document_analysis"],
            )
        ],
        recommended_questions=list(GENERIC_QUESTIONS),
        disclaimer=DEFAULT_DISCLAIMER,
    )


def normalize_analysis(raw_text: str, language: str | None = "en", source_text: str = "") -> AnalysisResult:
    """Turn raw model output into an ``AnalysisResult``. Never raises."""
    payload = parse_json_object(raw_text or "")
    if payload is None:
        logger.warning("Analysis response was not valid JSON; using structured fallback.")
        return structured_fallback(raw_text or "", language, source_text)
    return coerce_analysis(payload, language)


def _coerce_evidence(value: Any) -> list[Evidence]:
    if not isinstance(value, list):
        return []

    evidence: list[Evidence] = []
    for position, item in enumerate(value, start=1):
        if not isinstance(item, dict):
            continue
        snippet = clean_text(item.get("snippet"))
        if not snippet:
            continue
        chunk_id = item.get("chunk_id")
        if isinstance(chunk_id, bool) or not isinstance(chunk_id, (int, float, str)):
            chunk_id = position
        try:
            chunk_id = int(chunk_id)
        except (ValueError, OverflowError):
            chunk_id = position
        evidence.append(Evidence(chunk_id=chunk_id, snippet=snippet))
    return evidence


def parse_chat_response(raw_text: str) -> ChatResponse:
    payload = parse_json_object(raw_text or "")
    if payload is None:
        return ChatResponse(answer=(raw_text or "").strip(), evidence=[])

    answer = payload.get("answer")
    if not isinstance(answer, str) or not answer.strip():
        answer = raw_text or ""
    return ChatResponse(answer=answer.strip(), evidence=_coerce_evidence(payload.get("evidence")))
