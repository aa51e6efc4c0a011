from __future__ import annotations

from typing import Sequence

from legalease.fallback import fallback_analysis
from legalease.prompts import is_hindi
from legalease.schema_models import AnalysisResult, Clause

INFORMATIVE_DISCLAIMER_LENGTH = 50
MULTI_SECTION_SUMMARY_EN = "Document analysis completed across multiple sections."
MULTI_SECTION_SUMMARY_HI = "दस्तावेज़ का विश्लेषण कई खंडों में पूरा हो गया है।"


def _join_summaries(summaries: Sequence[str]) -> str:
    return " ".join(summary for summary in summaries if summary and summary.strip())


def _dedupe(values: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def _pick_disclaimer(disclaimers: Sequence[str]) -> str:
    for disclaimer in disclaimers:
        if disclaimer and len(disclaimer) > INFORMATIVE_DISCLAIMER_LENGTH:
            return disclaimer
    return disclaimers[0] if disclaimers else ""


def combine_chunk_analyses(results: Sequence[AnalysisResult], language: str | None = "en") -> AnalysisResult:
    """Merge per-chunk analyses, keeping chunk order for summaries and clauses."""
    if not results:
        return fallback_analysis("No chunks could be analyzed", "document", language)

    if len(results) == 1:
        return results[0]

    clauses: list[Clause] = [clause for result in results for clause in result.clauses]
    questions = _dedupe([question for result in results for question in result.recommended_questions])
    default_local = MULTI_SECTION_SUMMARY_HI if is_hindi(language) else MULTI_SECTION_SUMMARY_EN

    return AnalysisResult(
        summary_en=_join_summaries([result.summary_en for result in results]) or MULTI_SECTION_SUMMARY_EN,
        summary_local=_join_summaries([result.summary_local for result in results]) or default_local,
        clauses=clauses,
        recommended_questions=questions,
        disclaimer=_pick_disclaimer([result.disclaimer for result in results]),
    )
