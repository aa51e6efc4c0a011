from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
RISK_LEVELS: tuple[str, ...] = ("LOW", "MEDIUM", "HIGH")


class Clause(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    source_excerpt: str
    explanation_en: str
    risk_level: RiskLevel = "MEDIUM"
    risk_reasons: list[str] = Field(default_factory=list)
    india_markers: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Canonical analysis shape returned by every analysis path."""

    model_config = ConfigDict(frozen=True)

    summary_en: str
    summary_local: str
    clauses: list[Clause] = Field(default_factory=list)
    recommended_questions: list[str] = Field(default_factory=list)
    disclaimer: str


class Evidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunk_id: int
    snippet: str


class ChatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: str
    evidence: list[Evidence] = Field(default_factory=list)


def analysis_json_schema() -> dict[str, Any]:
    """Expose JSON schema for tests and tooling."""

    return AnalysisResult.model_json_schema()
