from __future__ import annotations

from typing import Any

from legalease.extraction import ImagePayload

ANALYSIS_GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 2048,
}
CHAT_GENERATION_CONFIG: dict[str, Any] = dict(ANALYSIS_GENERATION_CONFIG)
SUMMARY_GENERATION_CONFIG: dict[str, Any] = {**ANALYSIS_GENERATION_CONFIG, "maxOutputTokens": 1024}

DEFAULT_DISCLAIMER = (
    "This analysis is for informational purposes only and does not constitute legal advice. "
    "Please consult with a qualified legal professional for specific legal matters."
)

ROLE_PREAMBLE = "You are a legal AI assistant specializing in Indian law."


def is_hindi(language: str | None) -> bool:
    return (language or "").strip().lower() == "hi"


def _local_language_name(language: str | None) -> str:
    return "Hindi ONLY" if is_hindi(language) else "English ONLY"


def _language_rules(language: str | None) -> str:
    return (
        "IMPORTANT:\n"
        "- Provide summary_en in English ONLY\n"
        f"- Provide summary_local in {_local_language_name(language)}\n"
        "- Do NOT mix languages within the same field\n"
        "- Return ONLY valid JSON without markdown code blocks\n"
        "- For Hindi summary, write complete sentences in Hindi using Devanagari script\n"
    )


def _schema_block(language: str | None, *, summary_hint: str, local_hint_hi: str, disclaimer: str) -> str:
    local_hint = local_hint_hi if is_hindi(language) else summary_hint
    return (
        "Return your response as a clean JSON object:\n"
        "{\n"
        f'  "summary_en": "{summary_hint}",\n'
        f'  "summary_local": "{local_hint}",\n'
        '  "clauses": [\n'
        "    {\n"
        '      "title": "Specific legal clause or section title",\n'
        '      "source_excerpt": "Relevant text from the document with actual content",\n'
        '      "explanation_en": "Detailed explanation of legal implications under Indian law",\n'
        '      "risk_level": "HIGH/MEDIUM/LOW",\n'
        '      "risk_reasons": ["specific reason1", "specific reason2"],\n'
        '      "india_markers": ["specific_legal_area1", "specific_legal_area2"]\n'
        "    }\n"
        "  ],\n"
        '  "recommended_questions": ["Specific question1", "Specific question2"],\n'
        f'  "disclaimer": "{disclaimer}"\n'
        "}"
    )


def _image_analysis_prompt(language: str | None) -> str:
    return (
        f"{ROLE_PREAMBLE} Analyze this legal document image and provide a detailed analysis.\n\n"
        "Please:\n"
        "1. Extract all text from the image using OCR (including Tamil, Hindi, English text)\n"
        "2. Identify key legal information, dates, amounts, parties involved, challan numbers, vehicle details\n"
        "3. Analyze the legal implications under Indian law (Motor Vehicles Act, specific sections)\n"
        "4. Provide risk assessment and recommendations\n"
        "5. Pay special attention to traffic challans, court notices, legal notices\n"
        "6. Extract specific details like fine amounts, payment deadlines, legal sections\n\n"
        f"{_language_rules(language)}"
        "- Extract actual content from the document, not generic responses\n\n"
        + _schema_block(
            language,
            summary_hint="Complete English summary with specific legal details extracted from the document",
            local_hint_hi="दस्तावेज़ से निकाले गए विशिष्ट कानूनी विवरणों के साथ पूरा हिंदी सारांश",
            disclaimer=DEFAULT_DISCLAIMER,
        )
    )


def _text_analysis_prompt(text: str, language: str | None) -> str:
    return (
        f"{ROLE_PREAMBLE} Analyze the following legal document and provide a detailed analysis.\n\n"
        f"DOCUMENT TEXT:\n{text}\n\n"
        f"{_language_rules(language)}"
        "- Pay special attention to Indian legal documents like traffic challans, court notices, legal agreements\n"
        "- Identify specific legal sections, acts, and regulations mentioned\n"
        "- Extract key details like challan numbers, fine amounts, dates, vehicle numbers, etc.\n\n"
        + _schema_block(
            language,
            summary_hint="Complete English summary of the document with specific legal details",
            local_hint_hi="दस्तावेज़ का पूरा हिंदी सारांश - मुख्य बिंदु, शर्तें और कानूनी प्रभाव",
            disclaimer=DEFAULT_DISCLAIMER,
        )
    )


def _chunk_analysis_prompt(text: str, language: str | None, chunk_index: int, chunk_count: int) -> str:
    return (
        f"{ROLE_PREAMBLE} Analyze this portion of a legal document "
        f"(chunk {chunk_index + 1} of {chunk_count}) and provide a detailed analysis.\n\n"
        f"DOCUMENT CHUNK:\n{text}\n\n"
        f"{_language_rules(language)}"
        "- Focus on the specific content in this chunk\n\n"
        + _schema_block(
            language,
            summary_hint="Summary of this chunk",
            local_hint_hi="इस खंड का सारांश",
            disclaimer="This analysis covers only a portion of the document.",
        )
    )


def build_analysis_prompt(
    content: str | ImagePayload,
    language: str | None = "en",
    *,
    chunk_index: int | None = None,
    chunk_count: int | None = None,
) -> str:
    """Render the analysis instruction for a whole document, one chunk, or an image.

    Image payloads are not embedded in the prompt text; they travel as a
    separate inline part (see ``build_prompt_parts``).
    """
    if isinstance(content, ImagePayload):
        return _image_analysis_prompt(language)

    if chunk_index is not None and chunk_count is not None:
        return _chunk_analysis_prompt(content, language, chunk_index, chunk_count)

    return _text_analysis_prompt(content, language)


def build_chat_prompt(question: str, context: str | None = None) -> str:
    return (
        f'{ROLE_PREAMBLE} Answer this question about the legal document: "{question}"\n\n'
        f"Context: {(context or '').strip() or 'No additional context provided.'}\n\n"
        "Provide a detailed answer focusing on Indian legal implications and cite relevant "
        "sections of Indian law where applicable.\n\n"
        "Return ONLY valid JSON without markdown code blocks, formatted as:\n"
        "{\n"
        '  "answer": "Your detailed answer here",\n'
        '  "evidence": [\n'
        "    {\n"
        '      "chunk_id": 1,\n'
        '      "snippet": "Relevant text from document"\n'
        "    }\n"
        "  ]\n"
        "}"
    )


def build_summary_prompt(text: str, language: str | None = "en") -> str:
    target = "Hindi using Devanagari script" if is_hindi(language) else "English"
    return (
        f"{ROLE_PREAMBLE} Generate a concise summary of the following legal document:\n\n"
        f"{text}\n\n"
        "IMPORTANT:\n"
        f"- Provide summary in {target}\n"
        "- Focus on key legal points, terms, and implications under Indian law\n"
        "- Keep it concise but comprehensive\n"
        "- Do NOT include markdown formatting\n\n"
        "Return only the summary text without any additional formatting."
    )


def build_prompt_parts(prompt: str, image: ImagePayload | None = None) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image is not None:
        parts.append({"inline_data": {"mime_type": image.mime_type, "data": image.data}})
    return parts
