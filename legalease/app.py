from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from legalease.analysis import analyze_upload, run_analysis
from legalease.assistant import chat_with_document, generate_summary
from legalease.config import configure_logging, load_settings
from legalease.errors import ConfigurationError, NoTextExtracted, UnsupportedFileType, classify_service_error
from legalease.extraction import extract_content, sanitize_text
from legalease.llm_provider import GeminiClient

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="LegalEase India API")


@app.middleware("http")
async def api_prefix_alias(request, call_next):
    """Accept both `/path` and `/api/path` for frontend compatibility."""
    if request.scope.get("path", "").startswith("/api/"):
        request.scope["path"] = request.scope["path"][4:]
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

SERVICE_UNAVAILABLE_MESSAGE = "Gemini service is not available. Please check API key configuration."


class AnalyzeTextRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    language: str = "en"
    file_name: str = Field(default="document", alias="fileName")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = ""
    context: str = ""
    doc_id: str = Field(default="unknown", alias="docId")


class SummaryRequest(BaseModel):
    text: str = ""
    language: str = "en"


def get_gemini_client() -> GeminiClient | None:
    try:
        return GeminiClient(settings)
    except ConfigurationError as exc:
        logger.error("Failed to initialize Gemini service: %s", exc)
        return None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, message: str, warnings: list[str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "warnings": warnings or []},
    )


def _service_error(exc: Exception, default_message: str) -> JSONResponse:
    info = classify_service_error(exc)
    logger.error("%s: %s", default_message, exc)
    message = default_message if info.category == "unknown" else info.message
    return JSONResponse(
        status_code=info.status_code,
        content={"status": "error", "message": message, "category": info.category, "warnings": []},
    )


@app.get("/")
def root():
    return {
        "message": "LegalEase India API Server",
        "version": "1.0.0",
        "status": "running",
        "timestamp": _timestamp(),
    }


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/gemini/health")
def gemini_health():
    if not settings.has_api_key:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Gemini service is not available", "has_api_key": False},
        )
    return {"status": "success", "message": "Gemini service is available", "has_api_key": True}


@app.post("/documents/upload")
async def upload_document(
    file: UploadFile | None = File(None),
    language: str = Form("en"),
):
    if file is None:
        return _error(400, "No file uploaded")

    content = await file.read()
    # Extraction and Gemini calls block; keep them off the event loop.
    outcome = await run_in_threadpool(
        analyze_upload,
        file.filename or "",
        file.content_type,
        content,
        language=language,
        client=get_gemini_client(),
        max_bytes=settings.max_upload_bytes,
    )

    if outcome.path == "rejected":
        return _error(415, outcome.message)

    return {
        "status": "success",
        "message": outcome.message,
        "warnings": outcome.warnings,
        "file_name": file.filename,
        "file_type": outcome.media_type,
        "text": outcome.text,
        "text_length": len(outcome.text),
        "analysis_path": outcome.path,
        "chunk_count": outcome.chunk_count,
        "analysis": outcome.analysis.model_dump() if outcome.analysis is not None else None,
    }


@app.post("/documents/extract-text")
async def extract_document_text(file: UploadFile | None = File(None)):
    if file is None:
        return _error(400, "No file uploaded")

    content = await file.read()
    try:
        extracted = await run_in_threadpool(
            extract_content,
            file.filename or "",
            file.content_type,
            content,
            max_bytes=settings.max_upload_bytes,
        )
    except UnsupportedFileType as exc:
        return _error(415, str(exc))
    except NoTextExtracted as exc:
        return _error(400, str(exc))

    text = extracted.to_text() if extracted.is_image else sanitize_text(extracted.text)
    return {
        "status": "success",
        "message": "Text extracted.",
        "warnings": [],
        "file_name": file.filename,
        "file_type": extracted.media_type,
        "text": text,
        "text_length": len(text),
    }


@app.post("/gemini/analyze")
def analyze_text(request: AnalyzeTextRequest):
    if not request.text.strip():
        return _error(400, "Text content is required and must be a non-empty string")

    logger.info("Analyzing text with Gemini (%d characters, language: %s)", len(request.text), request.language)
    outcome = run_analysis(request.text, request.file_name, request.language, get_gemini_client())
    return {
        "status": "success",
        "message": outcome.message,
        "warnings": outcome.warnings,
        "analysis": outcome.analysis.model_dump() if outcome.analysis is not None else None,
        "metadata": {
            "text_length": len(request.text),
            "language": request.language,
            "analysis_path": outcome.path,
            "chunk_count": outcome.chunk_count,
            "timestamp": _timestamp(),
        },
    }


@app.post("/gemini/chat")
def chat(request: ChatRequest):
    if not request.question.strip():
        return _error(400, "Question is required and must be a non-empty string")

    client = get_gemini_client()
    if client is None:
        return _error(500, SERVICE_UNAVAILABLE_MESSAGE)

    try:
        response = chat_with_document(request.question, request.context, request.doc_id, client)
    except Exception as exc:
        return _service_error(exc, "Failed to get AI response")

    return {
        "status": "success",
        "answer": response.answer,
        "evidence": [item.model_dump() for item in response.evidence],
        "metadata": {"question_length": len(request.question), "timestamp": _timestamp()},
    }


@app.post("/gemini/summary")
def summary(request: SummaryRequest):
    if not request.text.strip():
        return _error(400, "Text content is required and must be a non-empty string")

    client = get_gemini_client()
    if client is None:
        return _error(500, SERVICE_UNAVAILABLE_MESSAGE)

    try:
        summary_text = generate_summary(request.text, request.language, client)
    except Exception as exc:
        return _service_error(exc, "Failed to generate summary with AI")

    return {
        "status": "success",
        "summary": summary_text,
        "metadata": {
            "text_length": len(request.text),
            "language": request.language,
            "timestamp": _timestamp(),
        },
    }
