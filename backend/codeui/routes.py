# --- include all imports here ---
from typing import Iterator

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from codeui import llm
from codeui.ai_models import get_enabled_models
from codeui.errors import ConfigurationError, GenerationError
from codeui.logger import get_logger
from codeui.models import GenerationRequest, ValidateStylesRequest
from codeui.stream import normalize_stream
from codeui.validators import validate_styles

logger = get_logger(__name__)


router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "CodeUI API is running"}


@router.get("/api/ai/models")
def list_models():
    """Return the enabled AI models"""
    try:
        models = [model.model_dump() for model in get_enabled_models()]
        return {"models": models, "count": len(models)}
    except Exception as e:
        logger.error(f"Error fetching AI models: {str(e)}", exc_info=True)
        return _error("Failed to fetch AI models", 500)


def _relay(stream: llm.CompletionStream) -> Iterator[str]:
    """Re-encode the upstream stream and release it when the client is done"""
    try:
        yield from normalize_stream(stream.iter_bytes())
    finally:
        stream.close()


def _start_generation(body: dict, force_follow_up: bool = False):
    try:
        request = GenerationRequest.model_validate(body)
    except ValidationError:
        return _error("Prompt is required", 400)

    if force_follow_up:
        request.is_follow_up = True

    if not request.prompt or not request.prompt.strip():
        return _error("Prompt is required", 400)

    try:
        stream = llm.open_completion_stream(request)
    except ConfigurationError as e:
        return _error(str(e), 500)
    except GenerationError as e:
        return _error(e.message, e.status_code or 500)

    return StreamingResponse(
        _relay(stream), media_type="text/event-stream", headers=SSE_HEADERS
    )


async def _read_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/api/ai")
async def generate(request: Request):
    """Stream a generation as normalized server-sent events"""
    try:
        body = await _read_body(request)
        return await run_in_threadpool(_start_generation, body)
    except Exception as e:
        logger.error(f"AI endpoint error: {str(e)}", exc_info=True)
        return _error("Internal server error", 500)


@router.put("/api/ai")
async def generate_follow_up(request: Request):
    """Same as POST, always treated as a follow-up edit of currentHtml"""
    try:
        body = await _read_body(request)
        return await run_in_threadpool(_start_generation, body, True)
    except Exception as e:
        logger.error(f"AI PUT endpoint error: {str(e)}", exc_info=True)
        return _error("Internal server error", 500)


@router.post("/api/styles/validate")
def validate_style_values(request: ValidateStylesRequest):
    """Validate and normalize a set of style values"""
    results = validate_styles(request.styles)
    return {"results": {prop: result.to_dict() for prop, result in results.items()}}
