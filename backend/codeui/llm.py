"""
LLM module for handling AI model interactions
"""

from contextlib import ExitStack
from typing import Iterator

import openai
import config

from codeui.ai_models import get_default_model_id
from codeui.errors import ConfigurationError, GenerationError
from codeui.logger import get_logger
from codeui.models import GenerationRequest
from codeui.prompt import build_messages

logger = get_logger(__name__)

# Initialize OpenRouter client
openrouter_client = (
    openai.OpenAI(
        base_url=config.OPENROUTER_BASE_URL,
        api_key=config.OPENROUTER_API_KEY,
    )
    if config.OPENROUTER_API_KEY
    else None
)


class CompletionStream:
    """An open upstream response; iter_bytes yields the raw SSE bytes"""

    def __init__(self, response, stack: ExitStack):
        self._response = response
        self._stack = stack

    def iter_bytes(self) -> Iterator[bytes]:
        return self._response.iter_bytes()

    def close(self):
        self._stack.close()


def open_completion_stream(request: GenerationRequest) -> CompletionStream:
    """Start a streaming chat completion on OpenRouter.

    Raises ConfigurationError when no API key is configured and
    GenerationError when the provider answers with a non-2xx status.
    """
    if openrouter_client is None:
        logger.error("OpenRouter client not initialized")
        raise ConfigurationError("OpenRouter API key not configured")

    model = request.model or get_default_model_id()
    messages = build_messages(request.prompt, request.current_html, request.is_follow_up)

    logger.info(
        f"LLM request to {model}, follow-up: {request.is_follow_up}, "
        f"prompt length: {len(messages[-1]['content'])}"
    )

    stack = ExitStack()
    try:
        response = stack.enter_context(
            openrouter_client.chat.completions.with_streaming_response.create(
                model=model,
                messages=messages,
                stream=True,
                max_tokens=config.GENERATION_MAX_TOKENS,
                temperature=config.GENERATION_TEMPERATURE,
                extra_headers={
                    "HTTP-Referer": config.APP_URL,
                    "X-Title": config.APP_TITLE,
                },
            )
        )
    except openai.APIStatusError as e:
        logger.error(f"OpenRouter error ({model}): HTTP {e.status_code}: {e.message}")
        raise GenerationError("AI service error", status_code=e.status_code)
    except openai.APIConnectionError as e:
        logger.error(f"OpenRouter error ({model}): {str(e)}")
        raise GenerationError(f"AI service unreachable: {str(e)}", status_code=502)

    return CompletionStream(response, stack)
