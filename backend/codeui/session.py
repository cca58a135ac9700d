"""
Generation sessions.

A GenerationSession owns exactly one request/response cycle against the
generation endpoint. Events are consumed by iterating ``events()``; ``run()``
drives the session to the end and returns the updated document. Cancellation
is cooperative: the CancelToken is checked before every read and a cancelled
session ends without a completion or error.
"""

import threading
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

import requests
import config

from codeui.errors import GenerationError
from codeui.logger import get_logger
from codeui.models import GenerationEvent, GenerationRequest
from codeui.patch import apply_search_replace, extract_html
from codeui.stream import SSEDecoder, decode_stream, extract_normalized_delta

logger = get_logger(__name__)

Transport = Callable[[GenerationRequest], Iterable[bytes]]


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SessionState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


ACTIVE_STATES = (SessionState.IDLE, SessionState.SENDING, SessionState.STREAMING)


class HttpTransport:
    """Posts a request to the generation endpoint and yields the raw stream"""

    def __init__(self, endpoint: Optional[str] = None, timeout: float = 300.0):
        self.endpoint = endpoint or config.GENERATION_ENDPOINT
        self.timeout = timeout

    def __call__(self, request: GenerationRequest) -> Iterator[bytes]:
        method = "PUT" if request.is_follow_up else "POST"
        try:
            response = requests.request(
                method,
                self.endpoint,
                json=request.model_dump(by_alias=True, exclude_none=True),
                stream=True,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GenerationError(f"Failed to reach generation endpoint: {str(e)}")

        if not response.ok:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            response.close()
            raise GenerationError(
                message or "Failed to generate content",
                status_code=response.status_code,
            )

        return self._iter_chunks(response)

    @staticmethod
    def _iter_chunks(response: requests.Response) -> Iterator[bytes]:
        with response:
            yield from response.iter_content(chunk_size=None)


class GenerationSession:
    def __init__(
        self,
        request: GenerationRequest,
        transport: Transport,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.request = request
        self.transport = transport
        self.cancel_token = cancel_token or CancelToken()
        self.state = SessionState.IDLE
        self.decoder = SSEDecoder(extract=extract_normalized_delta)
        self.result: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def content(self) -> str:
        return self.decoder.content

    @property
    def thinking(self) -> str:
        return self.decoder.thinking

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def cancel(self):
        self.cancel_token.cancel()
        if self.is_active:
            self.state = SessionState.CANCELLED
            logger.info("Generation cancelled")

    def events(self) -> Iterator[GenerationEvent]:
        if self.state is SessionState.CANCELLED:
            return
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session already {self.state.value}")

        self.state = SessionState.SENDING
        try:
            chunks = self.transport(self.request)
        except Exception as e:
            if self.cancel_token.cancelled:
                self.state = SessionState.CANCELLED
                return
            if isinstance(e, GenerationError):
                self._fail(e.message)
            else:
                logger.error(f"Transport raised {type(e).__name__}", exc_info=True)
                self._fail(str(e) or type(e).__name__)
            yield GenerationEvent(kind="error", message=self.error)
            return

        try:
            for event in decode_stream(chunks, self.decoder, self.cancel_token):
                if self.cancel_token.cancelled:
                    break
                if self.state is SessionState.SENDING:
                    self.state = SessionState.STREAMING
                if event.kind == "error":
                    self._fail(event.message)
                elif event.kind == "done":
                    self._complete()
                yield event
        except Exception as e:
            if not self.cancel_token.cancelled:
                logger.error(f"Stream handling raised {type(e).__name__}", exc_info=True)
                self._fail(str(e) or type(e).__name__)
                yield GenerationEvent(kind="error", message=self.error)
                return

        if self.cancel_token.cancelled:
            self.state = SessionState.CANCELLED

    def run(self) -> Optional[str]:
        """Drive the session; returns the new document, or None when cancelled"""
        for _ in self.events():
            pass
        if self.state is SessionState.FAILED:
            raise GenerationError(self.error)
        if self.state is SessionState.COMPLETED:
            return self.result
        return None

    def _complete(self):
        raw = self.decoder.content
        if self.request.is_follow_up and self.request.current_html is not None:
            self.result = apply_search_replace(self.request.current_html, raw)
        else:
            self.result = extract_html(raw)
        self.state = SessionState.COMPLETED
        logger.info(
            f"Generation completed: {len(raw)} chars of content, "
            f"{len(self.decoder.thinking)} chars of reasoning"
        )

    def _fail(self, message: Optional[str]):
        self.error = message or "Unknown error"
        self.state = SessionState.FAILED
        logger.error(f"Generation failed: {self.error}")


class GenerationController:
    """Keeps at most one session in flight; starting a new one aborts the last"""

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport or HttpTransport()
        self.current: Optional[GenerationSession] = None

    @property
    def is_generating(self) -> bool:
        return self.current is not None and self.current.is_active

    def start(
        self,
        prompt: str,
        current_html: Optional[str] = None,
        model: Optional[str] = None,
        is_follow_up: bool = False,
    ) -> GenerationSession:
        self.cancel()
        request = GenerationRequest(
            prompt=prompt,
            current_html=current_html,
            model=model,
            is_follow_up=is_follow_up,
        )
        self.current = GenerationSession(request, self.transport)
        return self.current

    def generate(self, prompt: str, **kwargs) -> Optional[str]:
        session = self.start(prompt, **kwargs)
        try:
            return session.run()
        finally:
            if self.current is session:
                self.current = None

    def cancel(self):
        if self.current is not None:
            self.current.cancel()
            self.current = None
