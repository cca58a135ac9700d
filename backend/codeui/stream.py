"""
Server-sent event decoding.

The upstream provider streams ``data: <json>`` lines ending with
``data: [DONE]``. SSEDecoder turns raw chunks into ordered GenerationEvents
while accumulating the full content and reasoning text; normalize_stream
re-encodes them as the simplified ``{"type": ..., "data": ...}`` frames the
editor client consumes.
"""

import codecs
import json
from typing import Callable, Iterable, Iterator, List, Optional, Union

import httpx
import openai
import requests

from codeui.logger import get_logger
from codeui.models import GenerationEvent

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# requests.RequestException already subclasses OSError; openai streams raise raw httpx errors
TRANSPORT_ERRORS = (OSError, requests.RequestException, httpx.HTTPError, openai.APIError)

PayloadExtractor = Callable[[dict], List[GenerationEvent]]


def extract_upstream_delta(payload: dict) -> List[GenerationEvent]:
    """OpenAI-compatible chunk: choices[0].delta.{content,reasoning}"""
    try:
        delta = payload["choices"][0]["delta"]
    except (KeyError, IndexError, TypeError):
        return []
    if not isinstance(delta, dict):
        return []

    events = []
    content = delta.get("content")
    reasoning = delta.get("reasoning")
    if isinstance(content, str) and content:
        events.append(GenerationEvent(kind="content", text=content))
    if isinstance(reasoning, str) and reasoning:
        events.append(GenerationEvent(kind="thinking", text=reasoning))
    return events


def extract_normalized_delta(payload: dict) -> List[GenerationEvent]:
    """Frames produced by encode_event"""
    if not isinstance(payload, dict):
        return []
    kind = payload.get("type")
    data = payload.get("data")
    if not isinstance(data, str) or not data:
        return []
    if kind in ("content", "thinking"):
        return [GenerationEvent(kind=kind, text=data)]
    if kind == "error":
        return [GenerationEvent(kind="error", message=data)]
    return []


class SSEDecoder:
    """Incremental decoder; only complete lines are processed"""

    def __init__(self, extract: PayloadExtractor = extract_upstream_delta):
        self._extract = extract
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.content = ""
        self.thinking = ""
        self.finished = False

    def feed(self, chunk: Union[bytes, str]) -> List[GenerationEvent]:
        if self.finished:
            return []
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        *lines, self._buffer = self._buffer.split("\n")
        events = []
        for line in lines:
            events.extend(self._process_line(line))
            if self.finished:
                break
        return events

    def close(self) -> List[GenerationEvent]:
        """Flush a final line that arrived without a trailing newline"""
        remaining = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if self.finished or not remaining.strip():
            return []
        return self._process_line(remaining)

    def _process_line(self, line: str) -> List[GenerationEvent]:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return []

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            self.finished = True
            return [GenerationEvent(kind="done")]

        try:
            payload = json.loads(data)
        except ValueError:
            logger.debug(f"Discarding malformed SSE line: {data[:100]}")
            return []

        events = self._extract(payload)
        for event in events:
            if event.kind == "content":
                self.content += event.text
            elif event.kind == "thinking":
                self.thinking += event.text
            elif event.kind == "error":
                self.finished = True
                break
        return events


def decode_stream(
    chunks: Iterable[Union[bytes, str]],
    decoder: Optional[SSEDecoder] = None,
    cancel=None,
) -> Iterator[GenerationEvent]:
    """
    Drive a decoder over a chunk source.

    Yields events in arrival order and always finishes with exactly one
    ``done`` or ``error`` event, unless ``cancel`` is set, in which case the
    loop stops silently before the next read.
    """
    decoder = decoder or SSEDecoder()
    iterator = iter(chunks)

    def cancelled() -> bool:
        return cancel is not None and cancel.cancelled

    try:
        while True:
            if cancelled():
                return
            try:
                chunk = next(iterator)
            except StopIteration:
                break
            except TRANSPORT_ERRORS as e:
                logger.error(f"Stream error: {str(e)}")
                yield GenerationEvent(kind="error", message=str(e) or type(e).__name__)
                return

            for event in decoder.feed(chunk):
                if cancelled():
                    return
                yield event
                if event.kind in ("done", "error"):
                    return

        for event in decoder.close():
            if cancelled():
                return
            yield event
            if event.kind == "error":
                return
        if not decoder.finished:
            yield GenerationEvent(kind="done")
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()


def encode_event(event: GenerationEvent) -> str:
    """Normalized frame for one event; ``done`` has no frame, the stream just closes"""
    if event.kind == "done":
        return ""
    data = event.message if event.kind == "error" else event.text
    return f"data: {json.dumps({'type': event.kind, 'data': data})}\n\n"


def normalize_stream(chunks: Iterable[bytes]) -> Iterator[str]:
    """Re-encode an upstream provider stream into normalized frames"""
    for event in decode_stream(chunks, SSEDecoder(extract_upstream_delta)):
        frame = encode_event(event)
        if frame:
            yield frame
