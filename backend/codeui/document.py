"""
Editor session: the single source of truth for the current document.

The document is mutated by three owners: AI generations (whole document
swap on completion), visual style edits recorded in StyleHistory, and direct
source edits. Every mutation replaces the whole string at once, so a failed
generation or style application never leaves a partial write behind.
"""

import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from codeui.ai_models import get_default_model_id
from codeui.errors import StyleApplicationError
from codeui.history import ChangeBatch, StyleHistory
from codeui.logger import get_logger
from codeui.models import Message, StyleChange, StyleSnapshot, StyleValue, Version
from codeui.persistence import StylePersistence
from codeui.session import GenerationController, GenerationSession, SessionState
from codeui.validators import (
    ValidationResult,
    format_number,
    to_kebab_case,
    validate_style_value,
)

logger = get_logger(__name__)

VIEW_MODES = ("preview", "design", "code")
DEVICE_MODES = ("desktop", "tablet", "mobile")

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>New page</title>
  <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="min-h-screen bg-slate-950 text-slate-100">
  <main class="flex min-h-screen items-center justify-center">
    <h1 class="text-4xl font-bold">Describe the page you want to build</h1>
  </main>
</body>
</html>"""

# name: value pairs; values may contain parenthesised or quoted semicolons
_DECLARATION_RE = re.compile(
    r"""\s*([-\w]+)\s*:\s*((?:\([^)]*\)|"[^"]*"|'[^']*'|[^;("'])+)"""
)

_TAG_NAME_RE = re.compile(r"<[^\s/>]+")
_ATTRIBUTE_RE = re.compile(
    r"""(\s+)([^\s"'>/=]+)(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?"""
)


def parse_inline_style(style: str) -> Dict[str, str]:
    return {
        name.lower(): value.strip()
        for name, value in _DECLARATION_RE.findall(style or "")
        if value.strip()
    }


def serialize_inline_style(declarations: Dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in declarations.items())


def _value_text(value: StyleValue) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def _attribute_text(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;")


def _locate_start_tag(html: str, selector: str):
    """Element for ``selector`` and the offset of its start tag in ``html``"""
    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(selector)
    if element is None or element.sourceline is None:
        raise StyleApplicationError(selector)

    line_start = 0
    for _ in range(element.sourceline - 1):
        line_start = html.index("\n", line_start) + 1
    offset = line_start + element.sourcepos
    if not _TAG_NAME_RE.match(html, offset):
        raise StyleApplicationError(selector)
    return element, offset


def _set_attribute(html: str, offset: int, name: str, value: Optional[str]) -> str:
    """
    Rewrite one attribute of the start tag at ``offset``; None removes it.

    Only the attribute's own span changes. A new attribute goes after the
    last existing one, so removing it again restores the original tag.
    """
    pos = _TAG_NAME_RE.match(html, offset).end()
    existing = None
    while True:
        match = _ATTRIBUTE_RE.match(html, pos)
        if match is None:
            break
        if match.group(2).lower() == name.lower():
            existing = match
        pos = match.end()

    if existing is not None:
        if value is None:
            return html[: existing.start()] + html[existing.end():]
        attribute = f'{existing.group(1)}{existing.group(2)}="{_attribute_text(value)}"'
        return html[: existing.start()] + attribute + html[existing.end():]

    if value is None:
        return html
    return html[:pos] + f' {name}="{_attribute_text(value)}"' + html[pos:]


def _apply_change(html: str, change: StyleChange, use_new: bool) -> str:
    element, offset = _locate_start_tag(html, change.selector)
    value = change.new_value if use_new else change.old_value
    if value == "":
        value = None

    if change.kind == "attribute":
        text = None if value is None else _value_text(value)
        return _set_attribute(html, offset, change.property, text)

    declarations = parse_inline_style(element.get("style", ""))
    name = to_kebab_case(change.property)
    if value is None:
        declarations.pop(name, None)
    else:
        declarations[name] = _value_text(value)
    style = serialize_inline_style(declarations) if declarations else None
    return _set_attribute(html, offset, "style", style)


def apply_changes_to_html(html: str, changes: Iterable[StyleChange], use_new: bool) -> str:
    """
    Write change values into the matching elements.

    BeautifulSoup only locates each element; the edit is spliced into the
    source text of its start tag, so every other byte of the document is
    preserved. Style changes rewrite the inline ``style`` declaration,
    attribute changes the attribute itself; a None or empty value removes
    it. Raises StyleApplicationError if a selector matches nothing.
    """
    for change in changes:
        html = _apply_change(html, change, use_new)
    return html


class EditorSession:
    def __init__(
        self,
        content: str = DEFAULT_TEMPLATE,
        controller: Optional[GenerationController] = None,
        history: Optional[StyleHistory] = None,
        persistence: Optional[StylePersistence] = None,
        model: Optional[str] = None,
    ):
        self.content = content
        self.has_unsaved_changes = False
        self.view_mode = "preview"
        self.device_mode = "desktop"
        self.selected_model = model or get_default_model_id()
        self.selected_element: Optional[str] = None
        self.messages: List[Message] = []
        self.versions: List[Version] = []
        self.current_version_id: Optional[str] = None

        self.controller = controller or GenerationController()
        self.history = history or StyleHistory()
        self.persistence = persistence

    @property
    def is_generating(self) -> bool:
        return self.controller.is_generating

    # --- timers ---

    def poll(self) -> bool:
        """
        Run due debounce work: commit a quiet history batch and write
        persisted styles whose delay has passed. Every public operation
        polls first, and a host event loop may call it on a timer.
        """
        committed = self.history.poll()
        written = self.persistence.poll() if self.persistence is not None else False
        return committed or written

    def flush(self) -> bool:
        """Commit pending history and write persisted styles now"""
        committed = self.history.flush()
        written = self.persistence.flush() if self.persistence is not None else False
        return committed or written

    # --- document ---

    def set_content(self, content: str):
        """Direct source edit"""
        self.content = content
        self.has_unsaved_changes = True

    def load_content(self, content: str):
        """Initial or restored content; nothing unsaved yet"""
        self.content = content
        self.has_unsaved_changes = False

    def set_view_mode(self, mode: str):
        self.poll()
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {mode}")
        self.view_mode = mode

    def set_device_mode(self, mode: str):
        self.poll()
        if mode not in DEVICE_MODES:
            raise ValueError(f"Unknown device mode: {mode}")
        self.device_mode = mode

    # --- versions ---

    def create_version(self, description: Optional[str] = None) -> Version:
        self.flush()
        version = Version(
            html_content=self.content,
            timestamp=datetime.now().isoformat(),
            description=description,
        )
        self.versions.append(version)
        self.current_version_id = version.id
        self.has_unsaved_changes = False
        return version

    def restore_version(self, version_id: str) -> bool:
        version = next((v for v in self.versions if v.id == version_id), None)
        if version is None:
            logger.warning(f"Version {version_id} not found")
            return False
        self.flush()
        self.load_content(version.html_content)
        self.current_version_id = version.id
        self.history.clear()
        return True

    # --- chat ---

    def add_message(self, role: str, content: str, **fields) -> Message:
        self.poll()
        message = Message(
            role=role, content=content, timestamp=datetime.now().isoformat(), **fields
        )
        self.messages.append(message)
        return message

    def generate(self, prompt: str, model: Optional[str] = None) -> GenerationSession:
        """
        Run one generation and apply its result.

        The first generation asks for a whole document; once an assistant
        reply exists, later prompts are follow-ups that send the current
        document and expect SEARCH/REPLACE blocks. Failures are attached to
        the assistant message and leave the document untouched.
        """
        self.flush()
        is_follow_up = any(m.role == "assistant" for m in self.messages)
        self.add_message("user", prompt)
        reply = self.add_message("assistant", "", is_thinking=True)

        session = self.controller.start(
            prompt,
            current_html=self.content if is_follow_up else None,
            model=model or self.selected_model,
            is_follow_up=is_follow_up,
        )
        for event in session.events():
            if event.kind == "thinking":
                reply.thinking_content = session.thinking
            elif event.kind == "content":
                reply.content = session.content
            elif event.kind == "error":
                reply.content = f"Error: {event.message}"

        reply.is_thinking = False
        self.apply_generation(session)
        return session

    def apply_generation(self, session: GenerationSession) -> bool:
        if session.state is not SessionState.COMPLETED or session.result is None:
            return False
        if session.result == self.content:
            logger.info("Generation produced no document change")
            return False
        self.set_content(session.result)
        self.history.clear()
        return True

    # --- visual edits ---

    def apply_batch(self, changes: Iterable[StyleChange], use_new: bool):
        """Write a batch into the document in one swap; raises StyleApplicationError"""
        self.set_content(apply_changes_to_html(self.content, changes, use_new))

    def edit_style(
        self, snapshot: StyleSnapshot, prop: str, value: StyleValue
    ) -> ValidationResult:
        """Validate, apply and record one style edit on the selected element"""
        self.poll()
        result = validate_style_value(prop, value)
        if not result.is_valid:
            return result

        change = StyleChange(
            selector=snapshot.selector,
            property=prop,
            old_value=snapshot.computed_styles.get(prop),
            new_value=result.sanitized_value,
        )
        self.apply_batch([change], use_new=True)
        self.history.push_change(change)
        snapshot.computed_styles[prop] = result.sanitized_value
        if self.persistence is not None:
            self.persistence.update_style(snapshot.selector, prop, result.sanitized_value)
        return result

    def edit_attribute(self, snapshot: StyleSnapshot, name: str, value: Optional[str]):
        self.poll()
        change = StyleChange(
            selector=snapshot.selector,
            property=name,
            old_value=snapshot.attributes.get(name),
            new_value=value,
            kind="attribute",
        )
        self.apply_batch([change], use_new=True)
        self.history.push_change(change)
        if value is None:
            snapshot.attributes.pop(name, None)
        else:
            snapshot.attributes[name] = value

    def paste_styles(
        self, snapshot: StyleSnapshot, styles: Dict[str, StyleValue]
    ) -> Dict[str, ValidationResult]:
        """Apply a whole style set as a single undo step; invalid values are skipped"""
        self.poll()
        results = {}
        changes = []
        for prop, value in styles.items():
            result = validate_style_value(prop, value)
            results[prop] = result
            if result.is_valid:
                changes.append(
                    StyleChange(
                        selector=snapshot.selector,
                        property=prop,
                        old_value=snapshot.computed_styles.get(prop),
                        new_value=result.sanitized_value,
                    )
                )

        if changes:
            self.apply_batch(changes, use_new=True)
            self.history.batch_changes(changes)
            for change in changes:
                snapshot.computed_styles[change.property] = change.new_value
                if self.persistence is not None:
                    self.persistence.update_style(
                        snapshot.selector, change.property, change.new_value
                    )
        return results

    def undo(self) -> Optional[ChangeBatch]:
        """
        Re-apply the old values of the last batch. The document is rewritten
        before the history moves, so a failed application leaves both as
        they were.
        """
        self.poll()
        batch = self.history.peek_undo()
        if batch is None:
            return None
        content = apply_changes_to_html(self.content, reversed(batch), use_new=False)
        self.history.undo()
        self.set_content(content)
        return batch

    def redo(self) -> Optional[ChangeBatch]:
        self.poll()
        batch = self.history.peek_redo()
        if batch is None:
            return None
        content = apply_changes_to_html(self.content, batch, use_new=True)
        self.history.redo()
        self.set_content(content)
        return batch
