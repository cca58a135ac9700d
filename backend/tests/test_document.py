import json

import pytest

from codeui.document import (
    DEFAULT_TEMPLATE,
    EditorSession,
    apply_changes_to_html,
    parse_inline_style,
    serialize_inline_style,
)
from codeui.errors import GenerationError, StyleApplicationError
from codeui.history import StyleHistory
from codeui.models import StyleChange, StyleSnapshot
from codeui.persistence import StylePersistence
from codeui.session import GenerationController, SessionState
from tests.fakes import FakeTransport, normalized_frame

PAGE = '<main><h1 id="title" class="x">Hi</h1><p class="lead">Text</p></main>'
DOCUMENT = "<!DOCTYPE html><html><body><h1>Old</h1></body></html>"
PATCH = "<<<<<<< SEARCH\n<h1>Old</h1>\n=======\n<h1>New</h1>\n>>>>>>> REPLACE"


def make_editor(clock, *responses, content=PAGE, persistence=None):
    return EditorSession(
        content=content,
        controller=GenerationController(FakeTransport(*responses)),
        history=StyleHistory(max_size=10, batch_delay_ms=300, clock=clock),
        persistence=persistence,
        model="deepseek/deepseek-chat",
    )


@pytest.fixture
def editor(clock):
    return make_editor(clock)


@pytest.fixture
def title():
    return StyleSnapshot(selector="#title", element_type="h1", attributes={"class": "x"})


def test_parse_inline_style_respects_quotes_and_parens():
    style = 'color: red; background: url("a;b.png"); font-family: "A;B", serif;'

    assert parse_inline_style(style) == {
        "color": "red",
        "background": 'url("a;b.png")',
        "font-family": '"A;B", serif',
    }
    assert parse_inline_style("") == {}


def test_serialize_inline_style():
    assert serialize_inline_style({"color": "red", "font-size": "12px"}) == (
        "color: red; font-size: 12px"
    )


def test_apply_changes_merges_into_existing_inline_style():
    html = '<div id="a" style="margin: 0; color: red">x</div>'
    changes = [
        StyleChange(selector="#a", property="color", old_value="red", new_value="blue"),
        StyleChange(selector="#a", property="fontSize", new_value="14px"),
        StyleChange(selector="#a", property="margin", old_value="0", new_value=None),
    ]

    result = apply_changes_to_html(html, changes, use_new=True)

    assert result == '<div id="a" style="color: blue; font-size: 14px">x</div>'


def test_apply_changes_raises_for_missing_element():
    change = StyleChange(selector="#nope", property="color", new_value="red")

    with pytest.raises(StyleApplicationError) as excinfo:
        apply_changes_to_html(PAGE, [change], use_new=True)

    assert excinfo.value.selector == "#nope"


def test_edit_style_validates_applies_and_records(editor, title):
    result = editor.edit_style(title, "color", "#F00")

    assert result.sanitized_value == "#ff0000"
    assert 'style="color: #ff0000"' in editor.content
    assert editor.has_unsaved_changes
    assert title.computed_styles["color"] == "#ff0000"
    assert editor.history.can_undo


def test_invalid_style_leaves_document_alone(editor, title):
    result = editor.edit_style(title, "fontSize", "-3px")

    assert not result.is_valid
    assert editor.content == PAGE
    assert not editor.history.can_undo


def test_undo_and_redo_style_edits(editor, title):
    editor.edit_style(title, "color", "#F00")
    editor.edit_style(title, "fontSize", 24)
    edited = editor.content
    assert "font-size: 24px" in edited

    undone = editor.undo()

    assert [c.property for c in undone] == ["color", "fontSize"]
    assert editor.content == PAGE

    editor.redo()
    assert editor.content == edited


def test_undo_restores_previous_computed_value(editor):
    snapshot = StyleSnapshot(selector="p.lead", computed_styles={"opacity": 1})
    editor.edit_style(snapshot, "opacity", 0.5)
    assert 'style="opacity: 0.5"' in editor.content

    editor.undo()

    assert 'style="opacity: 1"' in editor.content


def test_style_edit_on_missing_element_is_not_recorded(editor):
    ghost = StyleSnapshot(selector="#ghost")

    with pytest.raises(StyleApplicationError):
        editor.edit_style(ghost, "color", "red")

    assert editor.content == PAGE
    assert not editor.history.can_undo


def test_paste_styles_is_one_undo_step(editor, title):
    results = editor.paste_styles(title, {"color": "blue", "opacity": "x", "padding": "4px 8px"})

    assert not results["opacity"].is_valid
    assert "padding: 4px 8px" in editor.content
    assert "opacity" not in editor.content

    editor.undo()
    assert editor.content == PAGE
    assert not editor.history.can_undo


LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>Page</title>
</head>
<body>
  <h1 id="title" class="x">Hi &copy;</h1><br>
  <p class="lead"
     data-note='a "quoted" note'>Text</p>
</body>
</html>"""


def test_style_edit_only_rewrites_the_start_tag(clock, title):
    editor = make_editor(clock, content=LAYOUT)

    editor.edit_style(title, "color", "#F00")

    assert editor.content == LAYOUT.replace(
        '<h1 id="title" class="x">', '<h1 id="title" class="x" style="color: #ff0000">'
    )

    editor.undo()
    assert editor.content == LAYOUT


def test_multi_line_start_tag_round_trips(clock):
    editor = make_editor(clock, content=LAYOUT)
    lead = StyleSnapshot(selector="p.lead", element_type="p")

    editor.edit_style(lead, "opacity", 0.5)

    assert """data-note='a "quoted" note' style="opacity: 0.5">Text</p>""" in editor.content
    editor.undo()
    assert editor.content == LAYOUT


def test_failed_undo_leaves_history_and_document_in_place(editor, title):
    editor.edit_attribute(title, "id", "hero")
    edited = editor.content

    # the recorded selector no longer matches once the id is gone
    with pytest.raises(StyleApplicationError):
        editor.undo()

    assert editor.content == edited
    assert 'id="hero"' in editor.content
    assert editor.history.can_undo
    assert not editor.history.can_redo


def test_edit_attribute(editor, title):
    editor.edit_attribute(title, "data-role", "heading")
    assert 'data-role="heading"' in editor.content
    assert title.attributes["data-role"] == "heading"

    editor.undo()
    assert "data-role" not in editor.content


def test_style_edits_are_persisted(clock, storage, title):
    persistence = StylePersistence(storage=storage, storage_key="styles", debounce_ms=500, clock=clock)
    editor = make_editor(clock, persistence=persistence)

    editor.edit_style(title, "color", "red")
    clock.advance(1)
    persistence.poll()

    assert persistence.get_styles("#title") == {"color": "red"}
    assert storage.writes == 1


def test_idle_style_writes_land_on_next_editor_call(clock, storage, title):
    persistence = StylePersistence(storage=storage, storage_key="styles", debounce_ms=500, clock=clock)
    editor = make_editor(clock, persistence=persistence)

    editor.edit_style(title, "color", "red")
    clock.advance(5)
    assert storage.writes == 0

    editor.undo()

    assert storage.writes == 1
    assert json.loads(storage.data["styles"]) == {"#title": {"color": "red"}}


def test_create_version_flushes_pending_work(clock, storage, title):
    persistence = StylePersistence(storage=storage, storage_key="styles", debounce_ms=500, clock=clock)
    editor = make_editor(clock, persistence=persistence)

    editor.edit_style(title, "color", "red")
    editor.paste_styles(title, {"padding": "4px"})
    editor.create_version("Styled")

    assert storage.writes == 1
    assert json.loads(storage.data["styles"]) == {"#title": {"color": "red", "padding": "4px"}}
    assert not editor.history.has_pending


def test_versions(editor):
    first = editor.create_version("Initial")
    assert not editor.has_unsaved_changes

    editor.set_content("<p>changed</p>")
    assert editor.has_unsaved_changes

    assert editor.restore_version(first.id)
    assert editor.content == PAGE
    assert editor.current_version_id == first.id
    assert not editor.has_unsaved_changes
    assert not editor.restore_version("missing")


def test_view_and_device_modes(editor):
    editor.set_view_mode("code")
    editor.set_device_mode("mobile")
    assert (editor.view_mode, editor.device_mode) == ("code", "mobile")

    with pytest.raises(ValueError):
        editor.set_view_mode("split")
    with pytest.raises(ValueError):
        editor.set_device_mode("watch")


def test_first_generation_then_follow_up(clock):
    editor = make_editor(
        clock,
        [normalized_frame("thinking", "plan"), normalized_frame("content", DOCUMENT)],
        [normalized_frame("content", "Renaming\n" + PATCH)],
        content=DEFAULT_TEMPLATE,
    )
    transport = editor.controller.transport

    session = editor.generate("A page with a heading")

    assert session.state is SessionState.COMPLETED
    assert editor.content == DOCUMENT
    assert [m.role for m in editor.messages] == ["user", "assistant"]
    reply = editor.messages[-1]
    assert reply.content == DOCUMENT
    assert reply.thinking_content == "plan"
    assert not reply.is_thinking
    assert not transport.requests[0].is_follow_up
    assert transport.requests[0].current_html is None

    editor.generate("Rename the heading")

    follow_up = transport.requests[1]
    assert follow_up.is_follow_up
    assert follow_up.current_html == DOCUMENT
    assert follow_up.model == "deepseek/deepseek-chat"
    assert editor.content == DOCUMENT.replace("Old", "New")
    assert not editor.is_generating


def test_failed_generation_keeps_document(clock):
    editor = make_editor(clock, GenerationError("Invalid API key", status_code=401))

    session = editor.generate("anything")

    assert session.state is SessionState.FAILED
    assert editor.content == PAGE
    assert editor.messages[-1].content == "Error: Invalid API key"
    assert not editor.has_unsaved_changes


def test_applied_generation_clears_style_history(clock, title):
    editor = make_editor(clock, [normalized_frame("content", DOCUMENT)])
    editor.edit_style(title, "color", "red")

    editor.generate("new page")

    assert editor.content == DOCUMENT
    assert not editor.history.can_undo
