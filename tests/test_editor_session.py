import json

import pytest
from PIL import Image

from omr_layout.core.editor_session import LayoutEditorSession
from omr_layout.core.events import TEMPLATE_CHANGED, EventHub
from omr_layout.core.render_pipeline import ImageLayer, Line


@pytest.fixture
def session():
    session = LayoutEditorSession()
    session.add_block()
    session.add_block()
    return session


def test_drag_emits_template_changed(session):
    changes = []
    session.events.subscribe(TEMPLATE_CHANGED, changes.append)
    session.pointer_down(110, 60)
    session.pointer_move(140, 80)
    session.pointer_up()
    assert len(changes) == 1
    assert changes[0]["fieldBlocks"]["Column1"]["origin"] == [130.0, 70.0]


def test_remove_selected_block_clears_selection(session):
    session.pointer_down(110, 60)
    session.pointer_up()
    assert session.view.selected_field_id == "Column1"
    session.remove_selected_block()
    assert session.view.selected_field_id is None
    assert list(session.template.field_blocks) == ["Column2"]


def test_remove_dragged_block_cancels_drag(session):
    session.pointer_down(110, 60)
    session.remove_block("Column1")
    session.pointer_move(200, 200)
    session.pointer_up()
    assert session.drag.dragged_field_id is None
    assert "Column1" not in session.template.field_blocks


def test_save_writes_file_and_emits(session, tmp_path):
    changes = []
    session.events.subscribe(TEMPLATE_CHANGED, changes.append)
    path = tmp_path / "template.json"
    data = session.save(path)
    assert json.loads(path.read_text()) == data
    assert changes == [data]
    assert session.template_path == path

    reloaded = LayoutEditorSession.from_file(path, events=EventHub())
    assert reloaded.template.serialize() == data
    assert reloaded.view.selected_field_id is None


def test_save_without_path_only_emits(session):
    changes = []
    session.events.subscribe(TEMPLATE_CHANGED, changes.append)
    session.save()
    assert len(changes) == 1


def test_background_fit_adjust_and_remove(session):
    background = session.set_background_image(Image.new("RGBA", (1000, 500)))
    assert background.scale == pytest.approx(0.707 * 0.8)

    session.adjust_background(scale=0.01, offset_x=-20, offset_y=15)
    assert background.scale == 0.1
    assert (background.offset_x, background.offset_y) == (-20.0, 15.0)

    session.fit_background()
    assert background.scale == pytest.approx(0.707 * 0.8)
    assert [c for c in session.render() if isinstance(c, ImageLayer)]

    session.remove_background()
    assert session.background is None
    assert not [c for c in session.render() if isinstance(c, ImageLayer)]


def test_view_toggles(session):
    assert session.toggle_grid() is False
    assert session.toggle_coordinates() is True
    session.zoom_in()
    assert session.view.zoom == pytest.approx(1.2)
    session.reset_view()
    assert session.view.zoom == 1.0


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValueError):
        EventHub().subscribe("frameReady", print)


def test_unsubscribe():
    hub = EventHub()
    received = []
    unsubscribe = hub.subscribe(TEMPLATE_CHANGED, received.append)
    hub.emit(TEMPLATE_CHANGED, 1)
    unsubscribe()
    hub.emit(TEMPLATE_CHANGED, 2)
    assert received == [1]


def test_session_follows_user_config(tmp_path):
    from src.defaults.config import load_config

    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "editor": {
                    "max_zoom": 2.0,
                    "hit_margin": 30,
                    "grid_size": 100,
                    "new_block": {"bubble_count": 5, "origin_x": 40},
                }
            }
        )
    )
    session = LayoutEditorSession(config=load_config(path))
    block_id = session.add_block()
    block = session.template.field_blocks[block_id]
    assert block.bubble_count == 5
    assert block.origin == (40.0, 50.0)

    for _ in range(10):
        session.zoom_in()
    assert session.view.zoom == 2.0
    session.reset_view()

    # 25 px left of the block is outside the default margin but inside 30.
    session.pointer_down(15, 60)
    session.pointer_up()
    assert session.view.selected_field_id == block_id

    lines = [c for c in session.render() if isinstance(c, Line)]
    assert len(lines) == 8 + 5
