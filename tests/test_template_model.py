from omr_layout.core.template_model import FieldBlock, TemplateModel, ViewState


def test_add_field_block_ids_and_labels(template):
    ids = [template.add_field_block() for _ in range(4)]
    assert ids == ["Column1", "Column2", "Column3", "Column4"]
    for block in template.field_blocks.values():
        assert block.bubble_count == 20
        assert len(block.field_labels) == 20


def test_add_field_block_default_geometry(template):
    template.add_field_block()
    template.add_field_block()
    second = template.field_blocks["Column2"]
    assert second.origin == (250.0, 50.0)
    assert second.field_type == "QTYPE_MCQ4"
    assert second.bubbles_gap == 21
    assert second.labels_gap == 22.7
    assert second.field_labels[0] == "Q21"
    assert second.field_labels[-1] == "Q40"


def test_add_after_remove_does_not_reuse_existing_id(template):
    for _ in range(3):
        template.add_field_block()
    template.remove_field_block("Column1")
    new_id = template.add_field_block()
    assert new_id == "Column4"
    assert len(template.field_blocks) == 3


def test_remove_missing_block_is_noop(template):
    template.add_field_block()
    assert template.remove_field_block("Nope") is False
    assert list(template.field_blocks) == ["Column1"]


def test_set_origin_clamps_and_ignores_unknown_ids(one_block_template):
    one_block_template.set_origin("Column1", -5, 12)
    assert one_block_template.field_blocks["Column1"].origin == (0.0, 12.0)
    one_block_template.set_origin("Missing", 1, 1)


def test_bubble_count_resize_preserves_labels(one_block_template):
    one_block_template.set_field_labels("Column1", ["a", "b", "c", "d", "e"])
    one_block_template.set_bubble_count("Column1", 5)
    one_block_template.set_bubble_count("Column1", 8)
    block = one_block_template.field_blocks["Column1"]
    assert block.field_labels == ["a", "b", "c", "d", "e", "Q6", "Q7", "Q8"]
    assert block.bubble_count == 8


def test_bubble_count_is_clamped_to_one(one_block_template):
    one_block_template.set_bubble_count("Column1", 0)
    block = one_block_template.field_blocks["Column1"]
    assert block.bubble_count == 1
    assert block.field_labels == ["Q1"]


def test_field_block_enforces_invariants_on_creation():
    block = FieldBlock(
        id="B",
        field_type="QTYPE_MCQ4",
        origin_x=-1,
        origin_y=3,
        bubbles_gap=10,
        labels_gap=10,
        bubble_count=3,
        field_labels=["x"],
    )
    assert block.origin == (0.0, 3.0)
    assert block.field_labels == ["x", "Q2", "Q3"]


def test_set_gaps_clamps_negative(one_block_template):
    one_block_template.set_gaps("Column1", bubbles_gap=-4, labels_gap=12)
    block = one_block_template.field_blocks["Column1"]
    assert block.bubbles_gap == 0.0
    assert block.labels_gap == 12.0


def test_serialize_shape(one_block_template):
    data = one_block_template.serialize()
    assert data["pageDimensions"] == [707, 484]
    assert data["bubbleDimensions"] == [15, 10]
    assert data["emptyValue"] == "-"
    block = data["fieldBlocks"]["Column1"]
    assert block["id"] == "Column1"
    assert block["origin"] == [100.0, 50.0]
    assert block["bubbleCount"] == len(block["fieldLabels"]) == 20


def test_empty_template_is_valid(template):
    assert template.serialize()["fieldBlocks"] == {}


def test_view_zoom_is_bounded():
    view = ViewState()
    for _ in range(20):
        view.zoom_in()
    assert view.zoom == 3.0
    for _ in range(20):
        view.zoom_out()
    assert view.zoom == 0.5
    view.pan_x, view.pan_y = 10, 10
    view.reset_view()
    assert (view.zoom, view.pan) == (1.0, (0.0, 0.0))


def test_view_state_from_config():
    from src.defaults.config import load_config

    config = load_config()
    config.editor.min_zoom = 0.25
    config.editor.zoom_step = 2.0
    view = ViewState.from_config(config)
    view.zoom_out()
    view.zoom_out()
    view.zoom_out()
    assert view.zoom == 0.25
