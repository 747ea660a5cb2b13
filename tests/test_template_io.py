import json

import pytest

from omr_layout.core.errors import InvalidTemplate
from omr_layout.core.template_io import (
    _expand_labels,
    load_template,
    save_template,
    template_from_dict,
)
from omr_layout.core.template_model import TemplateModel


def test_missing_dimensions_fall_back_to_defaults():
    model = template_from_dict({"fieldBlocks": {}})
    assert model.page_dimensions == (707, 484)
    assert model.bubble_dimensions == (15, 10)


def test_malformed_dimensions_fall_back_to_defaults():
    model = template_from_dict({"pageDimensions": "wide", "bubbleDimensions": [0, 10]})
    assert model.page_dimensions == (707, 484)
    assert model.bubble_dimensions == (15, 10)


def test_valid_dimensions_are_kept():
    model = template_from_dict({"pageDimensions": [800, 600], "bubbleDimensions": [20, 12]})
    assert model.page_dimensions == (800.0, 600.0)
    assert model.bubble_dimensions == (20.0, 12.0)


def test_label_ranges_are_expanded():
    assert _expand_labels(["q1..4", "roll"]) == ["q1", "q2", "q3", "q4", "roll"]
    assert _expand_labels(["q3..1"]) == ["q3", "q2", "q1"]


def test_bubble_count_is_inferred_from_labels():
    model = template_from_dict(
        {"fieldBlocks": {"MCQ": {"origin": [10, 20], "fieldLabels": ["q1..4"]}}}
    )
    block = model.field_blocks["MCQ"]
    assert block.bubble_count == 4
    assert block.origin == (10.0, 20.0)
    assert block.field_type == "QTYPE_MCQ4"


def test_broken_blocks_are_skipped():
    model = template_from_dict(
        {
            "fieldBlocks": {
                "Bad": "not a block",
                "AlsoBad": {"origin": ["x", 1]},
                "Good": {"origin": [1, 2], "bubbleCount": 2},
            }
        }
    )
    assert list(model.field_blocks) == ["Good"]


def test_save_then_load(tmp_path):
    model = TemplateModel()
    model.add_field_block()
    model.add_field_block()
    model.set_origin("Column2", 321.5, 77)
    model.set_bubble_count("Column1", 7)

    path = tmp_path / "nested" / "template.json"
    save_template(model, path)
    assert json.loads(path.read_text())["fieldBlocks"]["Column2"]["origin"] == [321.5, 77.0]

    loaded = load_template(path)
    assert loaded.serialize() == model.serialize()


def test_object_origin_skips_only_that_block(tmp_path):
    path = tmp_path / "template.json"
    path.write_text(
        json.dumps(
            {
                "fieldBlocks": {
                    "A": {"origin": {"x": 1, "y": 2}},
                    "B": {"origin": [3, 4, 5]},
                    "C": {"origin": [5, 6]},
                }
            }
        )
    )
    model = load_template(path)
    assert list(model.field_blocks) == ["C"]
    assert model.field_blocks["C"].origin == (5.0, 6.0)


def test_non_json_file_raises_invalid_template(tmp_path):
    path = tmp_path / "template.json"
    path.write_text("not json {")
    with pytest.raises(InvalidTemplate):
        load_template(path)
