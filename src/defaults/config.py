"""Tuning defaults, overridable through a user config.json."""

import json
from pathlib import Path

from dotmap import DotMap

CONFIG_DEFAULTS = DotMap(
    {
        "editor": {
            "default_page_dimensions": [707, 484],
            "default_bubble_dimensions": [15, 10],
            "empty_value": "-",
            "min_zoom": 0.5,
            "max_zoom": 3.0,
            "zoom_step": 1.2,
            "grid_size": 20,
            "hit_margin": 10,
            "options_per_row": 4,
            "new_block": {
                "field_type": "QTYPE_MCQ4",
                "origin_x": 100,
                "origin_y": 50,
                "spacing_x": 150,
                "bubbles_gap": 21,
                "labels_gap": 22.7,
                "bubble_count": 20,
            },
            "background_fit_ratio": 0.8,
        },
        "overlay": {
            "scale": 0.8,
            "corner_size": 30,
        },
        "camera": {
            "preferred_width": 1920,
            "preferred_height": 1080,
            "rear_device_index": 1,
            "fallback_device_index": 0,
            "jpeg_quality": 90,
            "secure_hosts": ["localhost", "127.0.0.1", "::1"],
            "origin": "http://localhost",
        },
        "alignment": {
            "interval_seconds": 1.0,
            "good_iou": 0.85,
            "warning_iou": 0.6,
            "min_coverage": 0.6,
        },
    },
    _dynamic=False,
)


def _merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path=None) -> DotMap:
    """Return the defaults, merged with the JSON file at `path` if given."""
    if path is None:
        return DotMap(CONFIG_DEFAULTS.toDict(), _dynamic=False)
    user_config = json.loads(Path(path).read_text(encoding="utf-8"))
    return DotMap(_merge(CONFIG_DEFAULTS.toDict(), user_config), _dynamic=False)
