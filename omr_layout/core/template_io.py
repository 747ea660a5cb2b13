"""Utilities to load and save OMR template JSON files."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable, List, Tuple

from src.defaults.config import CONFIG_DEFAULTS
from src.logger import logger

from .errors import InvalidTemplate
from .template_model import (
    DEFAULT_BUBBLE_DIMENSIONS,
    DEFAULT_EMPTY_VALUE,
    DEFAULT_PAGE_DIMENSIONS,
    FieldBlock,
    TemplateModel,
)


def _expand_labels(labels: Iterable[str]) -> List[str]:
    expanded: List[str] = []
    for label in labels:
        match = re.match(r"([a-zA-Z_]+)(\d+)\.\.(\d+)$", str(label))
        if match:
            prefix, start, end = match.groups()
            start_idx = int(start)
            end_idx = int(end)
            step = 1 if end_idx >= start_idx else -1
            for idx in range(start_idx, end_idx + step, step):
                expanded.append(f"{prefix}{idx}")
        else:
            expanded.append(str(label))
    return expanded


def _parse_pair(raw: Any, name: str) -> Tuple[float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise InvalidTemplate(f"{name} must be a pair of numbers, got {raw!r}")
    try:
        width, height = float(raw[0]), float(raw[1])
    except (TypeError, ValueError) as exc:
        raise InvalidTemplate(f"{name} must be numeric, got {raw!r}") from exc
    if width <= 0 or height <= 0:
        raise InvalidTemplate(f"{name} must be positive, got {raw!r}")
    return (width, height)


def _pair_or_default(raw: Any, name: str, default: Tuple[float, float]) -> Tuple[float, float]:
    try:
        return _parse_pair(raw, name)
    except InvalidTemplate as exc:
        logger.warning(f"{exc.message}; using default {list(default)}")
        return default


def _parse_origin(raw: Any) -> Tuple[float, float]:
    if raw is None:
        return (0.0, 0.0)
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValueError(f"origin must be [x, y], got {raw!r}")
    return (float(raw[0]), float(raw[1]))


def _block_from_dict(block_id: str, data: dict, defaults) -> FieldBlock:
    origin = _parse_origin(data.get("origin"))
    labels = _expand_labels(data.get("fieldLabels", []) or [])
    bubble_count = data.get("bubbleCount")
    if bubble_count is None:
        bubble_count = len(labels) or defaults.bubble_count
    return FieldBlock(
        id=block_id,
        field_type=str(data.get("fieldType", defaults.field_type)),
        origin_x=origin[0],
        origin_y=origin[1],
        bubbles_gap=float(data.get("bubblesGap", defaults.bubbles_gap)),
        labels_gap=float(data.get("labelsGap", defaults.labels_gap)),
        bubble_count=int(bubble_count),
        field_labels=labels,
    )


def template_from_dict(raw: dict, config=None) -> TemplateModel:
    """
    Build a TemplateModel from the template JSON shape.
    Broken page or bubble dimensions fall back to the built-in defaults.
    """
    defaults = (config or CONFIG_DEFAULTS).editor.new_block
    if not isinstance(raw, dict):
        logger.warning(f"Template root must be an object, got {type(raw).__name__}")
        raw = {}
    model = TemplateModel(
        page_dimensions=_pair_or_default(
            raw.get("pageDimensions"), "pageDimensions", DEFAULT_PAGE_DIMENSIONS
        ),
        bubble_dimensions=_pair_or_default(
            raw.get("bubbleDimensions"), "bubbleDimensions", DEFAULT_BUBBLE_DIMENSIONS
        ),
        empty_value=str(raw.get("emptyValue", DEFAULT_EMPTY_VALUE)),
    )
    field_blocks = raw.get("fieldBlocks") or {}
    if not isinstance(field_blocks, dict):
        logger.warning("fieldBlocks must be an object; starting with no blocks")
        field_blocks = {}
    for block_id, block_data in field_blocks.items():
        if not isinstance(block_data, dict):
            logger.warning(f"Skipping field block {block_id}: not an object")
            continue
        try:
            model.field_blocks[block_id] = _block_from_dict(block_id, block_data, defaults)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning(f"Skipping field block {block_id}:", exc)
    return model


def load_template(path: Path, config=None) -> TemplateModel:
    """
    Load a template.json file into a TemplateModel.
    Raises InvalidTemplate when the file is not JSON at all.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidTemplate(f"{path} is not valid JSON: {exc}") from exc
    model = template_from_dict(raw, config)
    logger.info(f"Loaded template {path} with {len(model.field_blocks)} field blocks")
    return model


def save_template(model: TemplateModel, path: Path) -> None:
    """Write a TemplateModel to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(model.serialize(), indent=2), encoding="utf-8")
    logger.info(f"Saved template to {path}")
