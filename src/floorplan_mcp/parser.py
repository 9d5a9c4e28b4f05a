"""YAML/JSON document parser for Floorplan-MCP.

Supports two formats:
1. Full floorplan document (``floorplan:`` with title, tech, theme, root)
2. Bare module tree (the planner's JSON export)

JSON is a subset of YAML, so both load through ``yaml.safe_load``.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import (
    DEFAULT_RATIO,
    DEFAULT_TECH_NODE,
    Floorplan,
    ModuleNode,
    TechNodeConfig,
    get_tech_node,
)


def parse_yaml(yaml_str: str) -> Floorplan:
    """Parse a YAML (or JSON) string into a Floorplan model."""
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty YAML input")
    if not isinstance(data, dict):
        raise ValueError("Floorplan document must be a mapping")

    # Check if it's a full floorplan document
    if "floorplan" in data:
        return _parse_full_format(data["floorplan"])

    # Otherwise, treat as a bare module tree
    return Floorplan(root=ingest_module(data))


def parse_file(path: str) -> Floorplan:
    """Parse a YAML or JSON file into a Floorplan model."""
    content = Path(path).read_text()
    return parse_yaml(content)


def _parse_full_format(data: dict) -> Floorplan:
    """Parse the full floorplan document format."""
    if "root" not in data:
        raise ValueError("Floorplan document has no 'root' module")

    return Floorplan(
        title=data.get("title", "Untitled Floorplan"),
        theme=data.get("theme", "dark"),
        tech=_parse_tech(data.get("tech")),
        root=ingest_module(data["root"]),
    )


def _parse_tech(value: Optional[Any]) -> TechNodeConfig:
    """A preset key ("7nm") or an inline mapping of process parameters."""
    if value is None:
        return get_tech_node(DEFAULT_TECH_NODE)
    if isinstance(value, str):
        return get_tech_node(value)
    return TechNodeConfig.model_validate(value)


def _first(data: dict, *keys: str) -> Any:
    """Value of the first key present (snake_case or camelCase spelling)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def ingest_module(data: dict) -> ModuleNode:
    """Build a module tree from external data, applying ingest defaults.

    Defaults are applied once, here:
      - missing positions become 0
      - a missing or non-positive ``aspect_ratio`` becomes 1.0
      - a missing internal ratio falls back to ``aspect_ratio``
      - a missing ``is_ratio_linked`` is true for leaves and false for
        modules that have children
    """
    children = [ingest_module(c) for c in data.get("children") or []]

    aspect_ratio = _first(data, "aspect_ratio", "aspectRatio")
    if not aspect_ratio or aspect_ratio <= 0:
        aspect_ratio = DEFAULT_RATIO

    internal_ratio = _first(data, "internal_aspect_ratio", "internalAspectRatio")
    if not internal_ratio or internal_ratio <= 0:
        internal_ratio = aspect_ratio

    linked = _first(data, "is_ratio_linked", "isRatioLinked")
    if linked is None:
        linked = not children

    return ModuleNode(
        id=str(data["id"]),
        name=data.get("name", ""),
        registers=float(data.get("registers") or 0),
        memory_bits=float(_first(data, "memory_bits", "memoryBits") or 0),
        logic_gates=float(_first(data, "logic_gates", "logicGates") or 0),
        x=float(data.get("x") or 0),
        y=float(data.get("y") or 0),
        internal_x=float(_first(data, "internal_x", "internalX") or 0),
        internal_y=float(_first(data, "internal_y", "internalY") or 0),
        aspect_ratio=float(aspect_ratio),
        internal_aspect_ratio=float(internal_ratio),
        is_ratio_linked=bool(linked),
        children=children,
        color=data.get("color"),
    )


def module_to_dict(node: ModuleNode) -> dict:
    """Serialize a module tree with camelCase keys, as the planner exports them."""
    return node.model_dump(by_alias=True, exclude_none=True)


def floorplan_to_yaml(floorplan: Floorplan) -> str:
    """Serialize a Floorplan model back to YAML."""
    data = {
        "floorplan": {
            "title": floorplan.title,
            "theme": floorplan.theme,
            "tech": floorplan.tech.model_dump(),
            "root": module_to_dict(floorplan.root),
        }
    }
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
