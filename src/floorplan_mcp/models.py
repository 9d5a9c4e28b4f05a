"""
Data models for Floorplan-MCP — the floorplan geometry model.

A floorplan is a tree of physical **modules**.  Every module owns a
rectangular container (its footprint) that holds two kinds of content:

    Module
    ├── local logic   — the module's own registers, memory and gates,
    │                   drawn as one synthetic block at (internal_x, internal_y)
    └── children      — nested modules at (x, y) in the content frame

Each container reserves a border of ``GLOBAL_MARGIN`` on every side and a
title strip of ``GLOBAL_HEADER`` at the top.  These constants, together
with ``INTER_MODULE_GAP`` used by compaction, are part of the document
format and are not tunable per call.

Resource counts are turned into area by a **technology node**
(``TechNodeConfig``): area per register, per gate, per SRAM bit, and the
placement utilization of the process.

Models are frozen.  Every operation in this package reads a tree and
returns a new one; edits are expressed with ``model_copy(update=...)``.
Field names are snake_case in Python, but documents exported by the
browser planner (camelCase keys such as ``memoryBits`` and
``isRatioLinked``) validate directly through the alias generator.
"""

from __future__ import annotations
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Format constants
# ---------------------------------------------------------------------------

GLOBAL_MARGIN = 24       # border padding on every side of a container
GLOBAL_HEADER = 36       # title strip at the top of a container
INTER_MODULE_GAP = 16    # spacing left between blocks by compaction

INTERNAL_ID = "internal"
INTERNAL_SUFFIX = ":" + INTERNAL_ID
LOCAL_LOGIC_NAME = "[Local Logic]"
ROOT_PARENT_ID = "root_parent"

DEFAULT_RATIO = 1.0


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidConfigError(ValueError):
    """Raised when a technology configuration cannot be used for sizing."""


class OverlapError(Exception):
    """Raised when optimization is requested on a module whose direct
    content already overlaps.

    This is an expected state while a layout is being edited by hand, not
    a fatal error.  ``markers`` lists every colliding pair so the caller
    can display them; no tree rewrite has been performed.
    """

    def __init__(self, module_id: str, markers: list[OverlapMarker]) -> None:
        self.module_id = module_id
        self.markers = markers
        super().__init__(
            f"Module '{module_id}' has {len(markers)} overlapping block pair(s); "
            f"resolve them before optimizing"
        )


# ---------------------------------------------------------------------------
# Technology
# ---------------------------------------------------------------------------

class TechNodeConfig(BaseModel):
    """Process parameters used to turn resource counts into area.

    Attributes:
        name:             Display name of the process.
        dff_area:         Area of one register (flip-flop).
        gate_area:        Area of one logic gate.
        sram_area_per_bit: Area of one SRAM bit.
        utilization:      Fraction of the footprint that holds raw logic,
                          memory and registers.  Must lie in (0, 1].
    """
    model_config = _MODEL_CONFIG

    name: str = "custom"
    dff_area: float = Field(ge=0)
    gate_area: float = Field(ge=0)
    sram_area_per_bit: float = Field(ge=0)
    utilization: float = Field(gt=0, le=1)


TECH_NODES: dict[str, TechNodeConfig] = {
    "28nm": TechNodeConfig(
        name="28nm HPC+", dff_area=4.5, gate_area=0.5,
        sram_area_per_bit=0.12, utilization=0.65,
    ),
    "7nm": TechNodeConfig(
        name="7nm FinFET", dff_area=0.48, gate_area=0.06,
        sram_area_per_bit=0.027, utilization=0.70,
    ),
    "5nm": TechNodeConfig(
        name="5nm EUV", dff_area=0.32, gate_area=0.04,
        sram_area_per_bit=0.021, utilization=0.75,
    ),
}

DEFAULT_TECH_NODE = "7nm"


def get_tech_node(name: str) -> TechNodeConfig:
    """Get a technology preset by key ("28nm", "7nm", "5nm").

    Raises:
        ValueError: If the key is not a known preset.
    """
    if name not in TECH_NODES:
        valid = ", ".join(TECH_NODES.keys())
        raise ValueError(f"Unknown tech node '{name}'. Valid tech nodes: {valid}")
    return TECH_NODES[name]


# ---------------------------------------------------------------------------
# Module tree
# ---------------------------------------------------------------------------

class ModuleNode(BaseModel):
    """A module — one node of the floorplan tree.

    Geometry
    --------
    ``x``/``y`` place the module inside its parent's content frame (the
    area inside the parent's margin and header).  The root's ``x``/``y``
    are ignored.  ``internal_x``/``internal_y`` place this module's own
    local-logic block inside its own content frame.

    Ratios
    ------
    ``aspect_ratio`` is the target width/height of the container.
    ``internal_aspect_ratio`` shapes the local-logic block, but only when
    ``is_ratio_linked`` is false: a linked module always uses
    ``aspect_ratio`` for both, and the stored internal value may be stale.
    Read ``effective_internal_ratio`` rather than either field directly.

    ``children`` order only affects drawing order.
    """
    model_config = _MODEL_CONFIG

    id: str
    name: str = ""
    registers: float = Field(default=0, ge=0)
    memory_bits: float = Field(default=0, ge=0)
    logic_gates: float = Field(default=0, ge=0)
    x: float = 0.0
    y: float = 0.0
    internal_x: float = 0.0
    internal_y: float = 0.0
    aspect_ratio: float = DEFAULT_RATIO
    internal_aspect_ratio: float = DEFAULT_RATIO
    is_ratio_linked: bool = False
    children: list[ModuleNode] = Field(default_factory=list)
    color: Optional[str] = None

    @property
    def effective_internal_ratio(self) -> float:
        """Width/height ratio actually used for the local-logic block."""
        if self.is_ratio_linked:
            return _positive_or_default(self.aspect_ratio)
        return _positive_or_default(self.internal_aspect_ratio)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def get_label(self) -> str:
        """Return ``name`` if set, otherwise the id."""
        return self.name if self.name else self.id

    def walk(self) -> Iterator[ModuleNode]:
        """Yield this module and every descendant, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


def _positive_or_default(value: float) -> float:
    return value if value and value > 0 else DEFAULT_RATIO


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

class AreaBreakdown(BaseModel):
    """Sizing result for one module.  Recomputed on every request.

    ``reg_area``, ``mem_area`` and ``logic_area`` are raw (pre-utilization)
    areas.  ``local_area`` is their sum divided by utilization.
    ``total_area`` is the area of the final footprint, which may exceed
    ``local_area + children_area`` when placement forces it.

    ``min_feasible_ratio``/``max_feasible_ratio`` bound the aspect ratios
    for which the ideal footprint already clears the content envelope.  The
    raw bounds are sorted before being reported; ``has_feasible_ratio`` is
    false when they had to be swapped, meaning no single ratio satisfies
    both the width and the height constraint.
    """
    model_config = _MODEL_CONFIG

    id: str
    name: str
    local_area: float
    children_area: float
    total_area: float
    reg_area: float
    mem_area: float
    logic_area: float
    utilization_overhead: float
    calculated_width: float
    calculated_height: float
    ideal_width: float
    ideal_height: float
    min_feasible_ratio: float
    max_feasible_ratio: float
    has_feasible_ratio: bool = True


class LayoutRect(BaseModel):
    """A flattened rectangle in absolute floorplan coordinates.

    Each module produces a container rect (``is_internal=False``, id equal
    to the module id) and a local-logic rect (``is_internal=True``, id
    ``"<module id>:internal"``).  ``node`` references the module the rect
    was produced from.
    """
    model_config = _MODEL_CONFIG

    id: str
    parent_id: str
    name: str
    x: float
    y: float
    w: float
    h: float
    is_internal: bool
    node: ModuleNode


class OverlapMarker(BaseModel):
    """The intersection of two colliding blocks inside one module.

    Coordinates are in that module's content frame.  ``ids`` names the two
    blocks; the local-logic block is named ``"internal"``.
    """
    model_config = _MODEL_CONFIG

    x: float
    y: float
    w: float
    h: float
    ids: tuple[str, str]


# ---------------------------------------------------------------------------
# Floorplan (the document)
# ---------------------------------------------------------------------------

class Floorplan(BaseModel):
    """A floorplan document: a module tree plus the process it is sized in.

    ``tech`` holds the full technology parameters so that a document with
    a custom process round-trips unchanged.
    """
    model_config = _MODEL_CONFIG

    title: str = "Untitled Floorplan"
    theme: str = "dark"  # "dark" or "light"
    tech: TechNodeConfig = Field(default_factory=lambda: TECH_NODES[DEFAULT_TECH_NODE])
    root: ModuleNode

    def get_module(self, module_id: str) -> Optional[ModuleNode]:
        """Look up a module anywhere in the tree by id."""
        for node in self.root.walk():
            if node.id == module_id:
                return node
        return None

    def all_modules(self) -> list[ModuleNode]:
        """Return a flat list of every module in the tree."""
        return list(self.root.walk())
