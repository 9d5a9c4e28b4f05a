"""
Area calculator for Floorplan-MCP.

Sizes every module bottom-up from its resource counts and its children:

  1. Local area — registers, memory bits and gates converted to raw area by
     the technology node, then divided by utilization.
  2. Children area — the sum of every child's final footprint (w × h).
  3. Ideal footprint — total content area shaped to ``aspect_ratio``.
  4. Content envelope — the tightest box around the local-logic block and
     every placed child, plus margin on both sides and margin + header
     vertically.
  5. Final footprint — the ideal footprint, grown per axis to the envelope
     whenever the placed content would not fit.

Nothing is cached.  Every call recomputes the subtree it is given, so the
cost is linear in tree size per call.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from .models import (
    AreaBreakdown,
    DEFAULT_RATIO,
    GLOBAL_HEADER,
    GLOBAL_MARGIN,
    InvalidConfigError,
    ModuleNode,
    TechNodeConfig,
)


DEAD_ZONE_TOLERANCE = 0.001


def check_config(config: TechNodeConfig) -> None:
    """Reject a technology configuration that cannot size anything.

    ``TechNodeConfig`` validates on construction; this guards configs that
    bypassed validation (``model_construct``).
    """
    if config.utilization is None or config.utilization <= 0:
        raise InvalidConfigError(
            f"Tech node '{config.name}': utilization must be > 0, got {config.utilization}"
        )
    for field in ("dff_area", "gate_area", "sram_area_per_bit"):
        value = getattr(config, field)
        if value < 0:
            raise InvalidConfigError(
                f"Tech node '{config.name}': {field} must be >= 0, got {value}"
            )


def local_block_size(node: ModuleNode, local_area: float) -> tuple[float, float]:
    """Return (width, height) of a module's local-logic block."""
    ratio = node.effective_internal_ratio
    h = math.sqrt(local_area / ratio)
    return h * ratio, h


def content_extent(
    internal_x: float,
    internal_y: float,
    local_w: float,
    local_h: float,
    placed: Iterable[tuple[float, float, float, float]],
) -> tuple[float, float]:
    """Tightest (max_x, max_y) covering the local-logic block and every
    placed ``(x, y, w, h)`` child rectangle, in content coordinates."""
    max_x = internal_x + local_w
    max_y = internal_y + local_h
    for x, y, w, h in placed:
        max_x = max(max_x, x + w)
        max_y = max(max_y, y + h)
    return max_x, max_y


def envelope_size(max_x: float, max_y: float) -> tuple[float, float]:
    """Minimum container (width, height) for a content extent."""
    return (
        max_x + GLOBAL_MARGIN * 2,
        max_y + GLOBAL_MARGIN * 2 + GLOBAL_HEADER,
    )


def compute_size(
    node: ModuleNode, config: TechNodeConfig
) -> tuple[float, float, AreaBreakdown]:
    """Compute a module's footprint and its area breakdown.

    Returns:
        ``(width, height, breakdown)`` where width and height equal
        ``breakdown.calculated_width`` and ``breakdown.calculated_height``.

    Raises:
        InvalidConfigError: If the configuration has non-positive
            utilization or a negative area value.
    """
    check_config(config)

    reg_area = node.registers * config.dff_area
    mem_area = node.memory_bits * config.sram_area_per_bit
    logic_area = node.logic_gates * config.gate_area
    raw_local_area = reg_area + mem_area + logic_area
    local_area = raw_local_area / config.utilization

    placed = []
    children_area = 0.0
    for child in node.children:
        cw, ch, _ = compute_size(child, config)
        children_area += cw * ch
        placed.append((child.x, child.y, cw, ch))

    total_content_area = local_area + children_area

    if total_content_area <= 0 and not node.children:
        # Nothing to place: zero-size footprint, no interval.
        return 0.0, 0.0, AreaBreakdown(
            id=node.id,
            name=node.name,
            local_area=0.0,
            children_area=0.0,
            total_area=0.0,
            reg_area=reg_area,
            mem_area=mem_area,
            logic_area=logic_area,
            utilization_overhead=-raw_local_area,
            calculated_width=0.0,
            calculated_height=0.0,
            ideal_width=0.0,
            ideal_height=0.0,
            min_feasible_ratio=0.0,
            max_feasible_ratio=0.0,
            has_feasible_ratio=False,
        )

    ratio = node.aspect_ratio if node.aspect_ratio > 0 else DEFAULT_RATIO
    ideal_h = math.sqrt(total_content_area / ratio)
    ideal_w = ideal_h * ratio

    local_w, local_h = local_block_size(node, local_area)
    max_x, max_y = content_extent(node.internal_x, node.internal_y, local_w, local_h, placed)
    w_min, h_min = envelope_size(max_x, max_y)

    final_w = max(ideal_w, w_min)
    final_h = max(ideal_h, h_min)

    if total_content_area > 0:
        raw_min = (w_min * w_min) / total_content_area
        raw_max = total_content_area / (h_min * h_min)
    else:
        raw_min = raw_max = 0.0

    return final_w, final_h, AreaBreakdown(
        id=node.id,
        name=node.name,
        local_area=local_area,
        children_area=children_area,
        total_area=final_w * final_h,
        reg_area=reg_area,
        mem_area=mem_area,
        logic_area=logic_area,
        utilization_overhead=final_w * final_h * config.utilization - raw_local_area,
        calculated_width=final_w,
        calculated_height=final_h,
        ideal_width=ideal_w,
        ideal_height=ideal_h,
        min_feasible_ratio=min(raw_min, raw_max),
        max_feasible_ratio=max(raw_min, raw_max),
        has_feasible_ratio=total_content_area > 0 and raw_min <= raw_max,
    )


# ---------------------------------------------------------------------------
# Ratio helpers
# ---------------------------------------------------------------------------

def actual_ratio(breakdown: AreaBreakdown) -> float:
    """Width/height of the footprint actually produced."""
    if breakdown.calculated_height <= 0:
        return DEFAULT_RATIO
    return breakdown.calculated_width / breakdown.calculated_height


def in_dead_zone(
    node: ModuleNode,
    breakdown: AreaBreakdown,
    tolerance: float = DEAD_ZONE_TOLERANCE,
) -> bool:
    """True when the requested ratio lies outside the feasible interval,
    so the envelope forces a different shape than the one asked for."""
    return (
        node.aspect_ratio < breakdown.min_feasible_ratio - tolerance
        or node.aspect_ratio > breakdown.max_feasible_ratio + tolerance
    )


def snap_to_feasible(node: ModuleNode, config: TechNodeConfig) -> ModuleNode:
    """Clamp ``aspect_ratio`` into the feasible interval.

    The clamped bound is rounded the way ratios are displayed (two
    decimals on the ``to_display_ratio`` scale).  The internal ratio
    follows when the module is linked.  Modules already inside the
    interval come back unchanged.
    """
    _, _, stats = compute_size(node, config)
    target = node.aspect_ratio
    if target < stats.min_feasible_ratio:
        target = stats.min_feasible_ratio
    elif target > stats.max_feasible_ratio:
        target = stats.max_feasible_ratio
    if target == node.aspect_ratio or target <= 0:
        return node
    target = from_display_ratio(to_display_ratio(target))
    if target == node.aspect_ratio:
        return node
    return with_aspect_ratio(node, target)


def with_aspect_ratio(node: ModuleNode, ratio: float) -> ModuleNode:
    """Set the container ratio, syncing the internal ratio when linked."""
    updates: dict = {"aspect_ratio": ratio}
    if node.is_ratio_linked:
        updates["internal_aspect_ratio"] = ratio
    return node.model_copy(update=updates)


def to_display_ratio(ratio: Optional[float]) -> float:
    """Ratios below 1 display as the negative reciprocal (0.5 -> -2.0)."""
    if not ratio or ratio <= 0:
        return DEFAULT_RATIO
    if ratio >= 1:
        return round(ratio, 2)
    return round(-(1 / ratio), 2)


def from_display_ratio(value: float) -> float:
    """Inverse of ``to_display_ratio``; a display value of 0 means 1.0."""
    if value == 0:
        return DEFAULT_RATIO
    if value > 0:
        return value
    return 1 / abs(value)
