"""
Shape-preserving organize algorithm for Floorplan-MCP.

Compaction moves the blocks inside one module (its local-logic block and
its direct children) so that none overlap, without touching any block's
width or height.  It runs as two independent single-axis sweeps:

  1. Vertical pass — blocks sorted by (y, x).  Each block drops to just
     below the lowest earlier block it shares horizontal span with, or to
     y = 0 when nothing is above it.
  2. Horizontal pass — blocks re-sorted by (x, y).  Each block slides to
     just right of the rightmost earlier block it shares vertical span
     with, or to x = 0.

The pair of sweeps repeats until a round moves nothing, since a block
slid left can stop supporting the block below it.
``INTER_MODULE_GAP`` is left between supporting neighbours.  After the
sweeps the module's target ratio is re-derived from the tightened
content box, rounded to two decimals.

The sweeps are pairwise and deterministic.  They do not search for the
minimum-area arrangement.

The **recursive optimizer** applies compaction post-order so that each
parent is compacted around children that are already compact.
"""

from __future__ import annotations

import logging

from .area import content_extent, envelope_size
from .models import INTER_MODULE_GAP, ModuleNode, OverlapError, TechNodeConfig
from .overlap import Block, detect_overlaps, module_blocks, span_overlap
from .tree import find_module, replace_node

logger = logging.getLogger(__name__)

MAX_SWEEP_ROUNDS = 16   # vertical+horizontal rounds per compaction
MAX_RELINK_PASSES = 8   # re-sweeps allowed while a linked ratio settles


# ---------------------------------------------------------------------------
# Sweeps
# ---------------------------------------------------------------------------

def _sweep_vertical(blocks: list[Block], gap: float) -> None:
    blocks.sort(key=lambda b: (b.y, b.x))
    for i, block in enumerate(blocks):
        best_y = 0.0
        for other in blocks[:i]:
            if span_overlap(block.x, block.w, other.x, other.w) > 0:
                best_y = max(best_y, other.y + other.h + gap)
        block.y = best_y


def _sweep_horizontal(blocks: list[Block], gap: float) -> None:
    blocks.sort(key=lambda b: (b.x, b.y))
    for i, block in enumerate(blocks):
        best_x = 0.0
        for other in blocks[:i]:
            if span_overlap(block.y, block.h, other.y, other.h) > 0:
                best_x = max(best_x, other.x + other.w + gap)
        block.x = best_x


def compact_blocks(blocks: list[Block], gap: float = INTER_MODULE_GAP) -> list[Block]:
    """Run both sweeps over ``blocks`` in place and return them.

    A horizontal pass can slide a block out from over another one, so
    the rounds repeat until a round moves nothing.  Each round leaves the
    blocks overlap-free.  The list comes back in horizontal-pass order.
    """
    for _ in range(MAX_SWEEP_ROUNDS):
        # keyed by object, since the sweeps re-sort the list
        before = {id(b): (b.x, b.y) for b in blocks}
        _sweep_vertical(blocks, gap)
        _sweep_horizontal(blocks, gap)
        if all(before[id(b)] == (b.x, b.y) for b in blocks):
            return blocks
    logger.debug("Sweeps still moving after %d rounds", MAX_SWEEP_ROUNDS)
    return blocks


# ---------------------------------------------------------------------------
# Compactor
# ---------------------------------------------------------------------------

def compact(node: ModuleNode, config: TechNodeConfig) -> ModuleNode:
    """Remove overlaps among a module's local logic and direct children.

    Only positions change: ``internal_x``/``internal_y`` of the module and
    ``x``/``y`` of each direct child.  The module's ``aspect_ratio`` is then
    set to the ratio of the compacted envelope (and ``internal_aspect_ratio``
    with it when linked).  A childless module only has its local logic
    reset to the origin.
    """
    if not node.children:
        return node.model_copy(update={"internal_x": 0.0, "internal_y": 0.0})

    result = _compact_once(node, config)

    # A linked module's local logic takes the new ratio too, which reshapes
    # it; sweep again until the ratio the blocks were sized with holds.
    passes = 1
    while (
        node.is_ratio_linked
        and result.aspect_ratio != node.aspect_ratio
        and passes < MAX_RELINK_PASSES
    ):
        node, result = result, _compact_once(result, config)
        passes += 1

    if node.is_ratio_linked and result.aspect_ratio != node.aspect_ratio:
        # Positions were swept with the local logic shaped by the previous
        # ratio; keep that ratio so shape and positions agree.
        logger.debug(
            "Linked ratio of '%s' did not settle after %d passes, keeping %.2f",
            node.id, passes, node.aspect_ratio,
        )
        result = result.model_copy(update={
            "aspect_ratio": node.aspect_ratio,
            "internal_aspect_ratio": node.aspect_ratio,
        })
    return result


def _compact_once(node: ModuleNode, config: TechNodeConfig) -> ModuleNode:
    blocks = compact_blocks(module_blocks(node, config))

    local = next(b for b in blocks if b.is_local)
    moved = {b.id: b for b in blocks if not b.is_local}
    children = [
        child.model_copy(update={"x": moved[child.id].x, "y": moved[child.id].y})
        for child in node.children
    ]

    max_x, max_y = content_extent(
        local.x, local.y, local.w, local.h,
        ((b.x, b.y, b.w, b.h) for b in moved.values()),
    )
    final_w, final_h = envelope_size(max_x, max_y)
    ratio = round(final_w / final_h, 2)

    logger.debug(
        "Compacted '%s': %d blocks, envelope %.1f x %.1f, ratio %.2f -> %.2f",
        node.id, len(blocks), final_w, final_h, node.aspect_ratio, ratio,
    )

    return node.model_copy(update={
        "internal_x": local.x,
        "internal_y": local.y,
        "children": children,
        "aspect_ratio": ratio,
        "internal_aspect_ratio": ratio if node.is_ratio_linked else node.internal_aspect_ratio,
    })


# ---------------------------------------------------------------------------
# Recursive optimizer
# ---------------------------------------------------------------------------

def optimize_recursive(node: ModuleNode, config: TechNodeConfig) -> ModuleNode:
    """Compact every module in the subtree, children before parents."""
    children = [optimize_recursive(child, config) for child in node.children]
    return compact(node.model_copy(update={"children": children}), config)


def optimize(node: ModuleNode, config: TechNodeConfig, deep: bool = False) -> ModuleNode:
    """Guarded optimization entry point.

    Compaction assumes the stored positions do not already overlap, so the
    module is checked first.  Only the top-level module is checked; the
    recursive pass works on subtrees it has just compacted.

    Raises:
        OverlapError: If the module's direct content overlaps.  The
            markers are attached and nothing is rewritten.
    """
    markers = detect_overlaps(node, config)
    if markers:
        logger.warning(
            "Refusing to optimize '%s': %d overlapping pair(s)", node.id, len(markers)
        )
        raise OverlapError(node.id, markers)

    if deep:
        return optimize_recursive(node, config)
    return compact(node, config)


def optimize_in_tree(
    root: ModuleNode,
    module_id: str,
    config: TechNodeConfig,
    deep: bool = False,
) -> ModuleNode:
    """Optimize one module by id and splice the result back into ``root``.

    An unknown id leaves the tree unchanged.

    Raises:
        OverlapError: As for ``optimize``.
    """
    target = find_module(root, module_id)
    if target is None:
        logger.debug("optimize_in_tree: unknown module '%s'", module_id)
        return root
    return replace_node(root, optimize(target, config, deep=deep))
