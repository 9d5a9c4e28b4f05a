"""Overlap detection within a single module.

Only one level is inspected at a time: the module's local-logic block and
its direct children.  Grandchildren live inside their own parent's
container and are checked when that parent is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .area import compute_size, local_block_size
from .models import INTERNAL_ID, LOCAL_LOGIC_NAME, ModuleNode, OverlapMarker, TechNodeConfig


@dataclass
class Block:
    """A rectangle in a module's content frame (local logic or a child)."""
    id: str
    name: str
    x: float
    y: float
    w: float
    h: float
    node: Optional[ModuleNode] = None  # None for the local-logic block

    @property
    def is_local(self) -> bool:
        return self.node is None


def module_blocks(node: ModuleNode, config: TechNodeConfig) -> list[Block]:
    """Build the local-logic block followed by one block per direct child."""
    _, _, stats = compute_size(node, config)
    local_w, local_h = local_block_size(node, stats.local_area)

    blocks = [Block(
        id=INTERNAL_ID, name=LOCAL_LOGIC_NAME,
        x=node.internal_x, y=node.internal_y, w=local_w, h=local_h,
    )]
    for child in node.children:
        cw, ch, _ = compute_size(child, config)
        blocks.append(Block(
            id=child.id, name=child.name,
            x=child.x, y=child.y, w=cw, h=ch,
            node=child,
        ))
    return blocks


def span_overlap(a_start: float, a_len: float, b_start: float, b_len: float) -> float:
    """Length shared by two 1-D spans (negative when they are apart)."""
    return min(a_start + a_len, b_start + b_len) - max(a_start, b_start)


def find_overlaps(blocks: list[Block]) -> list[OverlapMarker]:
    """Report every pair of blocks whose intersection has positive area.

    Blocks that merely touch along an edge do not overlap.
    """
    markers: list[OverlapMarker] = []
    for i, a in enumerate(blocks):
        for b in blocks[i + 1:]:
            x_overlap = max(0.0, span_overlap(a.x, a.w, b.x, b.w))
            y_overlap = max(0.0, span_overlap(a.y, a.h, b.y, b.h))
            if x_overlap > 0 and y_overlap > 0:
                markers.append(OverlapMarker(
                    x=max(a.x, b.x),
                    y=max(a.y, b.y),
                    w=x_overlap,
                    h=y_overlap,
                    ids=(a.id, b.id),
                ))
    return markers


def detect_overlaps(node: ModuleNode, config: TechNodeConfig) -> list[OverlapMarker]:
    """Overlaps among a module's local-logic block and direct children."""
    return find_overlaps(module_blocks(node, config))
