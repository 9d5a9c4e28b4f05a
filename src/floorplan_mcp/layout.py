"""Layout flattener — turns a sized module tree into absolute rectangles.

A child at local ``(x, y)`` sits at its parent's absolute origin plus
``(GLOBAL_MARGIN + x, GLOBAL_HEADER + y)``; the local-logic block is
offset the same way by ``(internal_x, internal_y)``.  The root is placed
at ``(0, 0)``.

Output order is container, local logic, then children, depth-first.  Later
rects draw on top of earlier ones.
"""

from __future__ import annotations

from .area import compute_size, local_block_size
from .models import (
    GLOBAL_HEADER,
    GLOBAL_MARGIN,
    INTERNAL_SUFFIX,
    LOCAL_LOGIC_NAME,
    LayoutRect,
    ModuleNode,
    ROOT_PARENT_ID,
    TechNodeConfig,
)


def flatten(
    root: ModuleNode, config: TechNodeConfig
) -> tuple[list[LayoutRect], float, float]:
    """Flatten a module tree into absolute-coordinate rectangles.

    Returns:
        ``(rects, root_width, root_height)``.
    """
    rects: list[LayoutRect] = []

    def place(node: ModuleNode, abs_x: float, abs_y: float, parent_id: str) -> None:
        w, h, stats = compute_size(node, config)
        rects.append(LayoutRect(
            id=node.id, parent_id=parent_id, name=node.name,
            x=abs_x, y=abs_y, w=w, h=h,
            is_internal=False, node=node,
        ))

        local_w, local_h = local_block_size(node, stats.local_area)
        rects.append(LayoutRect(
            id=internal_id(node.id), parent_id=node.id, name=LOCAL_LOGIC_NAME,
            x=abs_x + GLOBAL_MARGIN + node.internal_x,
            y=abs_y + GLOBAL_HEADER + node.internal_y,
            w=local_w, h=local_h,
            is_internal=True, node=node,
        ))

        for child in node.children:
            place(
                child,
                abs_x + GLOBAL_MARGIN + child.x,
                abs_y + GLOBAL_HEADER + child.y,
                node.id,
            )

    root_w, root_h, _ = compute_size(root, config)
    place(root, 0.0, 0.0, ROOT_PARENT_ID)
    return rects, root_w, root_h


def content_origin(rects: list[LayoutRect], module_id: str) -> tuple[float, float]:
    """Absolute origin of a module's content frame, from a flattened layout.

    Overlap markers are reported in this frame.

    Raises:
        KeyError: If no container rect carries ``module_id``.
    """
    for rect in rects:
        if rect.id == module_id and not rect.is_internal:
            return rect.x + GLOBAL_MARGIN, rect.y + GLOBAL_HEADER
    raise KeyError(module_id)


def internal_id(module_id: str) -> str:
    return module_id + INTERNAL_SUFFIX


def split_virtual_id(rect_id: str) -> tuple[str, bool]:
    """Split ``"cpu:internal"`` into ``("cpu", True)``; plain ids pass through."""
    if rect_id.endswith(INTERNAL_SUFFIX):
        return rect_id[: -len(INTERNAL_SUFFIX)], True
    return rect_id, False
