"""Pure tree-rewrite helpers, addressed by module id.

Edits from the surrounding application arrive in three shapes: a partial
field update, a full replacement, or adding/removing a child.  Each helper
rebuilds only the path down to the target and returns the new root;
untouched subtrees are shared with the input.  An id that is not in the
tree returns the input root unchanged (the same object), since a pending
edit may race a deletion.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Optional

from .models import INTERNAL_SUFFIX, ModuleNode


def _real_id(module_id: str) -> str:
    if module_id.endswith(INTERNAL_SUFFIX):
        return module_id[: -len(INTERNAL_SUFFIX)]
    return module_id


def find_module(root: ModuleNode, module_id: str) -> Optional[ModuleNode]:
    """Find a module by id.  ``"<id>:internal"`` resolves to its owner."""
    real_id = _real_id(module_id)
    for node in root.walk():
        if node.id == real_id:
            return node
    return None


def find_parent(root: ModuleNode, module_id: str) -> Optional[ModuleNode]:
    """Find the module that contains ``module_id``.

    For a local-logic id (``"<id>:internal"``) the container is the owning
    module itself.  The root has no parent.
    """
    real_id = _real_id(module_id)
    is_internal = real_id != module_id
    for node in root.walk():
        if is_internal and node.id == real_id:
            return node
        if any(child.id == real_id for child in node.children):
            return node
    return None


def _rewrite(
    node: ModuleNode,
    target_id: str,
    fn: Callable[[ModuleNode], Optional[ModuleNode]],
) -> tuple[Optional[ModuleNode], bool]:
    """Apply ``fn`` to the node with ``target_id``; rebuild ancestors only."""
    if node.id == target_id:
        return fn(node), True

    for i, child in enumerate(node.children):
        new_child, changed = _rewrite(child, target_id, fn)
        if changed:
            children = list(node.children)
            if new_child is None:
                del children[i]
            else:
                children[i] = new_child
            return node.model_copy(update={"children": children}), True
    return node, False


def update_node(root: ModuleNode, module_id: str, updates: dict[str, Any]) -> ModuleNode:
    """Merge a partial set of field values into one module.

    Raises:
        ValueError: If ``updates`` names a field ``ModuleNode`` does not have.
    """
    unknown = set(updates) - set(ModuleNode.model_fields)
    if unknown:
        raise ValueError(f"Unknown module field(s): {', '.join(sorted(unknown))}")

    new_root, _ = _rewrite(root, module_id, lambda n: n.model_copy(update=updates))
    return new_root


def replace_node(root: ModuleNode, node: ModuleNode) -> ModuleNode:
    """Replace the module whose id matches ``node.id``."""
    new_root, _ = _rewrite(root, node.id, lambda _: node)
    return new_root


def add_child(root: ModuleNode, parent_id: str, child: ModuleNode) -> ModuleNode:
    """Append ``child`` to the children of ``parent_id``."""
    new_root, _ = _rewrite(
        root, parent_id,
        lambda n: n.model_copy(update={"children": [*n.children, child]}),
    )
    return new_root


def delete_node(root: ModuleNode, module_id: str) -> ModuleNode:
    """Remove a module and its subtree.  The root itself cannot be deleted."""
    if root.id == module_id:
        return root
    new_root, _ = _rewrite(root, module_id, lambda _: None)
    return new_root


def new_module(
    name: str = "BLOCK_NEW",
    registers: float = 1000,
    memory_bits: float = 0,
    logic_gates: float = 5000,
    x: float = 20.0,
    y: float = 20.0,
) -> ModuleNode:
    """Build a fresh childless module with a generated id."""
    return ModuleNode(
        id=f"m_{uuid.uuid4().hex[:8]}",
        name=name,
        registers=registers,
        memory_bits=memory_bits,
        logic_gates=logic_gates,
        x=x,
        y=y,
        aspect_ratio=1.0,
        internal_aspect_ratio=1.0,
        is_ratio_linked=False,
    )
