"""Shared fixtures for the floorplan test modules."""

import pytest

from floorplan_mcp.models import ModuleNode, get_tech_node


@pytest.fixture
def tech():
    """28nm HPC+: dff 4.5, gate 0.5, sram 0.12 per bit, 65% utilization."""
    return get_tech_node("28nm")


def leaf(id, x=0.0, y=0.0, registers=10000, **kw):
    """A linked square leaf; with 28nm and 10k registers its local logic
    is sqrt(45000 / 0.65) ~= 263.117 on a side."""
    kw.setdefault("aspect_ratio", 1.0)
    kw.setdefault("internal_aspect_ratio", kw["aspect_ratio"])
    kw.setdefault("is_ratio_linked", True)
    return ModuleNode(id=id, name=id.upper(), registers=registers, x=x, y=y, **kw)


@pytest.fixture
def make_leaf():
    return leaf
