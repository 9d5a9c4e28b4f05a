"""Floorplan-MCP server — MCP tools for sizing and compacting chip floorplans."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, ImageContent, Tool

from .area import actual_ratio, compute_size, in_dead_zone, snap_to_feasible
from .layout import flatten
from .models import Floorplan, OverlapError, TECH_NODES
from .organize import compact, optimize
from .overlap import detect_overlaps
from .parser import floorplan_to_yaml, module_to_dict, parse_yaml
from .renderer import FloorplanRenderer
from .report import generate_html_report, generate_text_report
from .tree import find_module, replace_node


# --- Constants ---
OUTPUT_DIR = Path(os.environ.get("FLOORPLAN_OUTPUT_DIR", Path.home() / ".floorplan" / "output"))
LOG_LEVEL = os.environ.get("FLOORPLAN_LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)

server = Server("floorplan-mcp")


def _ensure_output_dir():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


_FLOORPLAN_PROP = {
    "type": "string",
    "description": (
        "Floorplan document as YAML or JSON. Either a bare module tree "
        "(the planner's JSON export) or a full document:\n"
        "floorplan:\n"
        "  title: SoC\n"
        "  tech: 7nm            # 28nm | 7nm | 5nm, or an inline mapping\n"
        "  root:\n"
        "    id: root\n"
        "    name: SoC_Top\n"
        "    registers: 10000\n"
        "    memoryBits: 1048576\n"
        "    logicGates: 50000\n"
        "    children:\n"
        "      - {id: cpu, name: CPU, registers: 500000, x: 40, y: 40}\n"
    ),
}

_MODULE_ID_PROP = {
    "type": "string",
    "description": "Id of the module to operate on. Defaults to the root module.",
}


def _schema(*, module_id: bool = False, **extra: dict) -> dict:
    props = {"floorplan": _FLOORPLAN_PROP}
    if module_id:
        props["module_id"] = _MODULE_ID_PROP
    props.update(extra)
    return {"type": "object", "properties": props, "required": ["floorplan"]}


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="compute_area",
            description=(
                "Size a module from its resource counts and children. Returns the "
                "area breakdown, footprint, ideal footprint and feasible aspect-ratio "
                "interval."
            ),
            inputSchema=_schema(module_id=True),
        ),
        Tool(
            name="layout_floorplan",
            description=(
                "Flatten the module tree into absolute rectangles (one container and "
                "one local-logic block per module) plus the root footprint size."
            ),
            inputSchema=_schema(),
        ),
        Tool(
            name="check_overlaps",
            description=(
                "Report overlapping blocks among a module's local logic and its "
                "direct children."
            ),
            inputSchema=_schema(module_id=True),
        ),
        Tool(
            name="compact_module",
            description=(
                "Tidy up a module: slide its local logic and direct children up and "
                "left to remove overlaps without resizing anything, then re-derive "
                "its aspect ratio. Returns the updated floorplan YAML."
            ),
            inputSchema=_schema(module_id=True),
        ),
        Tool(
            name="optimize_module",
            description=(
                "Compact a module after checking it has no existing overlaps. With "
                "deep=true every descendant is compacted first. Refused with the "
                "overlap list when the module's content already collides."
            ),
            inputSchema=_schema(
                module_id=True,
                deep={
                    "type": "boolean",
                    "description": "Compact the whole subtree bottom-up. Default: false.",
                    "default": False,
                },
            ),
        ),
        Tool(
            name="snap_ratio",
            description=(
                "Clamp a module's aspect ratio into its feasible interval so the "
                "footprint honors the requested shape."
            ),
            inputSchema=_schema(module_id=True),
        ),
        Tool(
            name="render_floorplan",
            description=(
                "Render the floorplan to PNG, optionally highlighting overlaps in one "
                "module. Returns the path to the rendered file."
            ),
            inputSchema=_schema(
                module_id=True,
                show_overlaps={
                    "type": "boolean",
                    "description": "Draw overlap markers for module_id (or the root).",
                    "default": False,
                },
                max_size={
                    "type": "integer",
                    "description": "Longest image side in pixels (default 1600).",
                    "default": 1600,
                },
                filename={
                    "type": "string",
                    "description": "Output filename (without extension). Default: auto-generated.",
                },
            ),
        ),
        Tool(
            name="area_report",
            description=(
                "Per-module area report. Returns plain text and writes an HTML report "
                "file."
            ),
            inputSchema=_schema(),
        ),
        Tool(
            name="list_tech_nodes",
            description="List the built-in technology node presets.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent | ImageContent]:
    handler = _HANDLERS.get(name)
    if handler is None:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    if name == "list_tech_nodes":
        return handler(None, arguments)

    try:
        floorplan = parse_yaml(arguments["floorplan"])
    except Exception as e:
        logger.error("Parse error: %s", e)
        return [TextContent(type="text", text=f"Failed to parse floorplan: {e}")]

    module_id = arguments.get("module_id") or floorplan.root.id
    if find_module(floorplan.root, module_id) is None:
        return [TextContent(type="text", text=f"Module not found: {module_id}")]

    logger.info("%s: module '%s'", name, module_id)
    return handler(floorplan, arguments)


def _json(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _target(floorplan: Floorplan, args: dict):
    return find_module(floorplan.root, args.get("module_id") or floorplan.root.id)


def _with_root(floorplan: Floorplan, node) -> Floorplan:
    return floorplan.model_copy(update={"root": replace_node(floorplan.root, node)})


def _compute_area(floorplan: Floorplan, args: dict) -> list[TextContent]:
    node = _target(floorplan, args)
    _, _, stats = compute_size(node, floorplan.tech)
    return _json({
        "status": "success",
        "tech": floorplan.tech.name,
        "breakdown": stats.model_dump(),
        "actual_ratio": actual_ratio(stats),
        "dead_zone": bool(node.children) and in_dead_zone(node, stats),
    })


def _layout_floorplan(floorplan: Floorplan, args: dict) -> list[TextContent]:
    rects, root_w, root_h = flatten(floorplan.root, floorplan.tech)
    return _json({
        "status": "success",
        "root_width": root_w,
        "root_height": root_h,
        "rects": [r.model_dump(exclude={"node"}) for r in rects],
    })


def _check_overlaps(floorplan: Floorplan, args: dict) -> list[TextContent]:
    node = _target(floorplan, args)
    markers = detect_overlaps(node, floorplan.tech)
    return _json({
        "status": "success",
        "module_id": node.id,
        "overlaps": [m.model_dump() for m in markers],
    })


def _compact_module(floorplan: Floorplan, args: dict) -> list[TextContent]:
    node = compact(_target(floorplan, args), floorplan.tech)
    updated = _with_root(floorplan, node)
    return _json({
        "status": "success",
        "module_id": node.id,
        "aspect_ratio": node.aspect_ratio,
        "floorplan": floorplan_to_yaml(updated),
    })


def _optimize_module(floorplan: Floorplan, args: dict) -> list[TextContent]:
    deep = bool(args.get("deep", False))
    try:
        node = optimize(_target(floorplan, args), floorplan.tech, deep=deep)
    except OverlapError as e:
        return _json({
            "status": "refused",
            "reason": str(e),
            "module_id": e.module_id,
            "overlaps": [m.model_dump() for m in e.markers],
        })

    updated = _with_root(floorplan, node)
    return _json({
        "status": "success",
        "module_id": node.id,
        "deep": deep,
        "aspect_ratio": node.aspect_ratio,
        "floorplan": floorplan_to_yaml(updated),
    })


def _snap_ratio(floorplan: Floorplan, args: dict) -> list[TextContent]:
    node = snap_to_feasible(_target(floorplan, args), floorplan.tech)
    updated = _with_root(floorplan, node)
    return _json({
        "status": "success",
        "module_id": node.id,
        "aspect_ratio": node.aspect_ratio,
        "module": module_to_dict(node),
        "floorplan": floorplan_to_yaml(updated),
    })


def _render_floorplan(floorplan: Floorplan, args: dict) -> list[TextContent]:
    _ensure_output_dir()

    node = _target(floorplan, args)
    filename = args.get("filename", str(uuid.uuid4())[:8])
    output_path = str(OUTPUT_DIR / f"{filename}.png")

    overlaps = None
    if args.get("show_overlaps", False):
        overlaps = {node.id: detect_overlaps(node, floorplan.tech)}

    renderer = FloorplanRenderer(max_size=int(args.get("max_size", 1600)))
    try:
        renderer.render(floorplan, output_path=output_path, overlaps=overlaps)
    except Exception as e:
        logger.error("Render error: %s", e)
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    return _json({
        "status": "success",
        "path": output_path,
        "title": floorplan.title,
        "modules": len(floorplan.all_modules()),
        "overlaps": sum(len(m) for m in overlaps.values()) if overlaps else None,
    })


def _area_report(floorplan: Floorplan, args: dict) -> list[TextContent]:
    _ensure_output_dir()

    stem = floorplan.root.get_label().lower().replace(" ", "-")[:30]
    html_path = OUTPUT_DIR / f"report_{stem}.html"
    html_path.write_text(generate_html_report(floorplan))

    return [
        TextContent(type="text", text=generate_text_report(floorplan)),
        TextContent(type="text", text=json.dumps({"status": "success", "html_path": str(html_path)})),
    ]


def _list_tech_nodes(_floorplan, args: dict) -> list[TextContent]:
    return _json({"tech_nodes": {key: cfg.model_dump() for key, cfg in TECH_NODES.items()}})


_HANDLERS = {
    "compute_area": _compute_area,
    "layout_floorplan": _layout_floorplan,
    "check_overlaps": _check_overlaps,
    "compact_module": _compact_module,
    "optimize_module": _optimize_module,
    "snap_ratio": _snap_ratio,
    "render_floorplan": _render_floorplan,
    "area_report": _area_report,
    "list_tech_nodes": _list_tech_nodes,
}


def main():
    """Entry point for the MCP server."""
    import asyncio

    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
