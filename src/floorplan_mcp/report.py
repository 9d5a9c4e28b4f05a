"""Area reports — per-module breakdown tables as HTML or plain text."""

from __future__ import annotations

import html
import json
from dataclasses import dataclass

from .area import compute_size, in_dead_zone, to_display_ratio
from .models import AreaBreakdown, Floorplan, ModuleNode, TechNodeConfig
from .parser import module_to_dict

UM2_PER_MM2 = 1e6


@dataclass
class ReportRow:
    """One module's line in an area report."""
    depth: int
    node: ModuleNode
    stats: AreaBreakdown
    dead_zone: bool


def collect_breakdowns(root: ModuleNode, config: TechNodeConfig) -> list[ReportRow]:
    """Size every module, depth-first, annotating its nesting depth."""
    rows: list[ReportRow] = []

    def visit(node: ModuleNode, depth: int) -> None:
        _, _, stats = compute_size(node, config)
        rows.append(ReportRow(
            depth=depth,
            node=node,
            stats=stats,
            dead_zone=bool(node.children) and in_dead_zone(node, stats),
        ))
        for child in node.children:
            visit(child, depth + 1)

    visit(root, 0)
    return rows


def _density(stats: AreaBreakdown) -> float:
    """Raw logic/memory/register area as a percentage of the footprint."""
    if stats.total_area <= 0:
        return 0.0
    return (stats.reg_area + stats.mem_area + stats.logic_area) / stats.total_area * 100


def generate_text_report(floorplan: Floorplan) -> str:
    rows = collect_breakdowns(floorplan.root, floorplan.tech)
    lines = [
        f"Floorplan Area Report - {floorplan.root.get_label()}",
        f"Technology: {floorplan.tech.name} (utilization {floorplan.tech.utilization:.0%})",
        "",
        f"{'module':<32} {'total mm2':>10} {'local mm2':>10} {'W x H um':>20} {'density':>8}  ratio range",
    ]
    for row in rows:
        s = row.stats
        name = ("  " * row.depth + row.node.get_label())[:32]
        ratio_range = f"[{to_display_ratio(s.min_feasible_ratio)}, {to_display_ratio(s.max_feasible_ratio)}]"
        if row.dead_zone:
            ratio_range += " DEAD ZONE"
        lines.append(
            f"{name:<32} {s.total_area / UM2_PER_MM2:>10.4f} {s.local_area / UM2_PER_MM2:>10.4f} "
            f"{s.calculated_width:>9.1f} x {s.calculated_height:<8.1f} {_density(s):>7.1f}%  {ratio_range}"
        )
    return "\n".join(lines)


def generate_html_report(floorplan: Floorplan) -> str:
    """Self-contained HTML page with the breakdown table and the tree JSON."""
    rows = collect_breakdowns(floorplan.root, floorplan.tech)
    esc = html.escape

    table_rows = []
    for row in rows:
        s = row.stats
        status = "dead zone" if row.dead_zone else ""
        table_rows.append(
            "<tr>"
            f"<td style=\"padding-left:{row.depth * 1.5 + 0.5}rem\">{esc(row.node.get_label())}</td>"
            f"<td>{s.total_area / UM2_PER_MM2:.4f}</td>"
            f"<td>{s.local_area / UM2_PER_MM2:.4f}</td>"
            f"<td>{s.children_area / UM2_PER_MM2:.4f}</td>"
            f"<td>{s.calculated_width:.1f} &times; {s.calculated_height:.1f}</td>"
            f"<td>{_density(s):.1f}%</td>"
            f"<td>{to_display_ratio(row.node.aspect_ratio)}</td>"
            f"<td>[{to_display_ratio(s.min_feasible_ratio)}, {to_display_ratio(s.max_feasible_ratio)}]</td>"
            f"<td class=\"warn\">{status}</td>"
            "</tr>"
        )

    tree_json = json.dumps(module_to_dict(floorplan.root), indent=2)
    title = esc(floorplan.root.get_label())

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>Area Report - {title}</title>"
        "<style>body{font-family:monospace;background:#0f172a;color:#f1f5f9;padding:2rem;}"
        "table{border-collapse:collapse;}td,th{border-bottom:1px solid #334155;padding:.3rem .6rem;text-align:right;}"
        "td:first-child,th:first-child{text-align:left;}.warn{color:#f59e0b;}</style></head><body>"
        f"<h1>Floorplan Area Report - {title}</h1>"
        f"<p>Technology: {esc(floorplan.tech.name)}</p><hr/>"
        "<table><tr><th>Module</th><th>Total mm&sup2;</th><th>Local mm&sup2;</th><th>Children mm&sup2;</th>"
        "<th>W &times; H &micro;m</th><th>Density</th><th>Ratio</th><th>Feasible</th><th></th></tr>"
        + "".join(table_rows)
        + f"</table><hr/><pre>{esc(tree_json)}</pre></body></html>"
    )
