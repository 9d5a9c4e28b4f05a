"""
Tests for the MCP tool handlers.

Run: python -m pytest test_server.py -v
"""

import asyncio
import json
import logging
from pathlib import Path

import pytest

import floorplan_mcp.server as srv
from floorplan_mcp.parser import parse_yaml


DOC = """
floorplan:
  title: Server Test
  tech: 28nm
  root:
    id: soc
    name: SoC
    registers: 20000
    children:
      - id: cpu
        name: CPU
        x: 400
        children:
          - {id: core0, registers: 10000}
          - {id: core1, registers: 10000, x: 100, y: 100}
      - {id: gpu, registers: 10000, x: 400, y: 900}
"""


def _call(name, **arguments):
    arguments.setdefault("floorplan", DOC)
    return asyncio.run(srv.call_tool(name, arguments))


def _payload(result):
    return json.loads(result[0].text)


@pytest.fixture(autouse=True)
def output_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(srv, "OUTPUT_DIR", tmp_path)
    return tmp_path


class TestToolList:

    def test_all_tools_listed(self):
        tools = asyncio.run(srv.list_tools())
        assert {t.name for t in tools} == set(srv._HANDLERS)

    def test_module_id_in_schema(self):
        tools = {t.name: t for t in asyncio.run(srv.list_tools())}
        assert "module_id" in tools["compact_module"].inputSchema["properties"]
        assert "module_id" not in tools["layout_floorplan"].inputSchema["properties"]


class TestDispatch:

    def test_unknown_tool(self):
        assert _call("explode")[0].text == "Unknown tool: explode"

    def test_parse_error(self):
        assert _call("compute_area", floorplan="- not\n- a tree\n")[0].text.startswith("Failed to parse")

    def test_parse_error_logged_with_arguments(self, caplog):
        with caplog.at_level(logging.ERROR, logger="floorplan_mcp.server"):
            _call("compute_area", floorplan="- not\n- a tree\n")
        record = next(r for r in caplog.records if r.msg.startswith("Parse error"))
        assert record.msg == "Parse error: %s"
        assert "mapping" in record.getMessage()

    def test_missing_module(self):
        assert _call("compute_area", module_id="ghost")[0].text == "Module not found: ghost"

    def test_list_tech_nodes(self):
        nodes = _payload(_call("list_tech_nodes", floorplan=None))["tech_nodes"]
        assert set(nodes) == {"28nm", "7nm", "5nm"}
        assert nodes["28nm"]["utilization"] == 0.65


class TestTools:

    def test_compute_area_defaults_to_root(self):
        data = _payload(_call("compute_area"))
        assert data["breakdown"]["id"] == "soc"
        assert data["tech"] == "28nm HPC+"
        assert data["breakdown"]["total_area"] > 0

    def test_layout(self):
        data = _payload(_call("layout_floorplan"))
        assert len(data["rects"]) == 2 * 5
        assert data["rects"][0]["id"] == "soc"
        assert "node" not in data["rects"][0]

    def test_check_overlaps(self):
        data = _payload(_call("check_overlaps", module_id="cpu"))
        assert [m["ids"] for m in data["overlaps"]] == [["core0", "core1"]]

    def test_compact_module(self):
        data = _payload(_call("compact_module", module_id="cpu"))
        cpu = parse_yaml(data["floorplan"]).get_module("cpu")
        assert cpu.children[1].x == 0
        assert cpu.aspect_ratio == data["aspect_ratio"]

    def test_optimize_refused(self):
        data = _payload(_call("optimize_module", module_id="cpu"))
        assert data["status"] == "refused"
        assert data["module_id"] == "cpu"
        assert len(data["overlaps"]) == 1

    def test_optimize_deep(self):
        data = _payload(_call("optimize_module", deep=True))
        assert data["status"] == "success" and data["deep"] is True
        cpu = parse_yaml(data["floorplan"]).get_module("cpu")
        assert cpu.children[1].y > 100

    def test_snap_ratio(self):
        data = _payload(_call("snap_ratio", module_id="gpu"))
        assert data["module"]["id"] == "gpu"

    def test_render(self, output_dir):
        data = _payload(_call("render_floorplan", module_id="cpu", show_overlaps=True, filename="plan", max_size=300))
        assert data["path"] == str(output_dir / "plan.png")
        assert Path(data["path"]).read_bytes()[:4] == b"\x89PNG"
        assert data["overlaps"] == 1
        assert data["modules"] == 5

    def test_area_report(self, output_dir):
        text, meta = _call("area_report")
        assert text.text.startswith("Floorplan Area Report - SoC")
        html_path = Path(json.loads(meta.text)["html_path"])
        assert html_path.parent == output_dir
        assert "<table>" in html_path.read_text()
