"""Tests for the MCP funnel layout server."""

import asyncio
import importlib.util
import json
from pathlib import Path

import pytest

SERVER_PATH = Path(__file__).resolve().parent.parent / "mcp_servers" / "main.py"


@pytest.fixture(scope="module")
def server():
    spec = importlib.util.spec_from_file_location("funnel_mcp_server", SERVER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestConvertRow:
    def test_object_row(self, server):
        assert server.convert_row({"label": "A", "value": 10}) == ["A", 10]

    def test_formatted_and_colors(self, server):
        row = {"label": "A", "value": 10, "formatted": "ten", "color": "#f00", "label_color": "#000"}
        assert server.convert_row(row) == ["A", [10, "ten"], "#f00", "#000"]

    def test_label_color_only(self, server):
        assert server.convert_row({"label": "A", "value": 1, "label_color": "#000"}) == ["A", 1, None, "#000"]

    def test_list_passthrough(self, server):
        assert server.convert_row(["A", 1]) == ["A", 1]


class TestCreateFunnelLayout:
    def test_returns_json_text(self, server):
        result = server.create_funnel_layout(
            [{"label": "A", "value": 50}, {"label": "B", "value": 30}, {"label": "C", "value": 20}],
            {"width": 300, "height": 300, "bottom_width": 0.5}
        )
        assert len(result) == 1
        data = json.loads(result[0].text)
        assert data["blocks"][0]["path"] == "M0,0 L300,0 L275,100 L25,100 L0,0"
        assert data["blocks"][1]["label"]["formatted"] == "B: 30"


class TestTools:
    def test_list_tools(self, server):
        tools = asyncio.run(server.list_tools())
        assert [tool.name for tool in tools] == ["create_funnel_layout"]
        assert tools[0].inputSchema["required"] == ["rows"]

    def test_call_tool(self, server):
        result = asyncio.run(server.call_tool("create_funnel_layout", {"rows": [["A", 1], ["B", 1]]}))
        assert len(json.loads(result[0].text)["blocks"]) == 2

    def test_unknown_tool(self, server):
        result = asyncio.run(server.call_tool("draw_pie_chart", {}))
        assert "not found" in result[0].text

    def test_invalid_rows_reported(self, server):
        result = asyncio.run(server.call_tool("create_funnel_layout", {"rows": []}))
        assert result[0].text.startswith("Error creating funnel layout")

    def test_invalid_options_reported(self, server):
        result = asyncio.run(server.call_tool(
            "create_funnel_layout", {"rows": [["A", 1]], "options": {"fill_type": "pattern"}}
        ))
        assert result[0].text.startswith("Error creating funnel layout")
