"""MCP Server for funnel chart layouts.

This module implements a Model Context Protocol (MCP) server that exposes the
funnel layout engine as a tool. Clients send ordered funnel rows and chart
options and receive the block data and path descriptors as JSON, ready for
their own renderer.
"""

import json
import logging
from typing import Any, List, Optional

import anyio
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from funnel_model import ChartConfig, FunnelError, LayoutEngine


logger = logging.getLogger(__name__)

# Initialize MCP server
app = Server("funnel-layout")
_tool_functions_map: dict[str, Any] = {}


def convert_row(row: Any) -> Any:
    """Convert a row object to the (label, count, color, label_color) form.

    Rows that are already lists are passed through unchanged.
    """
    if not isinstance(row, dict):
        return row

    count: Any = row.get("value")
    if row.get("formatted") is not None:
        count = [count, row["formatted"]]

    converted: list[Any] = [row.get("label", ""), count]
    if row.get("color") is not None or row.get("label_color") is not None:
        converted.append(row.get("color"))
    if row.get("label_color") is not None:
        converted.append(row["label_color"])
    return converted


def create_funnel_layout(
    rows: list[Any],
    options: Optional[dict[str, Any]] = None
) -> list[types.TextContent]:
    """Lay out a funnel chart for the given rows and options.

    Args:
        rows: Ordered funnel rows. Each row is either an object with
            'label', 'value' and optional 'formatted', 'color', 'label_color'
            fields, or a list [label, count, color?, label_color?].
        options: Optional chart options (width, height, bottom_width,
            bottom_pinch, inverted, curve, dynamic_height, min_height, ...).

    Returns:
        List containing one types.TextContent with the layout as JSON.

    Raises:
        FunnelError: If the rows cannot be laid out.
        ValidationError: If the options are invalid.
    """
    config = ChartConfig(**(options or {}))
    layout = LayoutEngine(config).layout([convert_row(row) for row in rows])
    logger.info(f"Created funnel layout with {len(layout.shapes)} blocks")

    return [
        types.TextContent(
            type="text",
            text=json.dumps(layout.to_dict())
        )
    ]


@app.list_tools()
async def list_tools() -> list[types.Tool]:
    """List available tools from the MCP server.

    Each tool is registered with its name, description, and input schema.

    Returns:
        List of available tool definitions.
    """
    global _tool_functions_map
    _tool_functions_map = {}  # Reset for idempotency

    base_tool_definitions = [
        {
            "name": "create_funnel_layout",
            "description": (
                "This tool computes the layout of a funnel chart. "
                "Rows are stacked top to bottom in the given order (bottom to top when inverted) "
                "and each block's size encodes its share of the total value. "
                "The tool returns a single types.TextContent holding JSON with, per block, "
                "the value, ratio, fill color, formatted label, label anchor and an SVG path "
                "descriptor of its outline, plus a top cap path for curved charts."
            ),
            "inputSchema": {
                "type": "object",
                "required": ["rows"],
                "properties": {
                    "rows": {
                        "type": "array",
                        "description": "Ordered funnel rows, widest stage first.",
                        "items": {
                            "type": "object",
                            "properties": {
                                "label": {
                                    "type": "string",
                                    "description": "Category label."
                                },
                                "value": {
                                    "type": "number",
                                    "description": "Category count."
                                },
                                "formatted": {
                                    "type": "string",
                                    "description": "Display text for the value, used for the {f} label token."
                                },
                                "color": {
                                    "type": "string",
                                    "description": "Hex fill color, e.g. '#ff0000'."
                                },
                                "label_color": {
                                    "type": "string",
                                    "description": "Hex label color."
                                }
                            },
                            "required": ["label", "value"]
                        }
                    },
                    "options": {
                        "type": "object",
                        "description": "Chart options.",
                        "properties": {
                            "width": {"type": "number"},
                            "height": {"type": "number"},
                            "bottom_width": {
                                "type": "number",
                                "description": "Narrow edge width as a fraction (0-1) of the chart width."
                            },
                            "bottom_pinch": {
                                "type": "integer",
                                "description": "Number of blocks at the narrow end with vertical edges."
                            },
                            "inverted": {"type": "boolean"},
                            "curve": {
                                "type": "object",
                                "properties": {
                                    "enabled": {"type": "boolean"},
                                    "height": {"type": "number"}
                                }
                            },
                            "dynamic_height": {"type": "boolean"},
                            "min_height": {"type": "number"},
                            "fill_type": {"type": "string", "enum": ["solid", "gradient"]},
                            "palette": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Fallback hex fill colors, used by block index."
                            },
                            "highlight": {"type": "boolean"},
                            "border": {
                                "type": "object",
                                "properties": {
                                    "enabled": {"type": "boolean"},
                                    "color": {"type": "string"},
                                    "thickness": {"type": "number"},
                                    "alpha": {"type": "number", "description": "Stroke opacity in percent."}
                                }
                            },
                            "background": {
                                "type": "object",
                                "description": "One color, or several for a vertical gradient.",
                                "properties": {
                                    "colors": {"type": "array", "items": {"type": "string"}},
                                    "ratios": {"type": "array", "items": {"type": "number"}},
                                    "alphas": {"type": "array", "items": {"type": "number"}}
                                }
                            },
                            "label": {
                                "type": "object",
                                "properties": {
                                    "format": {"type": "string"},
                                    "fill": {"type": "string"},
                                    "font_size": {"type": "string"}
                                }
                            }
                        }
                    }
                }
            },
            "function": create_funnel_layout
        },
    ]

    TOOLS: List[types.Tool] = []
    for tool_def in base_tool_definitions:
        TOOLS.append(
            types.Tool(
                name=tool_def["name"],
                description=tool_def["description"],
                inputSchema=tool_def["inputSchema"]
            )
        )
        _tool_functions_map[tool_def["name"]] = tool_def["function"]

    return TOOLS


@app.call_tool()
async def call_tool(
    name: str,
    arguments: dict[str, Any]
) -> list[types.TextContent]:
    """Call a tool by name with arguments.

    Args:
        name: Name of the tool to call.
        arguments: Dictionary of tool arguments.

    Returns:
        List of text content items.
    """
    if not _tool_functions_map:
        await list_tools()

    tool_function = _tool_functions_map.get(name)
    if tool_function is None:
        return [
            types.TextContent(
                type="text",
                text=f"Error: Tool '{name}' not found or not implemented."
            )
        ]

    try:
        return tool_function(**arguments)
    except (FunnelError, ValidationError, ValueError, TypeError) as e:
        logger.error(f"Error in tool '{name}': {e}")
        return [
            types.TextContent(
                type="text",
                text=f"Error creating funnel layout: {str(e)}"
            )
        ]


async def arun() -> None:
    """Run the MCP server with stdio transport."""
    async with stdio_server() as streams:
        await app.run(
            streams[0],
            streams[1],
            app.create_initialization_options()
        )


if __name__ == "__main__":
    anyio.run(arun)
