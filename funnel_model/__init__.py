"""Funnel chart layout engine.

Turns ordered category rows into normalized blocks and one closed outline per
block, ready for any renderer that understands path descriptors.

Usage:
    from funnel_model import layout_funnel

    layout = layout_funnel([["Leads", 5000], ["Calls", 2500], ["Sales", 500]],
                           width=300, height=300, dynamic_height=True)
    for block, path in zip(layout.blocks, layout.paths()):
        print(block.label.formatted, path)
"""

from funnel_model.blocks import Block, BlockLabel, get_raw_count, standardize, validate_data
from funnel_model.colorizer import (
    CATEGORY10,
    Colorizer,
    FunctionPalette,
    ListPalette,
    Palette,
    expand_hex,
    is_hex_color,
    linear_gradient_stops,
    normalize_hex,
    shade,
    validate_colors,
)
from funnel_model.errors import DegenerateLayoutError, FunnelError, InvalidColorError, InvalidDataError
from funnel_model.label_formatter import LabelFormatter, default_formatted_value
from funnel_model.layout import (
    BackgroundConfig,
    BlockShape,
    BorderConfig,
    ChartConfig,
    ChartFrame,
    CurveConfig,
    FunnelLayout,
    LabelConfig,
    LayoutEngine,
    Margin,
    compute_geometry,
    layout_funnel,
    make_paths,
)
from funnel_model.navigator import Line, Move, Point, QuadraticTo, plot, to_commands

__version__ = "0.1.0"

__all__ = [
    'BackgroundConfig', 'Block', 'BlockLabel', 'BlockShape', 'BorderConfig', 'CATEGORY10', 'ChartConfig',
    'ChartFrame', 'Colorizer', 'CurveConfig', 'DegenerateLayoutError', 'FunctionPalette', 'FunnelError', 'FunnelLayout', 'InvalidColorError',
    'InvalidDataError', 'LabelConfig', 'LabelFormatter', 'LayoutEngine', 'Line', 'ListPalette',
    'Margin', 'Move', 'Palette', 'Point', 'QuadraticTo', 'compute_geometry', 'default_formatted_value',
    'expand_hex', 'get_raw_count', 'is_hex_color', 'layout_funnel', 'linear_gradient_stops', 'make_paths',
    'normalize_hex', 'plot', 'shade', 'standardize', 'to_commands', 'validate_colors', 'validate_data',
]
