"""Funnel layout engine.

Turns standardized blocks and a chart configuration into one closed outline
per block. The calculation runs in two steps:

1. Geometry: drawable size, bottom inset, baseline x/y steps and the slope of
   the idealized funnel edge (corrected for pinched blocks).
2. Fold: walk the blocks top to bottom carrying the previous bottom corners
   forward, so each block's top edge is exactly the previous block's bottom
   edge.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from funnel_model.blocks import Block, standardize
from funnel_model.colorizer import (
    Colorizer,
    FunctionPalette,
    ListPalette,
    Palette,
    default_palette,
    linear_gradient_stops,
    normalize_hex,
    shade,
)
from funnel_model.errors import DegenerateLayoutError
from funnel_model.label_formatter import LabelFormat, LabelFormatter
from funnel_model.navigator import Line, Move, PathCommand, Point, QuadraticTo, format_coordinate, plot, to_commands

logger = logging.getLogger(__name__)

# Vertical room reserved above the first block of a curved chart for the top cap
CURVE_TOP_OFFSET: float = 10

GRADIENT_SHADE: float = -0.25
TOP_CAP_SHADE: float = -0.4
HIGHLIGHT_SHADE: float = -0.2


class CurveConfig(BaseModel):
    """Curvature of the horizontal block edges."""

    model_config = ConfigDict(frozen=True, extra='forbid', allow_inf_nan=False)

    enabled: bool = False
    height: float = Field(default=20, ge=0, description="Curve depth in pixels")


class Margin(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid', allow_inf_nan=False)

    top: float = Field(default=0, ge=0)
    right: float = Field(default=0, ge=0)
    bottom: float = Field(default=0, ge=0)
    left: float = Field(default=0, ge=0)


class LabelConfig(BaseModel):
    """Label styling handed through to the renderer."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    font_size: str = '14px'
    fill: str = '#fff'
    format: LabelFormat = '{l}: {f}'

    @field_validator('fill')
    @classmethod
    def validate_fill(cls, v: str) -> str:
        """Validate the default label color is a hex color."""
        normalize_hex(v)
        return v


class BorderConfig(BaseModel):
    """Stroke around the whole chart, margins included."""

    model_config = ConfigDict(frozen=True, extra='forbid', allow_inf_nan=False)

    enabled: bool = False
    color: str = '#000000'
    thickness: float = Field(default=4, ge=0)
    alpha: float = Field(default=100, ge=0, le=100, description="Stroke opacity in percent")

    @field_validator('color')
    @classmethod
    def validate_color(cls, v: str) -> str:
        normalize_hex(v)
        return v


class BackgroundConfig(BaseModel):
    """Chart background: one color, or a vertical gradient over several.

    Ratios and alphas are percentages matched to the colors by position and
    only apply to gradients.
    """

    model_config = ConfigDict(frozen=True, extra='forbid', allow_inf_nan=False)

    colors: Optional[List[str]] = None
    ratios: List[float] = Field(default_factory=lambda: [100])
    alphas: List[float] = Field(default_factory=lambda: [100])

    @model_validator(mode='after')
    def validate_stops(self) -> 'BackgroundConfig':
        """Colors must be hex and, for gradients, each needs a ratio and an alpha."""
        if self.colors is not None:
            linear_gradient_stops(self.colors, self.ratios, self.alphas)
        return self


class ChartConfig(BaseModel):
    """Immutable funnel chart configuration.

    Attributes:
        width: Outer chart width in pixels.
        height: Outer chart height in pixels.
        bottom_width: Width of the narrow edge as a fraction of the drawable width.
        bottom_pinch: Number of blocks at the narrow end with vertical edges.
        inverted: Pyramid orientation (widens downward) when True.
        curve: Curved block edges.
        margin: Space around the drawable area.
        dynamic_height: Block heights proportional to their values.
        min_height: Guaranteed height per block when dynamic, or None.
        fill_type: 'solid' fills or per-block 'gradient' fills.
        palette: Fallback fills for rows without a color.
        highlight: Compute a darker hover fill per block.
        animate: Reveal duration in milliseconds, or None for no animation.
        border: Stroke around the whole chart.
        background: Fill behind the whole chart.
        label: Label styling and format.
    """

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        arbitrary_types_allowed=True,
        allow_inf_nan=False
    )

    width: float = Field(default=350, gt=0)
    height: float = Field(default=400, gt=0)
    bottom_width: float = Field(default=1 / 3, ge=0, le=1)
    bottom_pinch: int = Field(default=0, ge=0)
    inverted: bool = False
    curve: CurveConfig = Field(default_factory=CurveConfig)
    margin: Margin = Field(default_factory=Margin)
    dynamic_height: bool = False
    min_height: Optional[float] = None
    fill_type: Literal['solid', 'gradient'] = 'solid'
    palette: Palette = Field(default_factory=default_palette)
    highlight: bool = False
    animate: Optional[float] = None
    border: BorderConfig = Field(default_factory=BorderConfig)
    background: BackgroundConfig = Field(default_factory=BackgroundConfig)
    label: LabelConfig = Field(default_factory=LabelConfig)

    @field_validator('min_height', 'animate', mode='before')
    @classmethod
    def validate_optional_amount(cls, v: Any) -> Any:
        """Accept False as 'not set'; reject True and negative amounts."""
        if v is False:
            return None
        if v is True:
            raise ValueError("expected a number of pixels/milliseconds or False")
        if isinstance(v, (int, float)) and v < 0:
            raise ValueError(f"must be non-negative, got {v}")
        return v

    @field_validator('palette', mode='before')
    @classmethod
    def validate_palette(cls, v: Any) -> Any:
        """Wrap a list of colors or a plain function as a Palette."""
        if isinstance(v, Palette):
            return v
        if isinstance(v, (list, tuple)):
            return ListPalette(v)
        if callable(v):
            return FunctionPalette(v)
        return v

    @model_validator(mode='after')
    def validate_drawable_area(self) -> 'ChartConfig':
        """Margins must leave a drawable area."""
        if self.drawable_width <= 0 or self.drawable_height <= 0:
            raise ValueError(
                f"Margins leave no drawable area ({self.drawable_width}x{self.drawable_height})"
            )
        return self

    @property
    def drawable_width(self) -> float:
        return self.width - self.margin.left - self.margin.right

    @property
    def drawable_height(self) -> float:
        return self.height - self.margin.top - self.margin.bottom

    def with_overrides(self, **overrides: Any) -> 'ChartConfig':
        """Return a new validated config with top-level options replaced."""
        return type(self)(**{**dict(self), **overrides})


@dataclass(frozen=True)
class FunnelGeometry:
    """Precomputed quantities shared by every block of a layout pass."""
    width: float
    height: float
    bottom_width: float
    bottom_left_x: float
    bottom_pinch: int
    inverted: bool
    curved: bool
    curve_height: float
    dynamic_height: bool
    min_height: Optional[float]
    dx: float
    dy: float
    slope: Optional[float]


def compute_geometry(config: ChartConfig, blocks: Sequence[Block]) -> FunnelGeometry:
    """Calculate the baseline steps and edge slope for a set of blocks.

    Args:
        config: Chart configuration.
        blocks: Standardized blocks.

    Returns:
        The geometry for make_paths.
    """
    num_blocks = len(blocks)
    width = config.drawable_width
    height = config.drawable_height
    bottom_width = width * config.bottom_width
    bottom_left_x = (width - bottom_width) / 2
    pinch = config.bottom_pinch
    curved = config.curve.enabled
    curve_height = config.curve.height

    # Sharper convergence when there is a pinch; with every block pinched the
    # baseline step is never applied
    if pinch > 0:
        steps = num_blocks - pinch
        dx = bottom_left_x / steps if steps > 0 else 0.0
    else:
        dx = bottom_left_x / num_blocks

    # Curved chart needs reserved pixels to account for curvature
    if curved:
        dy = (height - curve_height) / num_blocks
    else:
        dy = height / num_blocks

    # Pinched blocks keep vertical edges, so the remaining ones need a steeper slope
    heights = np.asarray([block.height for block in blocks], dtype=float)
    slope_height = height
    if pinch > 0:
        if config.inverted:
            slope_height -= heights[:pinch].sum()
        else:
            slope_height -= heights[max(num_blocks - pinch, 0):].sum()

    slope = None
    if width != bottom_width:
        slope = 2 * float(slope_height) / (width - bottom_width)

    return FunnelGeometry(
        width=width,
        height=height,
        bottom_width=bottom_width,
        bottom_left_x=bottom_left_x,
        bottom_pinch=pinch,
        inverted=config.inverted,
        curved=curved,
        curve_height=curve_height,
        dynamic_height=config.dynamic_height,
        min_height=config.min_height,
        dx=dx,
        dy=dy,
        slope=slope,
    )


class FoldState(NamedTuple):
    """Bottom corners of the previous block and the carried x velocity."""
    left_x: float
    right_x: float
    height: float
    dx: float


class BlockFrame(NamedTuple):
    """Corners and curve control points of one block."""
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point
    top_control: Optional[Point]
    bottom_control: Optional[Point]


def initial_state(geometry: FunnelGeometry) -> FoldState:
    left_x, right_x = 0.0, geometry.width
    # Start from the narrow edge when inverted
    if geometry.inverted:
        left_x = geometry.bottom_left_x
        right_x = geometry.width - geometry.bottom_left_x
    # Move down if there is an initial curve
    height = CURVE_TOP_OFFSET if geometry.curved else 0.0
    return FoldState(left_x, right_x, height, geometry.dx)


def _block_dy(block: Block, geometry: FunnelGeometry, num_blocks: int) -> float:
    if not geometry.dynamic_height:
        return geometry.dy

    # Greedy: each block gets the minimum height on top of its share of what
    # is left after reserving the minimum for every block
    total_height = geometry.height
    if geometry.min_height is not None:
        total_height = geometry.height - geometry.min_height * num_blocks

    dy = total_height * block.ratio
    if geometry.min_height is not None:
        dy += geometry.min_height
    if geometry.curved:
        dy -= geometry.curve_height / num_blocks
    return dy


def _dynamic_dx(state: FoldState, dy: float, is_last: bool, geometry: FunnelGeometry) -> float:
    if geometry.bottom_width == geometry.width:
        next_left_x = state.left_x
    elif geometry.bottom_width == 0 and is_last:
        # Snap to the apex to avoid rounding drift
        next_left_x = 0.0 if geometry.inverted else geometry.width / 2
    else:
        if not geometry.slope:
            raise DegenerateLayoutError("Funnel edge slope is zero; cannot place dynamic block heights")
        # y = slope * x for a funnel, y = height - slope * x for a pyramid
        if geometry.inverted:
            next_left_x = (state.height + dy - geometry.height) / (-1 * geometry.slope)
        else:
            next_left_x = (state.height + dy) / geometry.slope

    if geometry.inverted:
        return state.left_x - next_left_x
    return next_left_x - state.left_x


def fold_block(
    state: FoldState,
    block: Block,
    geometry: FunnelGeometry,
    num_blocks: int
) -> Tuple[BlockFrame, FoldState]:
    """Place one block below the previous one.

    Args:
        state: Bottom corners of the previous block.
        block: Block to place.
        geometry: Shared geometry of the layout pass.
        num_blocks: Total number of blocks.

    Returns:
        The block's frame and the state for the next block.
    """
    i = block.index
    dy = _block_dy(block, geometry, num_blocks)
    dx = state.dx

    # The pinch sits at the end of a funnel and at the start of a pyramid
    pinched = False
    if geometry.bottom_pinch > 0:
        if geometry.inverted:
            pinched = i < geometry.bottom_pinch
            # Static heights restart from the baseline step after the pinch
            if not geometry.dynamic_height:
                dx = geometry.dx
        else:
            pinched = i >= num_blocks - geometry.bottom_pinch

    # Stop x velocity for pinched blocks
    if pinched:
        dx = 0.0
    elif geometry.dynamic_height:
        dx = _dynamic_dx(state, dy, i == num_blocks - 1, geometry)

    if geometry.inverted:
        next_left_x = state.left_x - dx
        next_right_x = state.right_x + dx
    else:
        next_left_x = state.left_x + dx
        next_right_x = state.right_x - dx
    next_height = state.height + dy

    top_control = bottom_control = None
    if geometry.curved:
        middle = geometry.width / 2
        top_control = Point(middle, state.height + (geometry.curve_height - CURVE_TOP_OFFSET))
        bottom_control = Point(middle, next_height + geometry.curve_height)

    frame = BlockFrame(
        top_left=Point(state.left_x, state.height),
        top_right=Point(state.right_x, state.height),
        bottom_right=Point(next_right_x, next_height),
        bottom_left=Point(next_left_x, next_height),
        top_control=top_control,
        bottom_control=bottom_control,
    )
    return frame, FoldState(next_left_x, next_right_x, next_height, dx)


def fold_blocks(blocks: Sequence[Block], geometry: FunnelGeometry) -> List[BlockFrame]:
    """Fold over the blocks in order, threading the previous corners through."""
    frames: List[BlockFrame] = []
    state = initial_state(geometry)
    for block in blocks:
        frame, state = fold_block(state, block, geometry, len(blocks))
        frames.append(frame)
    return frames


def frame_outline(frame: BlockFrame) -> List[PathCommand]:
    """Closed outline of a block, clockwise from the top left corner."""
    if frame.top_control is not None:
        return [
            Move(frame.top_left),
            QuadraticTo(frame.top_control, frame.top_right),
            Line(frame.bottom_right),
            QuadraticTo(frame.bottom_control, frame.bottom_left),
            Line(frame.top_left),
        ]
    return [
        Move(frame.top_left),
        Line(frame.top_right),
        Line(frame.bottom_right),
        Line(frame.bottom_left),
        Line(frame.top_left),
    ]


def frame_before_outline(frame: BlockFrame) -> List[PathCommand]:
    """Outline collapsed onto the block's top edge, the start of a reveal."""
    if frame.top_control is not None:
        return [
            Move(frame.top_left),
            QuadraticTo(frame.top_control, frame.top_right),
            Line(frame.top_right),
            QuadraticTo(frame.top_control, frame.top_left),
        ]
    return [
        Move(frame.top_left),
        Line(frame.top_right),
        Line(frame.top_right),
        Line(frame.top_left),
    ]


def make_paths(blocks: Sequence[Block], geometry: FunnelGeometry) -> List[List[PathCommand]]:
    """Create the outline of every block, in block order."""
    return [frame_outline(frame) for frame in fold_blocks(blocks, geometry)]


def _check_finite(frames: Sequence[BlockFrame]) -> None:
    coordinates = np.asarray(
        [[point.x, point.y] for frame in frames for point in frame if point is not None],
        dtype=float
    )
    if not np.isfinite(coordinates).all():
        raise DegenerateLayoutError("Funnel configuration produced non-finite coordinates")


@dataclass(frozen=True)
class BlockShape:
    """Everything a renderer needs to draw one block."""
    block: Block
    outline: List[PathCommand]
    fill: str
    label_anchor: Point
    gradient_stops: Optional[List[Tuple[int, str]]] = None
    highlight_fill: Optional[str] = None
    before_outline: Optional[List[PathCommand]] = None
    before_fill: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            **self.block.to_dict(),
            'path': plot(self.outline),
            'commands': to_commands(self.outline),
            'fill_ref': self.fill,
            'label_x': self.label_anchor.x,
            'label_y': self.label_anchor.y,
        }
        if self.gradient_stops is not None:
            data['gradient'] = [{'offset': offset, 'color': color} for offset, color in self.gradient_stops]
        if self.highlight_fill is not None:
            data['highlight_fill'] = self.highlight_fill
        if self.before_outline is not None:
            data['before_path'] = plot(self.before_outline)
            data['before_fill'] = self.before_fill
        return data


@dataclass(frozen=True)
class ChartFrame:
    """Border and background of the whole chart, in outer (pre-margin) coordinates."""
    width: float
    height: float
    border_color: Optional[str] = None
    border_thickness: float = 0
    border_opacity: Optional[float] = None
    background_fill: Optional[str] = None
    background_inset: float = 0
    background_stops: Optional[List[Tuple[float, str, float]]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.border_color is not None:
            data['border'] = {
                'x': 0,
                'y': 0,
                'width': self.width,
                'height': self.height,
                'stroke': self.border_color,
                'stroke_width': self.border_thickness,
                'stroke_opacity': self.border_opacity,
            }
        if self.background_fill is not None:
            data['background'] = {
                'x': self.background_inset,
                'y': self.background_inset,
                'width': self.width - 2 * self.background_inset,
                'height': self.height - 2 * self.background_inset,
                'fill': self.background_fill,
            }
            if self.background_stops is not None:
                data['background']['gradient'] = [
                    {'offset': f"{format_coordinate(offset)}%", 'color': color, 'opacity': opacity}
                    for offset, color, opacity in self.background_stops
                ]
        return data


@dataclass(frozen=True)
class FunnelLayout:
    """Result of one layout pass."""
    width: float
    height: float
    offset: Point
    shapes: List[BlockShape]
    font_size: str
    top_cap: Optional[List[PathCommand]] = None
    top_cap_fill: Optional[str] = None
    animate: Optional[float] = None
    frame: Optional[ChartFrame] = None

    @property
    def blocks(self) -> List[Block]:
        return [shape.block for shape in self.shapes]

    @property
    def outlines(self) -> List[List[PathCommand]]:
        return [shape.outline for shape in self.shapes]

    def paths(self) -> List[str]:
        """Serialized outline of every block."""
        return [plot(shape.outline) for shape in self.shapes]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'width': self.width,
            'height': self.height,
            'offset': {'x': self.offset.x, 'y': self.offset.y},
            'font_size': self.font_size,
            'animate': self.animate,
            'blocks': [shape.to_dict() for shape in self.shapes],
        }
        if self.top_cap is not None:
            data['top_cap'] = {'path': plot(self.top_cap), 'fill': self.top_cap_fill}
        if self.frame is not None:
            data['frame'] = self.frame.to_dict()
        return data


class LayoutEngine:
    """Lays out funnel charts for a fixed configuration."""

    def __init__(self, config: Optional[ChartConfig] = None) -> None:
        self.config: ChartConfig = config or ChartConfig()

    def layout(self, rows: Sequence[Sequence[Any]]) -> FunnelLayout:
        """Standardize the rows and compute every block's outline.

        Args:
            rows: Raw rows of (label, count, color?, label_color?).

        Returns:
            The complete layout.

        Raises:
            InvalidDataError: If the rows are malformed.
            DegenerateLayoutError: If the geometry is not finite.
        """
        config = self.config
        colorizer = Colorizer(config.palette, config.label.fill)
        formatter = LabelFormatter(config.label.format)
        blocks = standardize(rows, config.drawable_height, colorizer, formatter)

        geometry = compute_geometry(config, blocks)
        logger.debug(
            f"Laying out {len(blocks)} blocks "
            f"(inverted={geometry.inverted}, curved={geometry.curved}, "
            f"dynamic={geometry.dynamic_height}, pinch={geometry.bottom_pinch})"
        )

        frames = fold_blocks(blocks, geometry)
        _check_finite(frames)

        shapes = [self._block_shape(blocks, frames, index, geometry) for index in range(len(blocks))]

        top_cap = top_cap_fill = None
        if geometry.curved:
            top_cap = self._top_cap(frames[0], geometry)
            top_cap_fill = shade(blocks[0].fill, TOP_CAP_SHADE)

        return FunnelLayout(
            width=geometry.width,
            height=geometry.height,
            offset=Point(config.margin.left, config.margin.top),
            shapes=shapes,
            font_size=config.label.font_size,
            top_cap=top_cap,
            top_cap_fill=top_cap_fill,
            animate=config.animate,
            frame=self._frame(),
        )

    def _fill_ref(self, block: Block) -> str:
        if self.config.fill_type == 'solid':
            return block.fill
        return f"url(#gradient-{block.index})"

    def _block_shape(
        self,
        blocks: Sequence[Block],
        frames: Sequence[BlockFrame],
        index: int,
        geometry: FunnelGeometry
    ) -> BlockShape:
        block = blocks[index]
        frame = frames[index]

        gradient_stops = None
        if self.config.fill_type == 'gradient':
            edge = shade(block.fill, GRADIENT_SHADE)
            gradient_stops = [(0, edge), (40, block.fill), (60, block.fill), (100, edge)]

        highlight_fill = shade(block.fill, HIGHLIGHT_SHADE) if self.config.highlight else None

        before_outline = before_fill = None
        if self.config.animate is not None:
            before_outline = frame_before_outline(frame)
            # Grow out of the previous block's color
            if self.config.fill_type == 'solid' and index > 0:
                before_fill = self._fill_ref(blocks[index - 1])
            else:
                before_fill = self._fill_ref(block)

        return BlockShape(
            block=block,
            outline=frame_outline(frame),
            fill=self._fill_ref(block),
            label_anchor=Point(geometry.width / 2, self._label_y(frame, geometry, len(blocks))),
            gradient_stops=gradient_stops,
            highlight_fill=highlight_fill,
            before_outline=before_outline,
            before_fill=before_fill,
        )

    @staticmethod
    def _label_y(frame: BlockFrame, geometry: FunnelGeometry, num_blocks: int) -> float:
        """Mean of the block's top and bottom edge heights."""
        y = (frame.top_right.y + frame.bottom_right.y) / 2
        if geometry.curved:
            y += geometry.curve_height / num_blocks
        return y

    def _frame(self) -> Optional[ChartFrame]:
        """Border and background rectangles, or None when neither is set."""
        border = self.config.border
        background = self.config.background
        if not border.enabled and background.colors is None:
            return None

        frame = ChartFrame(width=self.config.width, height=self.config.height)
        if border.enabled:
            frame = replace(
                frame,
                border_color=border.color,
                border_thickness=border.thickness,
                border_opacity=border.alpha / 100,
            )
        if background.colors is not None:
            # The background sits inside the border stroke
            inset = border.thickness / 2
            if len(background.colors) == 1:
                frame = replace(frame, background_fill=background.colors[0], background_inset=inset)
            else:
                stops = linear_gradient_stops(background.colors, background.ratios, background.alphas)
                frame = replace(frame, background_fill='url(#gradient)', background_inset=inset, background_stops=stops)
        return frame


    @staticmethod
    def _top_cap(first: BlockFrame, geometry: FunnelGeometry) -> List[PathCommand]:
        """Oval closing the top of a curved funnel."""
        middle = geometry.width / 2
        top_curve = first.top_control.y + geometry.curve_height - CURVE_TOP_OFFSET
        return [
            Move(first.top_left),
            QuadraticTo(Point(middle, top_curve), first.top_right),
            QuadraticTo(Point(middle, 0.0), first.top_left),
        ]


def layout_funnel(
    rows: Sequence[Sequence[Any]],
    config: Optional[ChartConfig] = None,
    **overrides: Any
) -> FunnelLayout:
    """Lay out a funnel chart, optionally overriding config options."""
    config = config or ChartConfig()
    if overrides:
        config = config.with_overrides(**overrides)
    return LayoutEngine(config).layout(rows)
