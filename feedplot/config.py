from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Literal

from feedplot.errors import PlotConfigError


HistStyle = Literal["freq", "cumulative", "uniq", "cnormal"]

HIST_STYLES: tuple[str, ...] = ("freq", "cumulative", "uniq", "cnormal")
RANGE_AXES: tuple[str, ...] = ("x", "y", "y2", "z", "cb")
DEFAULT_MAX_CURVES = 100


@dataclass(frozen=True)
class AxisRange:
    lo: float | None = None
    hi: float | None = None

    def __post_init__(self) -> None:
        for value in (self.lo, self.hi):
            if value is not None and not math.isfinite(value):
                raise PlotConfigError("axis range bounds must be finite")

    @property
    def is_set(self) -> bool:
        return self.lo is not None or self.hi is not None


@dataclass(frozen=True)
class PlotConfig:
    """Validated options consumed by the parser, registry, session and bridge.

    Per-curve assignments (legends, curve_styles, histograms, y2) are ordered
    tuples because the order they are given in decides curve creation order.
    """

    domain: bool = False
    dataid: bool = False
    three_d: bool = False
    extra_values_per_point: int = 0
    colormap: bool = False
    circles: bool = False
    monotonic: bool = False
    xlen: float | None = None
    max_curves: int = DEFAULT_MAX_CURVES
    stream: bool = False
    stream_period: float = 1.0
    autolegend: bool = False
    default_style: str = ""
    legends: tuple[tuple[str, str], ...] = ()
    curve_styles: tuple[tuple[str, str], ...] = ()
    histograms: tuple[str, ...] = ()
    y2: tuple[str, ...] = ()
    bin_width: float = 1.0
    hist_style: HistStyle = "freq"
    title: str | None = None
    xlabel: str | None = None
    ylabel: str | None = None
    y2label: str | None = None
    zlabel: str | None = None
    ranges: dict[str, AxisRange] = field(default_factory=dict)
    square: bool = False
    set_commands: tuple[str, ...] = ()
    unset_commands: tuple[str, ...] = ()
    extra_commands: tuple[str, ...] = ()
    terminal: str | None = None
    hardcopy: str | None = None
    dump: bool = False
    persist: bool = True

    def __post_init__(self) -> None:
        if self.three_d and not self.domain:
            raise PlotConfigError("--3d requires --domain")
        if self.monotonic and not self.domain:
            raise PlotConfigError("--monotonic makes sense only with --domain")
        if self.xlen is not None:
            if not self.stream:
                raise PlotConfigError("--xlen makes sense only with --stream")
            if not self.xlen > 0:
                raise PlotConfigError("--xlen must be > 0")
        if self.max_curves <= 0:
            raise PlotConfigError("--maxcurves must be > 0")
        if self.stream_period < 0 or not math.isfinite(self.stream_period):
            raise PlotConfigError("stream period must be >= 0")
        if self.extra_values_per_point < 0:
            raise PlotConfigError("--extraValuesPerPoint must be >= 0")
        if not self.bin_width > 0:
            raise PlotConfigError("--binwidth must be > 0")
        if self.hist_style not in HIST_STYLES:
            raise PlotConfigError(f"--histstyle must be one of {', '.join(HIST_STYLES)}")
        if self.histograms and self.three_d:
            raise PlotConfigError("histograms are only supported in 2-D plots")
        if self.y2 and self.three_d:
            raise PlotConfigError("--y2 is only supported in 2-D plots")
        if self.terminal is not None and self.hardcopy is not None:
            raise PlotConfigError("--terminal and --hardcopy are mutually exclusive")
        for axis in self.ranges:
            if axis not in RANGE_AXES:
                raise PlotConfigError(f"unknown axis range: {axis}")
        for axis, bounds in self.ranges.items():
            if bounds.lo is not None and bounds.hi is not None and bounds.lo >= bounds.hi:
                raise PlotConfigError(f"{axis} range must satisfy min < max")

    @property
    def domain_width(self) -> int:
        return 2 if self.three_d else 1

    @property
    def values_per_point(self) -> int:
        return 1 + self.extra_values_per_point + int(self.colormap) + int(self.circles)

    @property
    def periodic_redraw(self) -> bool:
        return self.stream and self.stream_period > 0

    def axis_range(self, axis: str) -> AxisRange:
        return self.ranges.get(axis, AxisRange())
