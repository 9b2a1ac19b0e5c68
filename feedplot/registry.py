from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterator

import numpy as np

from feedplot.config import HistStyle, PlotConfig
from feedplot.errors import CurveLimitError

LOGGER = logging.getLogger(__name__)

Y2_STYLE = "axes x1y2 linewidth 3"
HISTOGRAM_STYLE = "with boxes"


@dataclass(frozen=True)
class Point:
    domain: tuple[str, ...]
    values: tuple[str, ...]
    domain_value: float

    def row(self) -> str:
        return " ".join(self.domain + self.values)


@dataclass
class CurveOptions:
    title: str | None = None
    extra: list[str] = field(default_factory=list)
    explicit_style: bool = False
    histogram: bool = False
    bin_width: float = 1.0
    hist_style: HistStyle = "freq"
    y2: bool = False


class Curve:
    """Ordered point history for one curve.

    Points are kept in arrival order. The primary domain coordinate of every
    point is mirrored into a growable float64 array so windowing can select
    survivors with one vectorized comparison.
    """

    def __init__(self, curve_id: str, initial_capacity: int = 64) -> None:
        if initial_capacity <= 0:
            raise ValueError("initial_capacity must be > 0")
        self.curve_id = curve_id
        self.options = CurveOptions()
        self.options_string = ""
        self._points: list[Point] = []
        self._domain = np.empty(initial_capacity, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> tuple[Point, ...]:
        return tuple(self._points)

    def domain_values(self) -> np.ndarray:
        return self._domain[: len(self._points)]

    def append(self, point: Point) -> None:
        n = len(self._points)
        if n == self._domain.shape[0]:
            grown = np.empty(n * 2, dtype=np.float64)
            grown[:n] = self._domain
            self._domain = grown
        self._domain[n] = point.domain_value
        self._points.append(point)

    def keep(self, indices: np.ndarray) -> int:
        """Retain only the points at ``indices`` (ascending); returns how many were dropped."""
        n = len(self._points)
        idx = np.asarray(indices, dtype=np.intp)
        if idx.size == n:
            return 0
        self._points = [self._points[i] for i in idx.tolist()]
        self._domain[: idx.size] = self._domain[idx]
        return n - int(idx.size)

    def clear(self) -> None:
        self._points.clear()


class CurveRegistry:
    def __init__(
        self,
        *,
        max_curves: int,
        autolegend: bool = False,
        default_style: str = "",
        global_bin_width: float = 1.0,
        value_column: int = 2,
    ) -> None:
        if max_curves <= 0:
            raise ValueError("max_curves must be > 0")
        self._max_curves = max_curves
        self._autolegend = autolegend
        self._default_style = default_style.strip()
        self._global_bin_width = float(global_bin_width)
        self._value_column = value_column
        self._curves: dict[str, Curve] = {}

    @classmethod
    def from_config(cls, config: PlotConfig) -> CurveRegistry:
        registry = cls(
            max_curves=config.max_curves,
            autolegend=config.autolegend,
            default_style=config.default_style,
            global_bin_width=config.bin_width,
            value_column=config.domain_width + 1,
        )
        for curve_id, text in config.legends:
            registry.set_title(curve_id, text)
        for curve_id, text in config.curve_styles:
            registry.add_style_option(curve_id, text)
        for curve_id in config.histograms:
            registry.set_histogram(curve_id, config.bin_width, config.hist_style)
        for curve_id in config.y2:
            registry.set_y2(curve_id)
        return registry

    def __len__(self) -> int:
        return len(self._curves)

    def __iter__(self) -> Iterator[Curve]:
        return iter(self._curves.values())

    def __contains__(self, curve_id: object) -> bool:
        return curve_id in self._curves

    def ids(self) -> list[str]:
        return list(self._curves)

    def get(self, curve_id: str) -> Curve | None:
        return self._curves.get(curve_id)

    def get_or_create(self, curve_id: str) -> Curve:
        curve = self._curves.get(curve_id)
        if curve is not None:
            return curve
        if len(self._curves) >= self._max_curves:
            raise CurveLimitError(self._max_curves, curve_id)
        curve = Curve(curve_id)
        self._curves[curve_id] = curve
        self._refresh(curve)
        LOGGER.debug("created curve %r (%d/%d)", curve_id, len(self._curves), self._max_curves)
        return curve

    def set_title(self, curve_id: str, text: str) -> None:
        curve = self.get_or_create(curve_id)
        curve.options.title = text
        self._refresh(curve)

    def add_style_option(self, curve_id: str, text: str) -> None:
        curve = self.get_or_create(curve_id)
        curve.options.extra.append(text.strip())
        curve.options.explicit_style = True
        self._refresh(curve)

    def set_histogram(self, curve_id: str, bin_width: float, hist_style: HistStyle) -> None:
        if not bin_width > 0:
            raise ValueError("bin_width must be > 0")
        curve = self.get_or_create(curve_id)
        curve.options.histogram = True
        curve.options.bin_width = float(bin_width)
        curve.options.hist_style = hist_style
        self._refresh(curve)

    def set_y2(self, curve_id: str) -> None:
        curve = self.get_or_create(curve_id)
        if not curve.options.y2:
            curve.options.y2 = True
            curve.options.extra.append(Y2_STYLE)
        self._refresh(curve)

    def append(self, curve_id: str, point: Point) -> None:
        self.get_or_create(curve_id).append(point)

    def clear_all(self) -> None:
        for curve in self._curves.values():
            curve.clear()

    def non_empty(self) -> list[Curve]:
        return [curve for curve in self._curves.values() if len(curve) > 0]

    @property
    def has_histograms(self) -> bool:
        return any(curve.options.histogram for curve in self._curves.values())

    def _refresh(self, curve: Curve) -> None:
        opts = curve.options
        parts: list[str] = []
        if opts.histogram:
            parts.append(f"using ({self._bin_expression(opts.bin_width)}):(1.0) smooth {opts.hist_style}")
        if opts.title is not None:
            parts.append(f"title {quote_string(opts.title)}")
        elif self._autolegend:
            parts.append(f"title {quote_string(curve.curve_id)}")
        else:
            # Without an explicit marker gnuplot labels the curve "'-'".
            parts.append("notitle")
        parts.extend(text for text in opts.extra if text)
        if not opts.explicit_style:
            if opts.histogram:
                parts.append(HISTOGRAM_STYLE)
            elif self._default_style:
                parts.append(self._default_style)
        curve.options_string = " ".join(parts)

    def _bin_expression(self, bin_width: float) -> str:
        column = f"${self._value_column}"
        if bin_width == self._global_bin_width:
            return f"histbin({column})"
        width = format_number(bin_width)
        return f"{width} * floor(0.5 + {column}/{width})"


def format_number(value: float) -> str:
    value = float(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def quote_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
