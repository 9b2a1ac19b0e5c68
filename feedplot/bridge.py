from __future__ import annotations

from feedplot.backend import ProtocolSink
from feedplot.config import PlotConfig
from feedplot.registry import CurveRegistry, format_number, quote_string

END_OF_BLOCK = "e"


class RendererBridge:
    """Serializes registry state into gnuplot's inline-data plot protocol."""

    def __init__(self, config: PlotConfig, sink: ProtocolSink) -> None:
        self._config = config
        self._sink = sink
        self._plot_command = "splot" if config.three_d else "plot"

    def preamble(self, registry: CurveRegistry) -> list[str]:
        cfg = self._config
        out = ["set grid"]
        for directive, text in (
            ("title", cfg.title),
            ("xlabel", cfg.xlabel),
            ("ylabel", cfg.ylabel),
            ("y2label", cfg.y2label),
            ("zlabel", cfg.zlabel),
        ):
            if text is not None:
                out.append(f"set {directive} {quote_string(text)}")
        for axis in ("x", "y", "y2", "z", "cb"):
            bounds = cfg.axis_range(axis)
            if bounds.is_set:
                out.append(f"set {axis}range [{_bound(bounds.lo)}:{_bound(bounds.hi)}]")
        if cfg.square:
            out.append("set view equal xyz" if cfg.three_d else "set size ratio -1")
        if cfg.y2 or cfg.y2label is not None:
            out.append("set ytics nomirror")
            out.append("set y2tics")
        if registry.has_histograms:
            width = format_number(cfg.bin_width)
            out.append(f"set boxwidth {width}")
            out.append(f"histbin(x) = {width} * floor(0.5 + x/{width})")
        out.extend(f"set {text}" for text in cfg.set_commands)
        out.extend(f"unset {text}" for text in cfg.unset_commands)
        out.extend(cfg.extra_commands)
        return out

    def render(self, registry: CurveRegistry, range_hint: tuple[float, float] | None = None) -> str:
        curves = registry.non_empty()
        if not curves:
            return ""
        lines: list[str] = []
        if range_hint is not None:
            lo, hi = range_hint
            lines.append(f"set xrange [{format_number(lo)}:{format_number(hi)}]")
        body = ", ".join(f"'-' {curve.options_string}".rstrip() for curve in curves)
        lines.append(f"{self._plot_command} {body}")
        for curve in curves:
            lines.extend(point.row() for point in curve.points)
            lines.append(END_OF_BLOCK)
        return "\n".join(lines) + "\n"

    def emit(self, registry: CurveRegistry, range_hint: tuple[float, float] | None = None) -> str:
        text = self.render(registry, range_hint)
        if text:
            self._sink.write(text)
            self._sink.flush()
        return text

    def send(self, commands: list[str]) -> None:
        if not commands:
            return
        self._sink.write("\n".join(commands) + "\n")
        self._sink.flush()


def _bound(value: float | None) -> str:
    return "*" if value is None else format_number(value)

