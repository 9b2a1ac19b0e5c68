from __future__ import annotations

import argparse
import io
import logging
from pathlib import Path
import sys
from typing import Iterator, TextIO

from feedplot.backend import DEFAULT_GNUPLOT, open_sink
from feedplot.config import DEFAULT_MAX_CURVES, HIST_STYLES, AxisRange, PlotConfig
from feedplot.errors import FeedPlotError, PlotConfigError
from feedplot.session import PlotSession
from feedplot.streaming import StreamingCoordinator, run_batch

LOGGER = logging.getLogger("feedplot")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedplot",
        description="Plot numeric data read from stdin (or files) with gnuplot, in batch or live.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Input files. Default: stdin.")

    layout = parser.add_argument_group("input layout")
    layout.add_argument("--domain", action="store_true", help="First column(s) of every line is the x (x y in 3-D).")
    layout.add_argument("--dataid", action="store_true", help="Each value group is preceded by a curve id.")
    layout.add_argument("--3d", dest="three_d", action="store_true", help="Plot in 3-D; needs --domain.")
    layout.add_argument("--colormap", action="store_true", help="Each point carries one extra palette value.")
    layout.add_argument("--circles", action="store_true", help="Each point carries one extra circle radius.")
    layout.add_argument("--extraValuesPerPoint", dest="extra_values_per_point", type=int, default=0)
    layout.add_argument("--monotonic", action="store_true", help="Reset all curves when x goes backward.")
    layout.add_argument("--maxcurves", dest="max_curves", type=int, default=DEFAULT_MAX_CURVES)

    stream = parser.add_argument_group("streaming")
    stream.add_argument(
        "--stream",
        nargs="?",
        const="1",
        default=None,
        metavar="PERIOD",
        help="Plot live. PERIOD is the redraw period in seconds (default 1); 'trigger' redraws only on 'replot'.",
    )
    stream.add_argument("--xlen", type=float, default=None, help="Keep only the trailing XLEN of the domain.")

    style = parser.add_argument_group("style")
    style.add_argument("--lines", action="store_true")
    style.add_argument("--points", action="store_true")
    style.add_argument("--with", dest="with_style", default=None, help="Default curve style, e.g. 'lines lw 2'.")
    style.add_argument("--curvestyleall", default=None, help="Raw default options for curves with no own style.")
    style.add_argument("--legend", nargs=2, action="append", default=[], metavar=("ID", "TEXT"))
    style.add_argument("--autolegend", action="store_true", help="Title curves by their id.")
    style.add_argument("--curvestyle", nargs=2, action="append", default=[], metavar=("ID", "OPTIONS"))
    style.add_argument("--histogram", action="append", default=[], metavar="ID")
    style.add_argument("--binwidth", type=float, default=1.0)
    style.add_argument("--histstyle", choices=HIST_STYLES, default="freq")
    style.add_argument("--y2", action="append", default=[], metavar="ID")
    for name in ("title", "xlabel", "ylabel", "y2label", "zlabel"):
        style.add_argument(f"--{name}", default=None)
    for axis in ("x", "y", "y2", "z", "cb"):
        style.add_argument(f"--{axis}min", type=float, default=None)
        style.add_argument(f"--{axis}max", type=float, default=None)
    style.add_argument("--square", action="store_true")
    style.add_argument("--set", dest="set_commands", action="append", default=[])
    style.add_argument("--unset", dest="unset_commands", action="append", default=[])
    style.add_argument("--extracmds", action="append", default=[])

    output = parser.add_argument_group("output")
    output.add_argument("--terminal", default=None)
    output.add_argument("--hardcopy", default=None, help="Write the plot to a file; terminal picked by extension.")
    output.add_argument("--dump", action="store_true", help="Print the gnuplot commands instead of running gnuplot.")
    output.add_argument("--exit", action="store_true", help="Don't keep the plot window open after gnuplot exits.")
    output.add_argument("--gnuplot", default=DEFAULT_GNUPLOT, help="gnuplot executable.")
    output.add_argument("-v", "--verbose", action="store_true")
    return parser


def config_from_args(args: argparse.Namespace) -> PlotConfig:
    stream = args.stream is not None
    period = 0.0
    if stream:
        period = _parse_stream_period(args.stream)
    ranges = {}
    for axis in ("x", "y", "y2", "z", "cb"):
        bounds = AxisRange(lo=getattr(args, f"{axis}min"), hi=getattr(args, f"{axis}max"))
        if bounds.is_set:
            ranges[axis] = bounds
    return PlotConfig(
        domain=args.domain,
        dataid=args.dataid,
        three_d=args.three_d,
        extra_values_per_point=args.extra_values_per_point,
        colormap=args.colormap,
        circles=args.circles,
        monotonic=args.monotonic,
        xlen=args.xlen,
        max_curves=args.max_curves,
        stream=stream,
        stream_period=period,
        autolegend=args.autolegend,
        default_style=_resolve_default_style(args),
        legends=tuple((curve_id, text) for curve_id, text in args.legend),
        curve_styles=tuple((curve_id, text) for curve_id, text in args.curvestyle),
        histograms=tuple(args.histogram),
        y2=tuple(args.y2),
        bin_width=args.binwidth,
        hist_style=args.histstyle,
        title=args.title,
        xlabel=args.xlabel,
        ylabel=args.ylabel,
        y2label=args.y2label,
        zlabel=args.zlabel,
        ranges=ranges,
        square=args.square,
        set_commands=tuple(args.set_commands),
        unset_commands=tuple(args.unset_commands),
        extra_commands=tuple(args.extracmds),
        terminal=args.terminal,
        hardcopy=args.hardcopy,
        dump=args.dump,
        persist=not args.exit,
    )


def main(argv: list[str] | None = None, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if stdin is None:
        # Undecodable bytes become U+FFFD and the line is skipped as unparseable.
        stdin = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
    stdout = sys.stdout if stdout is None else stdout
    try:
        config = config_from_args(args)
        sink, version = open_sink(config, stdout=stdout, executable=args.gnuplot)
    except (FeedPlotError, PlotConfigError) as exc:
        LOGGER.error("%s", exc)
        return 1

    try:
        session = PlotSession(config, sink, version=version)
    except FeedPlotError as exc:
        LOGGER.error("%s", exc)
        sink.close()
        return 1

    try:
        session.start()
        lines = _iter_input(args.files, stdin)
        if config.stream:
            result = StreamingCoordinator(session, lines).run()
            LOGGER.debug(
                "stream complete: records=%d redraws=%d skipped_redraws=%d",
                result.records,
                result.redraws,
                result.skipped_redraws,
            )
        else:
            run_batch(session, lines)
    except FeedPlotError as exc:
        LOGGER.error("%s", exc)
        return 1
    finally:
        session.close()
    return 0


def _parse_stream_period(value: str) -> float:
    if value == "trigger":
        return 0.0
    try:
        period = float(value)
    except ValueError as exc:
        raise PlotConfigError(f"--stream takes a period in seconds or 'trigger', got {value!r}") from exc
    if not period > 0:
        raise PlotConfigError("--stream period must be > 0; use 'trigger' for replot-driven redraws")
    return period


def _resolve_default_style(args: argparse.Namespace) -> str:
    if args.curvestyleall is not None:
        style = args.curvestyleall
    elif args.with_style is not None:
        style = f"with {args.with_style}"
    elif args.circles:
        style = "with circles"
    elif args.lines and not args.points:
        style = "with lines"
    elif args.points and not args.lines:
        style = "with points"
    else:
        style = "with linespoints"
    if args.colormap:
        style += " palette"
    return style


def _iter_input(paths: list[Path], stdin: TextIO) -> Iterator[str]:
    if not paths:
        yield from stdin
        return
    for path in paths:
        try:
            with path.open("r", encoding="utf-8", errors="replace") as f:
                yield from f
        except OSError as exc:
            raise FeedPlotError(f"couldn't read {path}: {exc}") from exc


if __name__ == "__main__":
    raise SystemExit(main())
