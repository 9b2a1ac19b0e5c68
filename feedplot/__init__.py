from feedplot.backend import GnuplotProcessSink, ProtocolSink, StreamSink, open_sink, query_gnuplot_version
from feedplot.bridge import RendererBridge
from feedplot.config import AxisRange, PlotConfig
from feedplot.errors import BackendUnavailableError, CurveLimitError, FeedPlotError, PlotConfigError
from feedplot.parser import LineKind, ParsedRecord, RecordParser
from feedplot.registry import Curve, CurveRegistry, Point
from feedplot.session import PlotSession
from feedplot.streaming import StreamingCoordinator, StreamResult, run_batch
from feedplot.window import WindowManager, check_monotonic, prune

__all__ = [
    "AxisRange",
    "BackendUnavailableError",
    "Curve",
    "CurveLimitError",
    "CurveRegistry",
    "FeedPlotError",
    "GnuplotProcessSink",
    "LineKind",
    "ParsedRecord",
    "PlotConfig",
    "PlotConfigError",
    "PlotSession",
    "Point",
    "ProtocolSink",
    "RecordParser",
    "RendererBridge",
    "StreamResult",
    "StreamSink",
    "StreamingCoordinator",
    "WindowManager",
    "check_monotonic",
    "open_sink",
    "prune",
    "query_gnuplot_version",
    "run_batch",
]
