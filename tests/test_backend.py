from __future__ import annotations

import io
import subprocess
import unittest

from feedplot.backend import (
    GnuplotProcessSink,
    StreamSink,
    open_sink,
    parse_gnuplot_version,
    query_gnuplot_version,
    setup_commands,
    terminal_for_hardcopy,
)
from feedplot.config import PlotConfig
from feedplot.errors import BackendUnavailableError, PlotConfigError


class GnuplotVersionTests(unittest.TestCase):
    def test_parse_version(self) -> None:
        self.assertEqual(parse_gnuplot_version("gnuplot 5.4 patchlevel 2\n"), (5, 4))
        self.assertEqual(parse_gnuplot_version("gnuplot 4.6 patchlevel 6"), (4, 6))

    def test_parse_version_rejects_garbage(self) -> None:
        with self.assertRaises(BackendUnavailableError):
            parse_gnuplot_version("not a plotter")

    def test_query_runs_version_flag(self) -> None:
        calls: list[list[str]] = []

        def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="gnuplot 6.0 patchlevel 0\n", stderr="")

        self.assertEqual(query_gnuplot_version("gp", runner=runner), (6, 0))
        self.assertEqual(calls, [["gp", "--version"]])

    def test_query_reports_missing_executable(self) -> None:
        def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            raise FileNotFoundError(cmd[0])

        with self.assertRaises(BackendUnavailableError):
            query_gnuplot_version("gp", runner=runner)


class SetupCommandTests(unittest.TestCase):
    def test_hardcopy_terminal_by_extension(self) -> None:
        self.assertEqual(terminal_for_hardcopy("plot.PNG"), "pngcairo")
        self.assertEqual(terminal_for_hardcopy("a/b.pdf"), "pdfcairo")
        with self.assertRaises(PlotConfigError):
            terminal_for_hardcopy("plot.bmp")

    def test_hardcopy_sets_terminal_and_output(self) -> None:
        commands = setup_commands(PlotConfig(hardcopy="out.svg"), (5, 4))
        self.assertEqual(commands, ["set terminal svg", 'set output "out.svg"'])

    def test_explicit_terminal(self) -> None:
        self.assertEqual(setup_commands(PlotConfig(terminal="dumb 80 40"), None), ["set terminal dumb 80 40"])

    def test_noraise_only_for_streaming_on_new_gnuplot(self) -> None:
        self.assertEqual(setup_commands(PlotConfig(stream=True), (5, 0)), ["set termoption noraise"])
        self.assertEqual(setup_commands(PlotConfig(stream=True), (4, 6)), [])
        self.assertEqual(setup_commands(PlotConfig(stream=True), None), [])
        self.assertEqual(setup_commands(PlotConfig(), (5, 4)), [])

    def test_circles_need_recent_gnuplot(self) -> None:
        with self.assertRaises(BackendUnavailableError):
            setup_commands(PlotConfig(circles=True), (4, 2))
        self.assertEqual(setup_commands(PlotConfig(circles=True), (4, 4)), [])


class SinkTests(unittest.TestCase):
    def test_stream_sink_leaves_borrowed_stream_open(self) -> None:
        out = io.StringIO()
        sink = StreamSink(out)
        sink.write("set grid\n")
        sink.close()
        sink.close()
        self.assertEqual(out.getvalue(), "set grid\n")
        with self.assertRaises(BackendUnavailableError):
            sink.write("plot\n")

    def test_dump_mode_skips_gnuplot(self) -> None:
        out = io.StringIO()
        sink, version = open_sink(PlotConfig(dump=True), stdout=out, executable="/nonexistent/gnuplot")
        self.assertIsInstance(sink, StreamSink)
        self.assertIsNone(version)

    def test_missing_gnuplot_is_reported(self) -> None:
        sink = GnuplotProcessSink("/nonexistent/feedplot-gnuplot")
        with self.assertRaises(BackendUnavailableError):
            sink.open()
        with self.assertRaises(BackendUnavailableError):
            sink.write("plot\n")
        sink.close()


if __name__ == "__main__":
    unittest.main()
