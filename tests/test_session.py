from __future__ import annotations

import unittest

from feedplot.config import PlotConfig
from feedplot.errors import CurveLimitError
from feedplot.session import PlotSession
from feedplot.streaming import run_batch


class _RecordingSink:
    def __init__(self) -> None:
        self.writes: list[str] = []
        self.closed = False

    def write(self, text: str) -> None:
        self.writes.append(text)

    def flush(self) -> None:
        return

    def close(self) -> None:
        self.closed = True


def _rows(session: PlotSession, curve_id: str = "0") -> list[str]:
    return [p.row() for p in session.registry.get_or_create(curve_id).points]


class PlotSessionTests(unittest.TestCase):
    def test_batch_draws_once_at_end(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(domain=True), sink)
        run_batch(session, ["1 5\n", "2 7\n", "3 2\n"])
        self.assertEqual(sink.writes, ["plot '-' notitle\n1 5\n2 7\n3 2\ne\n"])
        self.assertNotIn("xrange", sink.writes[0])

    def test_batch_implicit_domain_counts_every_input_line(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(), sink)
        run_batch(session, ["# header\n", "5\n", "garbage\n", "7\n"])
        self.assertEqual(_rows(session), ["2 5", "4 7"])

    def test_start_sends_setup_and_preamble(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(stream=True, title="t"), sink, version=(5, 4))
        session.start()
        self.assertEqual(sink.writes, ['set termoption noraise\nset grid\nset title "t"\n'])

    def test_monotonic_reset_happens_once_before_backward_point(self) -> None:
        session = PlotSession(PlotConfig(domain=True, monotonic=True), _RecordingSink())
        session.apply_line("1 10 100", 1)
        session.apply_line("2 20 200", 2)
        session.apply_line("3 30 300", 3)
        self.assertEqual(session.reset_count, 0)
        session.apply_line("1 40 400", 4)
        self.assertEqual(session.reset_count, 1)
        self.assertEqual(_rows(session, "0"), ["1 40"])
        self.assertEqual(_rows(session, "1"), ["1 400"])
        session.apply_line("5 50 500", 5)
        self.assertEqual(session.reset_count, 1)
        self.assertEqual(_rows(session, "0"), ["1 40", "5 50"])

    def test_backward_domain_without_monotonic_mode_keeps_history(self) -> None:
        session = PlotSession(PlotConfig(domain=True), _RecordingSink())
        for i, x in enumerate((1, 2, 3, 1, 5), start=1):
            session.apply_line(f"{x} {i}", i)
        self.assertEqual(session.reset_count, 0)
        self.assertEqual(len(session.registry.get_or_create("0")), 5)

    def test_streaming_reset_draws_old_sweep_before_wiping(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(domain=True, monotonic=True, stream=True), sink)
        session.apply_line("1 1", 1)
        session.apply_line("2 2", 2)
        session.apply_line("0 3", 3)
        self.assertEqual(sink.writes, ["plot '-' notitle\n1 1\n2 2\ne\n"])
        self.assertEqual(_rows(session), ["0 3"])
        self.assertTrue(session.has_new_data)

    def test_curve_limit_aborts_without_drawing(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(max_curves=2), sink)
        with self.assertRaises(CurveLimitError):
            run_batch(session, ["1 2 3\n"])
        self.assertEqual(sink.writes, [])
        self.assertEqual(session.registry.ids(), ["0", "1"])

    def test_redraw_is_skipped_without_new_data(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(domain=True, stream=True, stream_period=0), sink)
        session.apply_line("1 5", 1)
        self.assertIsNotNone(session.redraw())
        self.assertIsNone(session.redraw())
        self.assertEqual(session.redraw(force=True), sink.writes[0])
        self.assertEqual(len(sink.writes), 2)

    def test_window_prunes_and_sets_range_on_redraw(self) -> None:
        sink = _RecordingSink()
        session = PlotSession(PlotConfig(domain=True, stream=True, stream_period=0, xlen=2), sink)
        for x in range(1, 6):
            session.apply_line(f"{x} {x * 10}", x)
        text = session.redraw()
        self.assertEqual(text, "set xrange [3:5]\nplot '-' notitle\n3 30\n4 40\n5 50\ne\n")

    def test_window_bound_follows_latest_not_maximum(self) -> None:
        session = PlotSession(PlotConfig(domain=True, stream=True, stream_period=0, xlen=2), _RecordingSink())
        for i, x in enumerate((1, 10, 4), start=1):
            session.apply_line(f"{x} {i}", i)
        text = session.redraw()
        assert text is not None
        self.assertTrue(text.startswith("set xrange [2:4]\n"))
        self.assertEqual(_rows(session), ["10 2", "4 3"])

    def test_clear_keeps_curves(self) -> None:
        session = PlotSession(PlotConfig(domain=True, stream=True), _RecordingSink())
        session.apply_line("1 5 6", 1)
        session.clear()
        self.assertEqual(session.registry.ids(), ["0", "1"])
        self.assertEqual(session.registry.non_empty(), [])

    def test_close_closes_sink(self) -> None:
        sink = _RecordingSink()
        PlotSession(PlotConfig(), sink).close()
        self.assertTrue(sink.closed)


if __name__ == "__main__":
    unittest.main()
