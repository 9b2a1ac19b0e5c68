from __future__ import annotations

import logging

from feedplot.backend import GnuplotVersion, ProtocolSink, setup_commands
from feedplot.bridge import RendererBridge
from feedplot.config import PlotConfig
from feedplot.parser import ParsedRecord, RecordParser
from feedplot.registry import CurveRegistry, Point
from feedplot.window import WindowManager

LOGGER = logging.getLogger(__name__)


class PlotSession:
    """Curve state plus the pending-redraw bookkeeping.

    Owned by a single consumer: the caller in batch mode, the coordinator's
    consumer loop in streaming mode. Nothing here is locked.
    """

    def __init__(
        self,
        config: PlotConfig,
        sink: ProtocolSink,
        *,
        version: GnuplotVersion | None = None,
    ) -> None:
        self.config = config
        self.registry = CurveRegistry.from_config(config)
        self.parser = RecordParser(config)
        self.window = WindowManager(xlen=config.xlen, monotonic=config.monotonic)
        self.bridge = RendererBridge(config, sink)
        self._sink = sink
        self._version = version
        self.has_new_data = False
        self.latest_domain: float | None = None
        self.reset_count = 0
        self.redraw_count = 0

    def start(self) -> None:
        self.bridge.send(setup_commands(self.config, self._version) + self.bridge.preamble(self.registry))

    def apply_line(self, line: str, position: int) -> ParsedRecord | None:
        record = self.parser.parse(line, position)
        if record is not None:
            self.apply_record(record)
        return record

    def apply_record(self, record: ParsedRecord) -> None:
        if self.window.went_backward(record.domain_value, self.latest_domain):
            LOGGER.info(
                "domain went backward (%s after %s); resetting all curves",
                record.domain[0],
                self.latest_domain,
            )
            if self.config.stream:
                self.redraw()
            self.registry.clear_all()
            self.reset_count += 1

        for curve_id in record.curve_ids:
            self.registry.get_or_create(curve_id)
        for curve_id, values in record.groups:
            self.registry.append(
                curve_id,
                Point(domain=record.domain, values=values, domain_value=record.domain_value),
            )
        self.latest_domain = record.domain_value
        self.has_new_data = True

    def clear(self) -> None:
        LOGGER.debug("clearing %d curves", len(self.registry))
        self.registry.clear_all()

    def redraw(self, *, force: bool = False) -> str | None:
        """Prune and emit if anything arrived since the last redraw.

        Returns the emitted protocol text, or None when the redraw was skipped.
        """
        if not self.has_new_data and not force:
            return None
        range_hint = None
        if self.window.enabled and self.latest_domain is not None:
            self.window.prune_all(self.registry, self.latest_domain)
            range_hint = self.window.range_hint(self.latest_domain)
        text = self.bridge.emit(self.registry, range_hint)
        self.has_new_data = False
        self.redraw_count += 1
        return text

    def close(self) -> None:
        self._sink.close()
