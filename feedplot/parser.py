from __future__ import annotations

from dataclasses import dataclass
import enum
import logging
import re

from feedplot.config import PlotConfig

LOGGER = logging.getLogger(__name__)

NUMBER_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


class LineKind(enum.Enum):
    COMMENT = "comment"
    CLEAR = "clear"
    REDRAW = "replot"
    EXIT = "exit"
    DATA = "data"


_CONTROL_WORDS = {
    "clear": LineKind.CLEAR,
    "replot": LineKind.REDRAW,
    "exit": LineKind.EXIT,
}


@dataclass(frozen=True)
class ParsedRecord:
    domain: tuple[str, ...]
    domain_value: float
    groups: tuple[tuple[str, tuple[str, ...]], ...]

    @property
    def curve_ids(self) -> tuple[str, ...]:
        return tuple(curve_id for curve_id, _ in self.groups)


@dataclass
class _LineIds:
    """Implicit id assignment state, scoped to a single input line."""

    last_id: int = -1

    def next_implicit(self) -> str:
        self.last_id += 1
        return str(self.last_id)

    def saw_explicit(self, curve_id: str) -> None:
        try:
            self.last_id = int(curve_id)
        except ValueError:
            return


def is_number(token: str) -> bool:
    return NUMBER_RE.fullmatch(token) is not None


class RecordParser:
    def __init__(self, config: PlotConfig) -> None:
        self._config = config
        self._domain_width = config.domain_width
        self._values_per_point = config.values_per_point

    def classify(self, line: str) -> LineKind:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return LineKind.COMMENT
        if self._config.stream:
            kind = _CONTROL_WORDS.get(stripped.split(None, 1)[0])
            if kind is not None:
                return kind
        return LineKind.DATA

    def parse(self, line: str, position: int) -> ParsedRecord | None:
        """Split one data line into its domain and per-curve value groups.

        Returns None when the line does not match the expected layout; the
        whole line is skipped in that case, no partial groups are kept.
        """
        tokens = line.split()
        if self._config.domain:
            domain = tuple(tokens[: self._domain_width])
            if len(domain) < self._domain_width or not all(is_number(t) for t in domain):
                LOGGER.debug("skipping line %d: bad domain in %r", position, line)
                return None
            rest = tokens[self._domain_width :]
        else:
            domain = (str(position),)
            rest = tokens

        groups = self._parse_groups(rest)
        if not groups:
            LOGGER.debug("skipping line %d: no value groups in %r", position, line)
            return None
        return ParsedRecord(domain=domain, domain_value=float(domain[0]), groups=groups)

    def _parse_groups(self, tokens: list[str]) -> tuple[tuple[str, tuple[str, ...]], ...] | None:
        k = self._values_per_point
        ids = _LineIds()
        out: list[tuple[str, tuple[str, ...]]] = []
        i = 0
        while i < len(tokens):
            if self._config.dataid and _all_numeric(tokens[i + 1 : i + 1 + k], k):
                curve_id = tokens[i]
                ids.saw_explicit(curve_id)
                out.append((curve_id, tuple(tokens[i + 1 : i + 1 + k])))
                i += 1 + k
                continue
            if _all_numeric(tokens[i : i + k], k):
                out.append((ids.next_implicit(), tuple(tokens[i : i + k])))
                i += k
                continue
            return None
        return tuple(out)


def _all_numeric(tokens: list[str], expected: int) -> bool:
    return len(tokens) == expected and all(is_number(t) for t in tokens)
