from __future__ import annotations

import logging
from pathlib import Path
import re
import subprocess
from typing import Callable, Protocol, TextIO

from feedplot.config import PlotConfig
from feedplot.errors import BackendUnavailableError, PlotConfigError
from feedplot.registry import quote_string

LOGGER = logging.getLogger(__name__)

GnuplotVersion = tuple[int, int]

DEFAULT_GNUPLOT = "gnuplot"
NORAISE_MIN_VERSION: GnuplotVersion = (5, 0)
CIRCLES_MIN_VERSION: GnuplotVersion = (4, 4)

HARDCOPY_TERMINALS = {
    ".png": "pngcairo",
    ".pdf": "pdfcairo",
    ".svg": "svg",
    ".eps": "postscript eps color",
    ".ps": "postscript color",
    ".txt": "dumb",
}

_VERSION_RE = re.compile(r"gnuplot\s+(\d+)\.(\d+)")


class ProtocolSink(Protocol):
    def write(self, text: str) -> None:
        ...

    def flush(self) -> None:
        ...

    def close(self) -> None:
        ...


class StreamSink:
    """Writes protocol text to an already-open text stream (``--dump``)."""

    def __init__(self, stream: TextIO, *, close_stream: bool = False) -> None:
        self._stream = stream
        self._close_stream = close_stream
        self._closed = False

    def write(self, text: str) -> None:
        if self._closed:
            raise BackendUnavailableError("protocol sink is closed")
        self._stream.write(text)

    def flush(self) -> None:
        if not self._closed:
            self._stream.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._stream.flush()
        if self._close_stream:
            self._stream.close()
        self._closed = True


class GnuplotProcessSink:
    """Spawns gnuplot and feeds the protocol to its stdin."""

    def __init__(self, executable: str = DEFAULT_GNUPLOT, *, persist: bool = True) -> None:
        self._command = [executable]
        if persist:
            self._command.append("--persist")
        self._proc: subprocess.Popen[str] | None = None

    def open(self) -> None:
        if self._proc is not None:
            return
        try:
            self._proc = subprocess.Popen(
                self._command,
                stdin=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            raise BackendUnavailableError(f"couldn't start {' '.join(self._command)}: {exc}") from exc
        LOGGER.info("spawned %s (pid %d)", " ".join(self._command), self._proc.pid)

    def write(self, text: str) -> None:
        stdin = self._require_stdin()
        try:
            stdin.write(text)
        except BrokenPipeError as exc:
            raise BackendUnavailableError("gnuplot exited while receiving commands") from exc

    def flush(self) -> None:
        stdin = self._require_stdin()
        try:
            stdin.flush()
        except BrokenPipeError as exc:
            raise BackendUnavailableError("gnuplot exited while receiving commands") from exc

    def close(self) -> None:
        proc = self._proc
        if proc is None:
            return
        self._proc = None
        try:
            if proc.stdin is not None:
                try:
                    proc.stdin.write("exit\n")
                    proc.stdin.close()
                except BrokenPipeError:
                    pass
        finally:
            try:
                proc.wait(timeout=10.0)
            except subprocess.TimeoutExpired:
                LOGGER.warning("gnuplot did not exit; terminating pid %d", proc.pid)
                proc.terminate()

    def _require_stdin(self) -> TextIO:
        if self._proc is None or self._proc.stdin is None:
            raise BackendUnavailableError("gnuplot process is not running")
        return self._proc.stdin


def parse_gnuplot_version(text: str) -> GnuplotVersion:
    match = _VERSION_RE.search(text)
    if match is None:
        raise BackendUnavailableError(f"couldn't parse gnuplot version from {text.strip()!r}")
    return (int(match.group(1)), int(match.group(2)))


def query_gnuplot_version(
    executable: str = DEFAULT_GNUPLOT,
    runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
) -> GnuplotVersion:
    try:
        proc = runner([executable, "--version"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise BackendUnavailableError(f"couldn't run {executable} --version: {exc}") from exc
    version = parse_gnuplot_version(proc.stdout)
    LOGGER.debug("detected gnuplot %d.%d", *version)
    return version


def terminal_for_hardcopy(path: str) -> str:
    suffix = Path(path).suffix.lower()
    terminal = HARDCOPY_TERMINALS.get(suffix)
    if terminal is None:
        raise PlotConfigError(
            f"can't pick a terminal for hardcopy {path!r}; use one of "
            f"{', '.join(sorted(HARDCOPY_TERMINALS))} or pass --terminal"
        )
    return terminal


def setup_commands(config: PlotConfig, version: GnuplotVersion | None) -> list[str]:
    """Backend-specific directives sent before the plot preamble."""
    if config.circles and version is not None and version < CIRCLES_MIN_VERSION:
        raise BackendUnavailableError(
            f"--circles needs gnuplot >= {CIRCLES_MIN_VERSION[0]}.{CIRCLES_MIN_VERSION[1]}"
        )
    out: list[str] = []
    if config.hardcopy is not None:
        out.append(f"set terminal {terminal_for_hardcopy(config.hardcopy)}")
        out.append(f"set output {quote_string(config.hardcopy)}")
    elif config.terminal is not None:
        out.append(f"set terminal {config.terminal}")
    if config.stream and config.hardcopy is None and version is not None and version >= NORAISE_MIN_VERSION:
        # Periodic replots would otherwise steal focus on every redraw.
        out.append("set termoption noraise")
    return out


def open_sink(
    config: PlotConfig,
    *,
    stdout: TextIO,
    executable: str = DEFAULT_GNUPLOT,
) -> tuple[ProtocolSink, GnuplotVersion | None]:
    if config.dump:
        return StreamSink(stdout), None
    version = query_gnuplot_version(executable)
    sink = GnuplotProcessSink(executable, persist=config.persist and config.hardcopy is None)
    sink.open()
    return sink, version
