"""Per-channel readout calibrations and their run-range lookup."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

MAX_CHANNELS = 4
READOUT_MAP = "readout_map"
_N_FIELDS = 15
_PS_TO_S = 1.0e-12


class CalibError(Exception):
    """Raised when calibration tables cannot be found or parsed."""


@dataclass
class CalibChannel:
    """Calibration constants of one readout channel."""

    id: int = 0
    used: int = 0
    n_samples: int = 0
    polarity: int = 0
    min_sample: tuple[int, int] = (0, 0)
    max_sample: tuple[int, int] = (0, 0)
    max_p2p: float = 0.0
    max_thr: float = 0.0
    min_q: float = 0.0
    pulse_int_window: int = 0
    gain: float = 0.0
    min_width: float = 0.0
    sampling_time: float = 0.0  # seconds


@dataclass(frozen=True)
class CalibRunRange:
    """A calibration table valid for an inclusive range of runs."""

    detector: str
    name: str
    first_run: int
    last_run: int
    filename: str

    def contains(self, run_number: int) -> bool:
        return self.first_run <= run_number <= self.last_run


class CalibManager:
    """Registry of calibration tables indexed by detector, table name and run."""

    def __init__(self) -> None:
        self._ranges: list[CalibRunRange] = []

    def add_run_range(self, detector, name, first_run, last_run, filename) -> CalibRunRange:
        if first_run > last_run:
            raise CalibError(f"invalid run range {first_run}-{last_run}")
        run_range = CalibRunRange(detector, name, first_run, last_run, str(filename))
        self._ranges.append(run_range)
        return run_range

    def get_run_range(self, detector, name, run_number) -> CalibRunRange | None:
        return next(
            (
                r
                for r in self._ranges
                if r.detector == detector and r.name == name and r.contains(run_number)
            ),
            None,
        )


def _c_int(token: str) -> int:
    """Parse an integer the way scanf's %i does (decimal, 0x hex, leading-0 octal)."""
    sign = -1 if token.startswith("-") else 1
    body = token.lstrip("+-")
    if body.lower().startswith("0x"):
        return sign * int(body[2:], 16)
    if len(body) > 1 and body.startswith("0"):
        return sign * int(body[1:], 8)
    return sign * int(body, 10)


def _channel_from_tokens(tokens: list[str]) -> CalibChannel:
    ints = [_c_int(tokens[i]) for i in (0, 1, 2, 3, 4, 5, 6, 7, 11)]
    floats = [float(tokens[i]) for i in (8, 9, 10, 12, 13, 14)]
    ich, used, ns, polarity, min_s0, max_s0, min_s1, max_s1, win = ints
    max_p2p, max_thr, min_q, gain, min_width, sampling_time = floats
    return CalibChannel(
        id=ich,
        used=used,
        n_samples=ns,
        polarity=polarity,
        min_sample=(min_s0, min_s1),
        max_sample=(max_s0, max_s1),
        max_p2p=max_p2p,
        max_thr=max_thr,
        min_q=min_q,
        pulse_int_window=win,
        gain=gain,
        min_width=min_width,
        sampling_time=sampling_time * _PS_TO_S,
    )


def parse_readout_map(lines: Iterable[str]) -> list[CalibChannel]:
    """Parse readout-map lines; '#' lines are comments, sampling time is given in ps."""
    channels: list[CalibChannel] = []
    for lineno, line in enumerate(lines, start=1):
        if line.startswith("#") or not line.strip():
            continue
        tokens = line.split()
        if len(tokens) < _N_FIELDS:
            raise CalibError(
                f"line {lineno}: expected {_N_FIELDS} fields, got {len(tokens)}"
            )
        try:
            channel = _channel_from_tokens(tokens)
        except ValueError as exc:
            raise CalibError(f"line {lineno}: {exc}") from exc
        if len(channels) >= MAX_CHANNELS:
            raise CalibError(f"more than {MAX_CHANNELS} channels in readout map")
        channels.append(channel)
    return channels


@dataclass
class CalibData:
    """Calibration data of a GaAs readout for the current run range."""

    n_channels: int = MAX_CHANNELS
    channels: list[CalibChannel] = field(
        default_factory=lambda: [CalibChannel() for _ in range(MAX_CHANNELS)]
    )
    run_range: CalibRunRange | None = None

    def init(self, run_number: int, manager: CalibManager) -> None:
        """Load all calibrations needed for the given run."""
        self.init_readout_map(run_number, manager)

    def init_readout_map(self, run_number: int, manager: CalibManager) -> None:
        """Load the readout map, unless the run falls in the already loaded range."""
        run_range = manager.get_run_range("gaas", READOUT_MAP, run_number)
        if run_range is None:
            raise CalibError(
                f"missing Gaas {READOUT_MAP} table for run number {run_number:8d}"
            )
        if self.run_range is run_range:
            return
        self.run_range = run_range
        try:
            with Path(run_range.filename).open("r") as f:
                channels = parse_readout_map(f)
        except OSError as exc:
            raise CalibError(f"missing file {run_range.filename}") from exc
        self.channels = channels
        self.n_channels = len(channels)

    def clear(self) -> None:
        """Forget the loaded run range so the next init reads the table again."""
        self.run_range = None