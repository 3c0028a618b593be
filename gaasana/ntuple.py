"""Convert directories of scope CSV dumps into per-event waveform tables."""

from __future__ import annotations

import argparse
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Sequence

import numpy as np

SINGLE_HEADER_LINES = 5
SINGLE_SAMPLES = 502
SINGLE_BASELINE = (0, 200)
SINGLE_PEAK = (201, 502)
SINGLE_OUTPUT = "aaa.npz"

MULTI_COLUMNS = 14
MULTI_MAX_SAMPLES = 20000
MULTI_BASELINE = (3000, 4200)
MULTI_PEAK = (4000, 5500)


@dataclass
class WaveformEvent:
    """One digitized waveform with its baseline and pulse height."""

    run: int = -1
    evt: int = -1
    nsd: int = 0
    bl: float = 0.0
    sig_bl: float = 0.0
    ns: int = 0
    time: list[float] = field(default_factory=list)
    adc: list[float] = field(default_factory=list)
    ph: float = 0.0  # pulse height
    ms: int = -1  # sample of the pulse maximum


def read_lines(path) -> list[str]:
    """Return the lines of a text file without line terminators."""
    with open(path, "r") as f:
        return [line.rstrip("\r\n") for line in f]


def _check_range(adc: Sequence[float], first: int, last: int) -> None:
    if first < 0 or last > len(adc):
        raise ValueError(f"sample range {first}..{last} outside 0..{len(adc)}")


def baseline(adc: Sequence[float], first: int, last: int) -> tuple[float, float]:
    """Mean and RMS of the samples in [first, last)."""
    _check_range(adc, first, last)
    window = adc[first:last]
    if not window:
        raise ValueError("empty baseline range")
    n = len(window)
    mean = sum(window) / n
    mean2 = sum(y * y for y in window) / n
    return mean, math.sqrt(max(mean2 - mean * mean, 0.0))


def pulse_height(
    adc: Sequence[float], bl: float, first: int, last: int
) -> tuple[float, int]:
    """Largest negative excursion below the baseline in [first, last) and its sample."""
    _check_range(adc, first, last)
    ph, ms = -1e6, -1
    for i in range(first, last):
        dy = bl - adc[i]
        if dy > ph:
            ph, ms = dy, i
    return ph, ms


def _parse_fields(line: str, count: int) -> list[float]:
    parts = line.split(",")
    if len(parts) < count:
        raise ValueError(f"expected {count} comma-separated values in {line!r}")
    return [float(p) for p in parts[:count]]


def _regular_files(directory) -> list[Path]:
    return sorted(p for p in Path(directory).iterdir() if p.is_file())


def _readable_files(directory) -> Iterator[tuple[Path, list[str]]]:
    for path in _regular_files(directory):
        try:
            lines = read_lines(path)
        except OSError:
            continue
        yield path, lines


def _make_event(run, evt, time, adc, baseline_range, peak_range) -> WaveformEvent:
    bl, sig = baseline(adc, *baseline_range)
    ph, ms = pulse_height(adc, bl, *peak_range)
    return WaveformEvent(
        run=run, evt=evt, ns=len(adc), time=list(time), adc=list(adc),
        bl=bl, sig_bl=sig, ph=ph, ms=ms,
    )


def events_from_single_channel_dir(directory) -> Iterator[WaveformEvent]:
    """One event per file: a 5-line header followed by 'time,amplitude' lines."""
    for evt, (path, lines) in enumerate(_readable_files(directory), start=1):
        samples = lines[SINGLE_HEADER_LINES:]
        if len(samples) < SINGLE_SAMPLES:
            raise ValueError(
                f"{path}: expected {SINGLE_SAMPLES} samples, got {len(samples)}"
            )
        rows = [_parse_fields(line, 2) for line in samples[:SINGLE_SAMPLES]]
        time = [r[0] for r in rows]
        adc = [r[1] for r in rows]
        yield _make_event(1, evt, time, adc, SINGLE_BASELINE, SINGLE_PEAK)


def events_from_multi_channel_dir(directory, run_number: int) -> Iterator[WaveformEvent]:
    """Fourteen events per file: each line holds a time and fourteen amplitudes."""
    evt = 0
    for path, lines in _readable_files(directory):
        rows = [_parse_fields(line, MULTI_COLUMNS + 1) for line in lines]
        if len(rows) > MULTI_MAX_SAMPLES:
            raise ValueError(f"{path}: more than {MULTI_MAX_SAMPLES} samples")
        if len(rows) < MULTI_PEAK[1]:
            raise ValueError(f"{path}: expected at least {MULTI_PEAK[1]} samples")
        time = [r[0] for r in rows]
        for column in range(1, MULTI_COLUMNS + 1):
            evt += 1
            adc = [r[column] for r in rows]
            yield _make_event(run_number, evt, time, adc, MULTI_BASELINE, MULTI_PEAK)


def output_filename(run_number: int) -> str:
    return f"gaasqd.{run_number:06d}.npz"


def write_events(events: Iterable[WaveformEvent], path) -> int:
    """Store events as compressed numpy arrays; waveforms are zero-padded. Returns the count."""
    events = list(events)
    width = max((e.ns for e in events), default=0)
    time = np.zeros((len(events), width), np.float32)
    adc = np.zeros((len(events), width), np.float32)
    for row, event in enumerate(events):
        time[row, : event.ns] = event.time[: event.ns]
        adc[row, : event.ns] = event.adc[: event.ns]
    with open(path, "wb") as f:
        np.savez_compressed(
            f,
            run=np.array([e.run for e in events], np.int32),
            evt=np.array([e.evt for e in events], np.int32),
            nsd=np.array([e.nsd for e in events], np.int32),
            bl=np.array([e.bl for e in events], np.float32),
            sig_bl=np.array([e.sig_bl for e in events], np.float32),
            ns=np.array([e.ns for e in events], np.int32),
            ph=np.array([e.ph for e in events], np.float32),
            ms=np.array([e.ms for e in events], np.int32),
            time=time,
            adc=adc,
        )
    return len(events)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="gaasana-ntuple", description="Convert scope CSV files into an event table."
    )
    parser.add_argument("directory", help="directory with one CSV file per frame")
    parser.add_argument(
        "--run", type=int, default=None,
        help="run number; selects the fourteen-column multi-channel format",
    )
    parser.add_argument("-o", "--output", default=None, help="output file")
    args = parser.parse_args(argv)

    if args.run is None:
        events = events_from_single_channel_dir(args.directory)
        output = args.output or SINGLE_OUTPUT
    else:
        events = events_from_multi_channel_dir(args.directory, args.run)
        output = args.output or output_filename(args.run)
    try:
        write_events(events, output)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0