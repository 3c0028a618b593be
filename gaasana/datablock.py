"""Oscilloscope waveform data block with versioned binary streaming.

Wire format (big-endian): u16 version; int32 n_channels, n_samples,
trigger_sample and the spare ints; float32 sample_time, trigger_time and the
spare floats; the time vector as int32 length followed by float32 values;
the waveform matrix as int32 rows, int32 columns and float32 values in row
order; from version 2 on, the channel IDs as int32 length and int32 values.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

import numpy as np

CURRENT_VERSION = 2
N_FREE_INTS = 5
N_FREE_FLOATS = 5
MAX_CHANNELS = 4
MAX_SAMPLES = 5000
_VALUES_PER_LINE = 20

_INTS_FMT = f">{3 + N_FREE_INTS}i"
_FLOATS_FMT = f">{2 + N_FREE_FLOATS}f"


class SerializationError(Exception):
    """Raised when a data block cannot be decoded."""


@dataclass
class ScopeEvent:
    """One raw oscilloscope frame as read from the scope output files."""

    version: int = 0  # 0: Tektronix, 1: Agilent
    event_number: int = 0
    subrun_number: int = 0
    run_number: int = 0
    mc_flag: int = 0
    good_run: int = 0
    br_code: int = 0
    good_trig: int = 0
    trig_word: int = 0
    cpu: int = 0
    stn_version: str = ""
    n_channels: int = 0
    n_samples: int = 0
    trigger_sample: int = 0
    channel_id: list[int] = field(default_factory=lambda: [0] * MAX_CHANNELS)
    sample_time: float = 0.0
    trigger_time: float = 0.0
    run_start_time: str = ""
    run_end_time: str = ""
    usec: int = 0
    epoch: int = 0
    psec: int = 0
    delta_t: float = 0.0
    t: np.ndarray = field(default_factory=lambda: np.zeros(MAX_SAMPLES, np.float32))
    v: np.ndarray = field(
        default_factory=lambda: np.zeros((MAX_CHANNELS, MAX_SAMPLES), np.float32)
    )
    v_slp: list[float] = field(default_factory=lambda: [0.0] * MAX_CHANNELS)
    v_off: list[float] = field(default_factory=lambda: [0.0] * MAX_CHANNELS)
    v_off2: list[float] = field(default_factory=lambda: [0.0] * MAX_CHANNELS)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if n < 0 or end > len(self._data):
            raise SerializationError("truncated data block")
        chunk = bytes(self._data[self._pos:end])
        self._pos = end
        return chunk

    def unpack(self, fmt: str) -> tuple:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))

    def array(self, dtype: str, count: int) -> np.ndarray:
        if count < 0:
            raise SerializationError(f"negative array length {count}")
        item = np.dtype(dtype)
        return np.frombuffer(self.take(count * item.itemsize), dtype=item)

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise SerializationError("trailing bytes after data block")


def _chunks(values: list[float]) -> list[list[float]]:
    return [values[i:i + _VALUES_PER_LINE] for i in range(0, len(values), _VALUES_PER_LINE)]


def _format_rows(values: list[float]) -> list[str]:
    return ["".join(" %7.3f" % x for x in row) for row in _chunks(values)]


@dataclass(eq=False)
class DataBlock:
    """Waveforms of all scope channels of one event."""

    n_channels: int = -1
    n_samples: int = -1
    trigger_sample: int = -1
    ints: list[int] = field(default_factory=lambda: [0] * N_FREE_INTS)
    sample_time: float = -1.0  # seconds
    trigger_time: float = -1.0
    floats: list[float] = field(default_factory=lambda: [0.0] * N_FREE_FLOATS)
    t: np.ndarray = field(default_factory=lambda: np.zeros(0, np.float32))
    v: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), np.float32))
    channel_id: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))

    def clear(self) -> None:
        """Reset the event content; the number of channels is kept."""
        self.n_samples = 0
        self.trigger_sample = 0
        self.ints = [0] * N_FREE_INTS
        self.sample_time = 0.0
        self.trigger_time = 0.0
        self.floats = [0.0] * N_FREE_FLOATS
        self.t = np.zeros(0, np.float32)
        self.v = np.zeros((0, 0), np.float32)
        self.channel_id = np.zeros(len(self.channel_id), np.int32)

    def format(self) -> str:
        """Return the printable dump: summary, sample times (ns) and waveforms (mV)."""
        n = max(self.n_samples, 0)
        lines = [
            "   ns      stns    nCh    trigS  ttns ",
            " ---------------------------- ",
            " %4d %12.5f %3d %4d %12.5f"
            % (
                self.n_samples,
                self.sample_time * 1e9,
                self.n_channels,
                self.trigger_sample,
                self.trigger_time * 1e9,
            ),
            "------ times: ",
        ]
        lines += _format_rows([float(x) * 1e9 for x in self.t[:n]])
        for ich in range(max(self.n_channels, 0)):
            lines.append(f"------ waveform in channel ID = {int(self.channel_id[ich])}: ")
            lines += _format_rows([float(x) * 1e3 for x in self.v[ich, :n]])
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.format()

    def to_bytes(self) -> bytes:
        """Serialize as the current version."""
        if len(self.ints) != N_FREE_INTS or len(self.floats) != N_FREE_FLOATS:
            raise SerializationError("wrong number of spare ints or floats")
        t = np.asarray(self.t, dtype=np.float32)
        v = np.atleast_2d(np.asarray(self.v, dtype=np.float32))
        if v.ndim != 2:
            raise SerializationError("waveform matrix must be two-dimensional")
        ids = np.asarray(self.channel_id, dtype=np.int32)
        return b"".join(
            [
                struct.pack(">H", CURRENT_VERSION),
                struct.pack(_INTS_FMT, self.n_channels, self.n_samples, self.trigger_sample, *self.ints),
                struct.pack(_FLOATS_FMT, self.sample_time, self.trigger_time, *self.floats),
                struct.pack(">i", t.size),
                t.astype(">f4").tobytes(),
                struct.pack(">ii", *v.shape),
                v.astype(">f4").tobytes(),
                struct.pack(">i", ids.size),
                ids.astype(">i4").tobytes(),
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DataBlock":
        """Deserialize; version 1 carries no channel IDs, which are then 0, 1, 2, ..."""
        reader = _Reader(data)
        (version,) = reader.unpack(">H")
        n_channels, n_samples, trigger_sample, *ints = reader.unpack(_INTS_FMT)
        sample_time, trigger_time, *floats = reader.unpack(_FLOATS_FMT)
        (nt,) = reader.unpack(">i")
        t = reader.array(">f4", nt).astype(np.float32)
        rows, cols = reader.unpack(">ii")
        if rows < 0 or cols < 0:
            raise SerializationError(f"invalid matrix shape {rows}x{cols}")
        v = reader.array(">f4", rows * cols).astype(np.float32).reshape(rows, cols)
        if version == 1:
            channel_id = np.arange(max(n_channels, 0), dtype=np.int32)
        else:
            (nid,) = reader.unpack(">i")
            channel_id = reader.array(">i4", nid).astype(np.int32)
        reader.finish()
        return cls(
            n_channels=n_channels,
            n_samples=n_samples,
            trigger_sample=trigger_sample,
            ints=list(ints),
            sample_time=sample_time,
            trigger_time=trigger_time,
            floats=list(floats),
            t=t,
            v=v,
            channel_id=channel_id,
        )

    @classmethod
    def from_scope_event(cls, event: ScopeEvent) -> "DataBlock":
        """Build a data block from the used part of a raw scope frame."""
        nch, ns = event.n_channels, event.n_samples
        if not 0 <= nch <= MAX_CHANNELS:
            raise ValueError(f"number of channels {nch} outside 0..{MAX_CHANNELS}")
        if not 0 <= ns <= MAX_SAMPLES:
            raise ValueError(f"number of samples {ns} outside 0..{MAX_SAMPLES}")
        return cls(
            n_channels=nch,
            n_samples=ns,
            trigger_sample=event.trigger_sample,
            sample_time=event.sample_time,
            trigger_time=event.trigger_time,
            t=np.array(event.t[:ns], dtype=np.float32),
            v=np.array(np.asarray(event.v)[:nch, :ns], dtype=np.float32),
            channel_id=np.array(event.channel_id[:nch], dtype=np.int32),
        )