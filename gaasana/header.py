"""Event header block of GaAs scope data, with versioned binary streaming."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields

CURRENT_VERSION = 3
_DEFAULT_TIME = "default"


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ValueError("truncated header block")
        chunk = bytes(self._data[self._pos:end])
        self._pos = end
        return chunk

    def unpack(self, fmt: str):
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def string(self) -> str:
        n = self.unpack(">B")
        if n == 255:
            n = self.unpack(">i")
        return self.take(n).decode("utf-8")

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise ValueError("trailing bytes after header block")


def _pack_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    if len(raw) < 255:
        return struct.pack(">B", len(raw)) + raw
    return struct.pack(">Bi", 255, len(raw)) + raw


@dataclass
class HeaderBlock:
    """Run start/end times and the event timestamp of a scope frame."""

    run_start_time: str = ""
    run_end_time: str = ""
    epoch: int = 0  # event time, unix seconds
    usec: int = 0  # milli*1000 and micro seconds
    psec: int = 0  # nano*1000 and pico seconds
    delta_t: float = 0.0  # time since the previous frame

    def clear(self) -> None:
        """Reset all fields to their defaults."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def format(self) -> str:
        return (
            f" Run start time: {self.run_start_time}\n"
            f" Run end   time: {self.run_end_time}\n"
        )

    def to_bytes(self) -> bytes:
        """Serialize as the current version (big-endian)."""
        return b"".join(
            [
                struct.pack(">H", CURRENT_VERSION),
                _pack_string(self.run_start_time),
                _pack_string(self.run_end_time),
                struct.pack(">iiif", self.epoch, self.usec, self.psec, self.delta_t),
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "HeaderBlock":
        """Deserialize any known version; versions 1 and 2 lack newer fields."""
        reader = _Reader(data)
        version = reader.unpack(">H")
        block = cls()
        if version == 1:
            block.run_start_time = _DEFAULT_TIME
            block.run_end_time = _DEFAULT_TIME
        else:
            block.run_start_time = reader.string()
            block.run_end_time = reader.string()
            if version != 2:
                block.epoch = reader.unpack(">i")
                block.usec = reader.unpack(">i")
                block.psec = reader.unpack(">i")
                block.delta_t = reader.unpack(">f")
        reader.finish()
        return block