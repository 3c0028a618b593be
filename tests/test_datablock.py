import numpy as np
import pytest

from gaasana.datablock import DataBlock, ScopeEvent, SerializationError


def _block():
    return DataBlock(
        n_channels=2,
        n_samples=3,
        trigger_sample=1,
        ints=[1, 2, 3, 4, 5],
        sample_time=0.5,
        trigger_time=0.25,
        floats=[0.5, 1.5, 2.5, 3.5, 4.5],
        t=np.array([0.0, 0.5, 1.0], np.float32),
        v=np.array([[1, 2, 3], [4, 5, 6]], np.float32),
        channel_id=np.array([300, 400], np.int32),
    )


def _assert_same(a, b):
    assert a.n_channels == b.n_channels
    assert a.n_samples == b.n_samples
    assert a.trigger_sample == b.trigger_sample
    assert a.ints == b.ints
    assert a.sample_time == b.sample_time
    assert a.trigger_time == b.trigger_time
    assert a.floats == b.floats
    np.testing.assert_array_equal(a.t, b.t)
    np.testing.assert_array_equal(a.v, b.v)
    np.testing.assert_array_equal(a.channel_id, b.channel_id)


def test_defaults():
    block = DataBlock()
    assert block.n_channels == -1
    assert block.n_samples == -1
    assert block.sample_time == -1.0
    assert block.ints == [0] * 5


def test_round_trip():
    block = _block()
    _assert_same(DataBlock.from_bytes(block.to_bytes()), block)


def test_version_prefix():
    assert _block().to_bytes()[:2] == b"\x00\x02"


def test_version_one_assigns_sequential_ids():
    block = _block()
    raw = block.to_bytes()
    tail = 4 + 4 * len(block.channel_id)
    v1 = b"\x00\x01" + raw[2:-tail]
    restored = DataBlock.from_bytes(v1)
    np.testing.assert_array_equal(restored.channel_id, [0, 1])
    np.testing.assert_array_equal(restored.v, block.v)


def test_unknown_version_reads_as_current():
    block = _block()
    raw = b"\x00\x07" + block.to_bytes()[2:]
    _assert_same(DataBlock.from_bytes(raw), block)


def test_truncated_raises():
    raw = _block().to_bytes()
    with pytest.raises(SerializationError):
        DataBlock.from_bytes(raw[:-1])


def test_trailing_raises():
    raw = _block().to_bytes()
    with pytest.raises(SerializationError):
        DataBlock.from_bytes(raw + b"\x00")


def test_clear_keeps_channel_count():
    block = _block()
    block.clear()
    assert block.n_channels == 2
    assert block.n_samples == 0
    assert block.sample_time == 0.0
    assert block.ints == [0] * 5
    assert block.t.size == 0
    np.testing.assert_array_equal(block.channel_id, [0, 0])


def test_format_wraps_twenty_values_per_line():
    block = DataBlock(
        n_channels=1,
        n_samples=25,
        trigger_sample=0,
        sample_time=1e-9,
        trigger_time=0.0,
        t=np.arange(25, dtype=np.float32) * np.float32(1e-9),
        v=np.zeros((1, 25), np.float32),
        channel_id=np.array([400], np.int32),
    )
    lines = block.format().splitlines()
    times = lines.index("------ times: ")
    assert len(lines[times + 1].split()) == 20
    assert len(lines[times + 2].split()) == 5
    assert lines[times + 3] == "------ waveform in channel ID = 400: "


def test_format_header():
    lines = _block().format().splitlines()
    assert lines[0].startswith("   ns      stns")
    assert lines[2].split()[0] == "3"


def test_from_scope_event():
    event = ScopeEvent(n_channels=2, n_samples=4, trigger_sample=2, sample_time=0.5)
    event.t[:4] = [0.0, 1.0, 2.0, 3.0]
    event.v[1, :4] = [4.0, 5.0, 6.0, 7.0]
    event.channel_id = [300, 400, 0, 0]
    block = DataBlock.from_scope_event(event)
    assert block.n_channels == 2
    assert block.v.shape == (2, 4)
    np.testing.assert_array_equal(block.t, event.t[:4])
    np.testing.assert_array_equal(block.v[1], event.v[1, :4])
    np.testing.assert_array_equal(block.channel_id, [300, 400])


def test_from_scope_event_rejects_too_many_channels():
    with pytest.raises(ValueError):
        DataBlock.from_scope_event(ScopeEvent(n_channels=5, n_samples=1))