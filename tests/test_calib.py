import pytest

from gaasana.calib import (
    CalibChannel,
    CalibData,
    CalibError,
    CalibManager,
    parse_readout_map,
)

LINE_A = "0 1 1000 -1 0 100 200 300 0.5 1.5 2.5 20 10.0 3.0 200\n"
LINE_B = "1 0 1000 1 5 105 205 305 0.25 0.75 1.25 30 12.0 4.0 400\n"


def _write_map(path, lines):
    path.write_text("".join(lines))
    return path


def test_parse_fields():
    channels = parse_readout_map(["# comment\n", LINE_A, LINE_B])
    assert len(channels) == 2
    a = channels[0]
    assert a.id == 0
    assert a.used == 1
    assert a.n_samples == 1000
    assert a.polarity == -1
    assert a.min_sample == (0, 200)
    assert a.max_sample == (100, 300)
    assert a.max_p2p == 0.5
    assert a.max_thr == 1.5
    assert a.min_q == 2.5
    assert a.pulse_int_window == 20
    assert a.gain == 10.0
    assert a.min_width == 3.0
    assert a.sampling_time == pytest.approx(200e-12)
    assert channels[1].id == 1
    assert channels[1].sampling_time == pytest.approx(400e-12)


def test_parse_skips_comments_only():
    assert parse_readout_map(["# a\n", "#b\n"]) == []


def test_parse_hex_integer():
    line = "0x10 1 1000 -1 0 100 200 300 0.5 1.5 2.5 20 10.0 3.0 200"
    assert parse_readout_map([line])[0].id == 16


def test_parse_too_few_fields():
    with pytest.raises(CalibError):
        parse_readout_map(["0 1 2 3\n"])


def test_parse_too_many_channels():
    with pytest.raises(CalibError):
        parse_readout_map([LINE_A] * 5)


def test_manager_lookup_inclusive():
    manager = CalibManager()
    rr = manager.add_run_range("gaas", "readout_map", 10, 20, "x.txt")
    assert manager.get_run_range("gaas", "readout_map", 10) is rr
    assert manager.get_run_range("gaas", "readout_map", 20) is rr
    assert manager.get_run_range("gaas", "readout_map", 21) is None
    assert manager.get_run_range("other", "readout_map", 15) is None


def test_default_calib_data():
    data = CalibData()
    assert data.n_channels == 4
    assert data.channels == [CalibChannel()] * 4
    assert data.run_range is None


def test_init_reads_file(tmp_path):
    path = _write_map(tmp_path / "map.txt", ["# hdr\n", LINE_A, LINE_B])
    manager = CalibManager()
    manager.add_run_range("gaas", "readout_map", 1, 100, path)
    data = CalibData()
    data.init(50, manager)
    assert data.n_channels == 2
    assert [c.id for c in data.channels] == [0, 1]


def test_same_range_is_not_reread(tmp_path):
    path = _write_map(tmp_path / "map.txt", [LINE_A, LINE_B])
    manager = CalibManager()
    manager.add_run_range("gaas", "readout_map", 1, 100, path)
    data = CalibData()
    data.init(5, manager)
    _write_map(path, [LINE_A])
    data.init(6, manager)
    assert data.n_channels == 2
    data.clear()
    data.init(6, manager)
    assert data.n_channels == 1


def test_missing_range():
    with pytest.raises(CalibError):
        CalibData().init(5, CalibManager())


def test_missing_file(tmp_path):
    manager = CalibManager()
    manager.add_run_range("gaas", "readout_map", 1, 10, tmp_path / "absent.txt")
    with pytest.raises(CalibError):
        CalibData().init_readout_map(3, manager)