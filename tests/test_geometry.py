import pytest

from gaasana.geometry import (
    Box,
    Detector,
    DetectorType,
    GeometryManager,
    Medium,
    Mixture,
    QuickSimConfig,
    TrajectoryPoint,
    init_n1816,
    init_suny,
    validate_suny,
)


def _build_test_geometry():
    gm = GeometryManager("emoe", "emoe")
    air = Mixture("air", 4, 0.00120479)
    air.add_element(gm.find_element("C"), 0.000124)
    air.add_element(gm.find_element("N"), 0.755268)
    air.add_element(gm.find_element("O"), 0.231781)
    air.add_element(gm.find_element("AR"), 0.012827)
    med = Medium("AIR", 1, air)
    top = gm.make_box("TOP", med, 1, 1, 1)
    gm.set_top_volume(top)

    gaas = Mixture("gaas", 2, 5.32)
    gaas.add_element(gm.find_element("GA"), 1)
    gaas.add_element(gm.find_element("AS"), 1)
    m_gaas = Medium("GAAS", 2, gaas)
    dx, dy, dz = 0.2500, 0.0350, 0.00125
    sensor = gm.make_box("Sensor", m_gaas, dx, dy, dz)
    sensor.transparency = 50
    top.add_node(sensor, 1, (0.0, 0.0, 0.0))

    ingaas = Mixture("ingaas", 3, 5.32)
    ingaas.add_element(gm.find_element("In"), 0.05)
    ingaas.add_element(gm.find_element("GA"), 0.45)
    ingaas.add_element(gm.find_element("AS"), 0.50)
    m_ingaas = Medium("INGAAS", 3, ingaas)
    dx_d, dy_d, dz_d = 0.0050, 0.0250, 0.00005
    diode = gm.make_box("Diode", m_ingaas, dx_d, dy_d, dz_d)
    diode.transparency = 50
    node = top.add_node(diode, 2, (-0.200, 0.0, dz_d + dz))
    gm.close_geometry()
    gm.close_geometry()
    return gm, top, node, air, ingaas


def test_detector_geometry():
    gm, top, node, air, ingaas = _build_test_geometry()
    assert gm.closed
    assert gm.top is top
    assert [v.name for v in gm.volumes] == ["TOP", "Sensor", "Diode"]
    assert [n.copy_number for n in top.nodes] == [1, 2]
    assert node.translation == pytest.approx((-0.2, 0.0, 0.00005 + 0.00125))
    assert top.contains(node.translation)
    assert sum(air.fractions.values()) == pytest.approx(1.0)
    assert ingaas.fractions["In"] == pytest.approx(0.05)


def test_find_element_is_case_insensitive():
    gm = GeometryManager()
    assert gm.find_element("GA").symbol == "Ga"
    assert gm.find_element("In").z == 49
    with pytest.raises(KeyError):
        gm.find_element("Xx")


def test_mixture_limits():
    gm = GeometryManager()
    m = Mixture("gaas", 2, 5.32)
    m.add_element(gm.find_element("GA"), 1)
    m.add_element(gm.find_element("AS"), 1)
    with pytest.raises(ValueError):
        m.add_element(gm.find_element("In"), 1)
    with pytest.raises(ValueError):
        Mixture("x", 1, 1.0).add_element(gm.find_element("C"), 0)


def test_box_errors():
    gm = GeometryManager()
    med = Medium("AIR", 1, Mixture("air", 1, 0.0012))
    with pytest.raises(ValueError):
        gm.make_box("bad", med, 0.0, 1.0, 1.0)
    box = Box("b", med, 1.0, 1.0, 1.0)
    with pytest.raises(ValueError):
        box.add_node(box, 1, (0, 0, 0))


def test_close_without_top_volume():
    with pytest.raises(RuntimeError):
        GeometryManager().close_geometry()


def test_trajectory_point_round_trip():
    p = TrajectoryPoint()
    values = (1.0, 2.0, 3.0, 0.0, 0.6, 0.8, 5.0, 7.0)
    p.set_point(values)
    assert p.get_point() == values
    assert (p.x, p.ny, p.s, p.p_total) == (1.0, 0.6, 7.0, 5.0)
    p.clear()
    assert p.get_point() == (0.0,) * 8
    with pytest.raises(ValueError):
        p.set_point([1.0, 2.0])


def test_init_n1816():
    qs = init_n1816()
    assert (qs.sensor_dx, qs.sensor_dy, qs.sensor_dz) == (0.2500, 0.0350, 0.00125)
    assert qs.detectors[0].type is DetectorType.PHOTODIODE
    assert qs.detectors[0].side == 5
    assert qs.geometry.closed
    node = qs.geometry.top.nodes[1]
    assert node.translation[0] == pytest.approx(-0.2)
    assert node.translation[2] == pytest.approx(0.00125 + 0.0020)


def test_init_suny():
    qs = init_suny()
    assert qs.pos_mode == 1
    assert qs.detectors[0].type is DetectorType.FIBER
    node = qs.geometry.top.nodes[1]
    assert node.translation[0] == pytest.approx(-(0.400 + 0.0020))


def test_validate_suny():
    qs = validate_suny(2)
    assert qs.debug_level == 2
    assert qs.refl_prob == 1
    assert qs.n_ph_mean == -100
    assert qs.abs_length == -1
    assert qs.detectors[0].dy == qs.sensor_dy
    assert qs.detectors[0].dz == qs.sensor_dz


def test_init_geometry_rejects_bad_input():
    qs = QuickSimConfig()
    with pytest.raises(ValueError):
        qs.init_geometry((0.1, 0.1), [])
    with pytest.raises(ValueError):
        qs.init_geometry((0.1, 0.1, 0.1), [Detector(dx=0.01, dy=0.01, dz=0.01, side=6)])
    with pytest.raises(ValueError):
        qs.init_geometry((0.1, 0.1, 0.1), [Detector(dx=0.01, dy=0.01, dz=0.01)] * 101)