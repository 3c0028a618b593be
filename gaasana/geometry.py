"""Sensor and detector geometry for the photon quick simulation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Sequence

MAX_DETECTORS = 100
N_SIDES = 6


@dataclass(frozen=True)
class Element:
    """A chemical element."""

    symbol: str
    name: str
    z: int
    a: float  # g/mole


_ELEMENTS = {
    e.symbol.upper(): e
    for e in (
        Element("H", "Hydrogen", 1, 1.008),
        Element("C", "Carbon", 6, 12.011),
        Element("N", "Nitrogen", 7, 14.007),
        Element("O", "Oxygen", 8, 15.999),
        Element("Al", "Aluminium", 13, 26.982),
        Element("Si", "Silicon", 14, 28.085),
        Element("P", "Phosphorus", 15, 30.974),
        Element("Ar", "Argon", 18, 39.948),
        Element("Ga", "Gallium", 31, 69.723),
        Element("As", "Arsenic", 33, 74.922),
        Element("In", "Indium", 49, 114.818),
    )
}


class Mixture:
    """A material made of a fixed number of elements given by weight."""

    def __init__(self, name: str, n_components: int, density: float) -> None:
        if n_components < 1:
            raise ValueError(f"mixture needs at least one component, got {n_components}")
        self.name = name
        self.n_components = n_components
        self.density = density  # g/cm3
        self.components: list[tuple[Element, float]] = []

    def add_element(self, element: Element, weight: float) -> None:
        if len(self.components) >= self.n_components:
            raise ValueError(f"mixture {self.name!r} already has {self.n_components} elements")
        if weight <= 0:
            raise ValueError(f"element weight must be positive, got {weight}")
        self.components.append((element, weight))

    @property
    def fractions(self) -> dict[str, float]:
        """Weight fractions normalized to one."""
        total = sum(w for _, w in self.components)
        return {e.symbol: w / total for e, w in self.components}


@dataclass
class Medium:
    """A tracking medium: a numbered material."""

    name: str
    id: int
    material: Mixture


@dataclass
class Node:
    """A placed copy of a volume inside its mother volume."""

    volume: "Box"
    copy_number: int
    translation: tuple[float, float, float]


class Box:
    """A box volume given by its half-sizes."""

    def __init__(self, name: str, medium: Medium, dx: float, dy: float, dz: float) -> None:
        if min(dx, dy, dz) <= 0:
            raise ValueError(f"box {name!r} needs positive half-sizes")
        self.name = name
        self.medium = medium
        self.dx, self.dy, self.dz = dx, dy, dz
        self.nodes: list[Node] = []
        self.transparency = 0
        self.line_color: int | None = None

    @property
    def half_sizes(self) -> tuple[float, float, float]:
        return (self.dx, self.dy, self.dz)

    def contains(self, point: Sequence[float]) -> bool:
        return all(abs(p) <= h for p, h in zip(point, self.half_sizes))

    def add_node(self, volume: "Box", copy_number: int, translation=(0.0, 0.0, 0.0)) -> Node:
        if volume is self:
            raise ValueError(f"volume {self.name!r} cannot contain itself")
        node = Node(volume, copy_number, tuple(float(c) for c in translation))
        self.nodes.append(node)
        return node


class GeometryManager:
    """Holds elements, volumes and the top volume of a geometry."""

    def __init__(self, name: str = "", title: str = "") -> None:
        self.name = name
        self.title = title
        self.volumes: list[Box] = []
        self.top: Box | None = None
        self.closed = False

    def find_element(self, symbol: str) -> Element:
        try:
            return _ELEMENTS[symbol.upper()]
        except KeyError:
            raise KeyError(f"unknown element {symbol!r}") from None

    def make_box(self, name, medium, dx, dy, dz) -> Box:
        box = Box(name, medium, dx, dy, dz)
        self.volumes.append(box)
        return box

    def set_top_volume(self, volume: Box) -> None:
        self.top = volume

    def close_geometry(self) -> None:
        """Finish the geometry; a top volume must have been set."""
        if self.top is None:
            raise RuntimeError("no top volume set")
        self.closed = True


class DetectorType(IntEnum):
    PHOTODIODE = 0
    FIBER = 1  # fiber with an air gap


@dataclass
class Detector:
    """A light detector attached to one side of the sensor (half-sizes in cm)."""

    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0
    side: int = 0  # X(0,1), Y(2,3), Z(4,5); even: negative face
    offset_x: float = 0.0
    offset_y: float = 0.0
    offset_z: float = 0.0
    type: DetectorType = DetectorType.PHOTODIODE


@dataclass
class TrajectoryPoint:
    """A point on a particle trajectory: position, direction cosines, path and momentum."""

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    direction: tuple[float, float, float] = (0.0, 0.0, 0.0)
    s: float = 0.0
    p_total: float = 0.0

    x = property(lambda self: self.position[0])
    y = property(lambda self: self.position[1])
    z = property(lambda self: self.position[2])
    nx = property(lambda self: self.direction[0])
    ny = property(lambda self: self.direction[1])
    nz = property(lambda self: self.direction[2])

    def get_point(self) -> tuple[float, ...]:
        """Return (x, y, z, nx, ny, nz, p_total, s)."""
        return (*self.position, *self.direction, self.p_total, self.s)

    def set_point(self, point: Sequence[float]) -> None:
        """Set from (x, y, z, nx, ny, nz, p_total, s)."""
        values = [float(v) for v in point]
        if len(values) != 8:
            raise ValueError(f"a trajectory point has 8 values, got {len(values)}")
        self.position = tuple(values[0:3])
        self.direction = tuple(values[3:6])
        self.p_total = values[6]
        self.s = values[7]

    def clear(self) -> None:
        self.position = (0.0, 0.0, 0.0)
        self.direction = (0.0, 0.0, 0.0)
        self.s = 0.0
        self.p_total = 0.0


def _make_media(gm: GeometryManager) -> tuple[Medium, Medium, Medium]:
    air = Mixture("air", 4, 0.00120479)
    for symbol, w in (("C", 0.000124), ("N", 0.755268), ("O", 0.231781), ("AR", 0.012827)):
        air.add_element(gm.find_element(symbol), w)
    gaas = Mixture("gaas", 2, 5.32)
    gaas.add_element(gm.find_element("GA"), 1)
    gaas.add_element(gm.find_element("AS"), 1)
    ingaas = Mixture("ingaas", 3, 5.32)
    for symbol, w in (("In", 0.05), ("GA", 0.45), ("AS", 0.50)):
        ingaas.add_element(gm.find_element(symbol), w)
    return Medium("AIR", 1, air), Medium("GAAS", 2, gaas), Medium("INGAAS", 3, ingaas)


def _detector_position(sensor: Sequence[float], det: Detector) -> tuple[float, float, float]:
    """Place the detector flush against its sensor face; offsets move it within the face."""
    axis, negative = divmod(det.side, 2)[0], det.side % 2 == 0
    half = (det.dx, det.dy, det.dz)
    position = [det.offset_x, det.offset_y, det.offset_z]
    distance = sensor[axis] + half[axis]
    position[axis] = -distance if negative else distance
    return tuple(position)


@dataclass
class QuickSimConfig:
    """Geometry and run parameters of the photon quick simulation."""

    sensor_dx: float = 0.2500  # half-sizes, N1816-PCBGBAC-E2
    sensor_dy: float = 0.0350
    sensor_dz: float = 0.00125
    detectors: list[Detector] = field(default_factory=list)
    pos_mode: int = 0  # 0: fixed X plane, 1: uniform in the volume
    debug_level: int = 0
    refl_prob: float | None = None
    n_ph_mean: float | None = None
    abs_length: float | None = None
    mirror: list[int] = field(default_factory=lambda: [0] * N_SIDES)
    geometry: GeometryManager | None = None

    def init_geometry(self, sensor: Sequence[float], detectors: Sequence[Detector]) -> None:
        """Set the sensor half-sizes and build the sensor-plus-detectors geometry."""
        sensor = [float(s) for s in sensor]
        if len(sensor) != 3 or min(sensor) <= 0:
            raise ValueError("sensor needs three positive half-sizes")
        detectors = list(detectors)
        if len(detectors) > MAX_DETECTORS:
            raise ValueError(f"at most {MAX_DETECTORS} detectors are supported")
        for det in detectors:
            if not 0 <= det.side < N_SIDES:
                raise ValueError(f"detector side {det.side} outside 0..{N_SIDES - 1}")

        self.sensor_dx, self.sensor_dy, self.sensor_dz = sensor
        self.detectors = detectors

        gm = GeometryManager("gaasqd", "gaasqd")
        air, gaas, ingaas = _make_media(gm)
        world = 2.0 * max(sensor)
        top = gm.make_box("TOP", air, world, world, world)
        gm.set_top_volume(top)
        crystal = gm.make_box("Sensor", gaas, *sensor)
        top.add_node(crystal, 1)
        for i, det in enumerate(detectors):
            vol = gm.make_box(f"Detector_{i}", ingaas, det.dx, det.dy, det.dz)
            top.add_node(vol, i + 2, _detector_position(sensor, det))
        gm.close_geometry()
        self.geometry = gm


def init_n1816() -> QuickSimConfig:
    """Sensor N1816-PCBGBAC-E2 with one photodiode on top."""
    qs = QuickSimConfig()
    det = Detector(
        dx=0.0025, dy=0.0150, dz=0.0020, side=5,
        offset_x=-0.2000, offset_y=0.0, offset_z=0.0, type=DetectorType.PHOTODIODE,
    )
    qs.init_geometry((0.2500, 0.0350, 0.00125), [det])
    return qs


def init_suny() -> QuickSimConfig:
    """Absorption-measurement sensor read out by a fiber with an air gap."""
    qs = QuickSimConfig()
    det = Detector(
        dx=0.0020, dy=0.0025, dz=0.00125, side=0,
        offset_x=-0.4000, offset_y=0.0, offset_z=0.0, type=DetectorType.FIBER,
    )
    qs.init_geometry((0.400, 0.0350, 0.00125), [det])
    qs.pos_mode = 1
    return qs


def validate_suny(debug_level: int = 0) -> QuickSimConfig:
    """Cross-check setup: a photodiode covering the whole left X face."""
    qs = QuickSimConfig()
    sensor = (0.400, 0.0350, 0.00125)
    det = Detector(
        dx=0.0025, dy=sensor[1], dz=sensor[2], side=0,
        offset_x=-0.4000, offset_y=0.0, offset_z=0.0, type=DetectorType.PHOTODIODE,
    )
    qs.init_geometry(sensor, [det])
    qs.pos_mode = 0
    qs.debug_level = debug_level
    qs.refl_prob = 1.0
    qs.n_ph_mean = -100.0
    qs.abs_length = -1.0
    return qs