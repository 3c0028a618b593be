"""Per-run fit summaries of the reconstructed charge, pulse height and pedestal."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping

import numpy as np
from scipy.optimize import curve_fit

MIN_FIT_ENTRIES = 10
_NO_FIT_VALUE = -0.1
_NO_FIT_ERROR = -1.0

# (attribute, histogram name, rebin factor)
_FIT_SPECS = (
    ("q1_300", "chn_300/q1_0", 5),
    ("v2_300", "chn_300/v2max", 5),
    ("q1_400", "chn_400/q1_0", 5),
    ("v2_400", "chn_400/v2max", 5),
    ("ped_300", "chn_300/ped_1", 1),
    ("ped_400", "chn_400/ped_1", 1),
)
_MEAN_SPECS = (
    ("fit_sigm_300", "chn_300/sigped_0"),
    ("fit_sigm_400", "chn_400/sigped_0"),
)


@dataclass
class GaussFitResults:
    """Result of a Gaussian fit to one histogram."""

    n_events: int = 0
    mean: float = 0.0
    mean_err: float = 0.0
    sigm: float = 0.0
    sigm_err: float = 0.0


@dataclass
class RunResults:
    """Fit summaries of one run for the low (300) and high (400) amplitude pulses."""

    run_number: int = 0
    dx: float = 0.0  # horizontal source offset with respect to the photodiode
    dz: float = 0.0
    time: float = 0.0  # data acquisition time
    q1_300: GaussFitResults = field(default_factory=GaussFitResults)
    v2_300: GaussFitResults = field(default_factory=GaussFitResults)
    q1_400: GaussFitResults = field(default_factory=GaussFitResults)
    v2_400: GaussFitResults = field(default_factory=GaussFitResults)
    ped_300: GaussFitResults = field(default_factory=GaussFitResults)
    ped_400: GaussFitResults = field(default_factory=GaussFitResults)
    fit_sigm_300: tuple[float, float] = (0.0, 0.0)
    fit_sigm_400: tuple[float, float] = (0.0, 0.0)


@dataclass
class ChannelFitResults:
    """Fit results of one channel: value, its error, width and the width's error."""

    number: int = 0
    n: float = 0.0
    q1: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    v2max: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)


@dataclass
class GaasRunResults:
    """Compact run summary."""

    run_number: int = 0
    dx: float = 0.0
    dz: float = 0.0
    chn_300: float = 0.0  # low-amplitude pulses
    chn_400: float = 0.0  # high-amplitude pulses


class Histogram:
    """Fixed-width 1D histogram; bin 0 is underflow and bin n_bins+1 overflow."""

    def __init__(self, n_bins: int, x_min: float, x_max: float, name: str = "") -> None:
        if n_bins < 1:
            raise ValueError(f"number of bins must be positive, got {n_bins}")
        if not x_max > x_min:
            raise ValueError(f"empty axis range {x_min}..{x_max}")
        self.name = name
        self.n_bins = n_bins
        self.x_min = float(x_min)
        self.x_max = float(x_max)
        self.contents = np.zeros(n_bins + 2)
        self.entries = 0
        self._sumw = 0.0
        self._sumwx = 0.0
        self._sumwx2 = 0.0

    @property
    def bin_width(self) -> float:
        return (self.x_max - self.x_min) / self.n_bins

    @property
    def centers(self) -> np.ndarray:
        return self.x_min + (np.arange(self.n_bins) + 0.5) * self.bin_width

    def find_bin(self, x: float) -> int:
        if x < self.x_min:
            return 0
        if x >= self.x_max:
            return self.n_bins + 1
        return min(1 + int((x - self.x_min) / self.bin_width), self.n_bins)

    def content(self, bin_number: int) -> float:
        return float(self.contents[bin_number])

    def set_content(self, bin_number: int, value: float) -> None:
        self.contents[bin_number] = value

    def fill(self, x: float, weight: float = 1.0) -> int:
        """Add one entry; under- and overflows do not enter the statistics."""
        b = self.find_bin(x)
        self.contents[b] += weight
        self.entries += 1
        if 1 <= b <= self.n_bins:
            self._sumw += weight
            self._sumwx += weight * x
            self._sumwx2 += weight * x * x
        return b

    def rebin(self, factor: int) -> "Histogram":
        """Return a copy with `factor` adjacent bins merged; leftover bins go to overflow."""
        if factor < 1:
            raise ValueError(f"rebin factor must be positive, got {factor}")
        new_n = self.n_bins // factor
        if new_n == 0:
            raise ValueError(f"cannot merge {self.n_bins} bins by {factor}")
        merged = Histogram(
            new_n, self.x_min, self.x_min + new_n * factor * self.bin_width, self.name
        )
        merged.contents[0] = self.contents[0]
        merged.contents[1:new_n + 1] = (
            self.contents[1:new_n * factor + 1].reshape(new_n, factor).sum(axis=1)
        )
        merged.contents[new_n + 1] = self.contents[new_n * factor + 1:].sum()
        merged.entries = self.entries
        merged._sumw, merged._sumwx, merged._sumwx2 = self._sumw, self._sumwx, self._sumwx2
        return merged

    def mean(self) -> float:
        return self._sumwx / self._sumw if self._sumw else 0.0

    def std_dev(self) -> float:
        if not self._sumw:
            return 0.0
        m = self.mean()
        return math.sqrt(max(self._sumwx2 / self._sumw - m * m, 0.0))

    def integral(self, first_bin: int = 1, last_bin: int | None = None) -> float:
        """Sum of bin contents over an inclusive bin range (default: all regular bins)."""
        if last_bin is None:
            last_bin = self.n_bins
        first_bin = max(first_bin, 0)
        if last_bin > self.n_bins + 1 or last_bin < first_bin:
            last_bin = self.n_bins + 1
        return float(self.contents[first_bin:last_bin + 1].sum())


def _gauss(x, amplitude, mean, sigma):
    return amplitude * np.exp(-0.5 * ((x - mean) / sigma) ** 2)


def _fit_gaussian(hist: Histogram) -> tuple[np.ndarray, np.ndarray]:
    y = hist.contents[1:-1]
    mask = y > 0
    if np.count_nonzero(mask) < 3:
        raise ValueError(f"too few populated bins to fit histogram {hist.name!r}")
    x = hist.centers[mask]
    y = y[mask]
    p0 = [y.max(), hist.mean(), hist.std_dev() or hist.bin_width]
    try:
        popt, pcov = curve_fit(
            _gauss, x, y, p0=p0, sigma=np.sqrt(y), absolute_sigma=True, maxfev=10000
        )
    except RuntimeError as exc:
        raise ValueError(f"gaussian fit of {hist.name!r} failed: {exc}") from exc
    return popt, np.sqrt(np.abs(np.diag(pcov)))


def fit_gauss_results(hist: Histogram, rebin_factor: int = 1) -> GaussFitResults:
    """Fit a Gaussian; histograms with at most ten entries get the 'no fit' markers."""
    n_events = int(hist.entries)
    if n_events <= MIN_FIT_ENTRIES:
        return GaussFitResults(
            n_events, _NO_FIT_VALUE, _NO_FIT_ERROR, _NO_FIT_VALUE, _NO_FIT_ERROR
        )
    fitted = hist.rebin(rebin_factor) if rebin_factor != 1 else hist
    popt, errors = _fit_gaussian(fitted)
    return GaussFitResults(
        n_events=n_events,
        mean=float(popt[1]),
        mean_err=float(errors[1]),
        sigm=abs(float(popt[2])),
        sigm_err=float(errors[2]),
    )


def hist_mean(hist: Histogram) -> tuple[float, float]:
    """Mean and its (entries-scaled) spread; (-1, -1) for an empty histogram."""
    n = int(hist.entries)
    if n > 0:
        return hist.mean(), hist.std_dev() / (n + 1.0e-12)
    return -1.0, -1.0


def make_run_results(run_number: int, histograms: Mapping[str, Histogram]) -> RunResults:
    """Fit the reconstruction histograms of one run."""

    def lookup(name: str) -> Histogram:
        try:
            return histograms[name]
        except KeyError:
            raise KeyError(f"histogram {name!r} missing for run {run_number}") from None

    results = RunResults(run_number=run_number, dx=-1.0, dz=-1.0, time=-1.0)
    for attr, name, rebin in _FIT_SPECS:
        setattr(results, attr, fit_gauss_results(lookup(name), rebin))
    for attr, name in _MEAN_SPECS:
        setattr(results, attr, hist_mean(lookup(name)))
    return results


def _fit_fields(r: GaussFitResults) -> tuple:
    return (r.n_events, r.mean, r.mean_err, r.sigm, r.sigm_err)


def format_run_results(results: RunResults) -> str:
    """One summary line per run."""
    pair = "%6d %6.3f %6.3f %6.3f %6.3f %6d %6.3f %6.3f %6.3f %6.3f"
    parts = [
        "%6d" % results.run_number,
        pair % (*_fit_fields(results.q1_300), *_fit_fields(results.v2_300)),
        pair % (*_fit_fields(results.q1_400), *_fit_fields(results.v2_400)),
        "             " + " ".join(["%6.3f"] * 8) % (
            *_fit_fields(results.ped_300)[1:],
            *_fit_fields(results.ped_400)[1:],
        ),
        "%6.3f %6.3f" % (results.fit_sigm_300[0], results.fit_sigm_400[0]),
    ]
    return "".join(parts) + "\n"


def reference_run_139() -> RunResults:
    """Hand-entered results of run 139 (pedestals and widths in mV)."""
    return RunResults(
        run_number=139,
        dx=0.0,
        dz=0.0,
        time=1007.0,
        q1_300=GaussFitResults(n_events=1499, mean=10.7, mean_err=0.04),
        v2_300=GaussFitResults(n_events=1499, mean=0.19, mean_err=0.0004),
        q1_400=GaussFitResults(n_events=228, mean=9.34, mean_err=0.16),
        v2_400=GaussFitResults(n_events=228, mean=0.35, mean_err=0.005),
        ped_300=GaussFitResults(n_events=1499, mean=-0.31, sigm=1.06),
        ped_400=GaussFitResults(n_events=228, mean=-0.23, sigm=1.16),
        fit_sigm_300=(2.56, 0.0),
        fit_sigm_400=(2.64, 0.0),
    )


def overlay_difference(
    h400: Histogram, h300: Histogram, first_bin: int, last_bin: int
) -> tuple[float, Histogram]:
    """Normalize h300 to h400 over a bin range and return (factor, h400 - factor*h300)."""
    if h400.n_bins != h300.n_bins:
        raise ValueError("histograms have different binning")
    denominator = h300.integral(first_bin, last_bin)
    if denominator == 0:
        raise ValueError(f"h300 is empty in bins {first_bin}..{last_bin}")
    anorm = h400.integral(first_bin, last_bin) / denominator
    diff = Histogram(h400.n_bins, h400.x_min, h400.x_max, name="h1")
    diff.contents[1:-1] = h400.contents[1:-1] - h300.contents[1:-1] * anorm
    return anorm, diff