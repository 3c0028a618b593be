"""Reconstructed waveform data of one readout channel."""

from __future__ import annotations

import math

_RULE = "-" * 109
_HEADER = (
    " ChID   NS Used     fQ      fQ1      Np1 fPed      sigP      fV1Max  fI1Max"
    "   fT0     fVMinP1   fVMaxP1   fVMinP2   fVMaxP2"
)
_ROW = (
    " %4d %4d    %1d %8.3f %8.3f %4d %9.6f %9.5f %9.5f  %5d  %7.3f"
    " %9.5f %9.5f %9.5f %9.5f"
)
_N_PAR = 100


class ReadoutChannel:
    """Waveform samples and reconstruction results of one channel."""

    def __init__(self, channel_id: int | None = None, n_samples: int | None = None) -> None:
        self.used = 1
        self.t: list[float] = []
        self.v0: list[float] = []
        self.v1: list[float] = []  # pedestal subtracted
        self.v2: list[float] = []  # pedestal subtracted and gain corrected
        self.q = -999.0
        self.q1 = -999.0
        self.pedestal = -999.0
        self.npt_ped = -1
        self.chi2_ped = -999.0
        self.v0_max = -999.0
        self.i0_max = -1
        self.v1_max = -999.0
        self.i1_max = -1
        self.v2_max = 0.0
        self.t0 = -999.0
        self.le_slope = 0.0
        self.te_slope = 0.0
        self.width = 0.0
        self.sampling_time = 0.0
        self.par = [0.0] * _N_PAR
        self.histograms: dict[str, list[float]] = {}

        if channel_id is None:
            self.id = -1
            self.n_samples = -1
            return

        if n_samples is None:
            raise ValueError("n_samples is required together with channel_id")
        self.id = channel_id
        self.set_n_samples(n_samples)
        for prefix in ("v0", "v1", "sh"):
            self.histograms[f"{prefix}_{channel_id:02d}"] = [0.0] * self.n_samples

    def set_n_samples(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"negative number of samples: {n}")
        self.n_samples = n

    def clear(self) -> None:
        """Drop the waveform samples of the previous event."""
        for samples in (self.t, self.v0, self.v1, self.v2):
            samples.clear()

    def _pedestal_sigma(self) -> float:
        n = self.npt_ped
        if n == 0:
            return math.nan
        value = self.chi2_ped * (n - 1) / n
        return math.sqrt(value) if value >= 0 else math.nan

    def format(self) -> str:
        """Return the printable summary table of this channel."""
        row = _ROW % (
            self.id,
            self.n_samples,
            self.used,
            self.q * 1e3,
            self.q1 * 1e3,
            self.npt_ped,
            self.pedestal * 1e3,
            self._pedestal_sigma() * 1e3,
            self.v1_max * 1e3,
            self.i1_max,
            self.t0,
            self.par[0] * 1e3,
            self.par[1] * 1e3,
            self.par[2] * 1e3,
            self.par[3] * 1e3,
        )
        return "\n".join([_RULE, _HEADER, _RULE, row]) + "\n"

    def __str__(self) -> str:
        return self.format()