# gaasana

Tools for analysing data from a GaAs scintillator test stand: oscilloscope
waveforms, per-channel calibration tables, reconstructed pulse quantities,
per-run fit summaries and the sensor/detector geometry of the photon quick
simulation.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install .[test]
pytest
```

## What is inside

- `gaasana.calib`: readout-map calibration tables. `CalibManager` keeps the
  calibration run ranges (`add_run_range`, `get_run_range`), and
  `CalibData.init(run_number, manager)` loads the `CalibChannel` entries valid
  for a run, re-reading the table only when the run range changes. A table can
  also be parsed on its own with `parse_readout_map(lines)`; lines starting
  with `#` are comments, and sampling times given in picoseconds are stored in
  seconds. Problems raise `CalibError`.
- `gaasana.readout_channel`: `ReadoutChannel`, which holds the samples and
  reconstructed pulse quantities of one channel (charge, pedestal, maxima,
  T0, slopes, width) and prints a summary table with `format()`.
- `gaasana.header`: `HeaderBlock`, the event header (run start/end times and
  event timestamp), with big-endian serialisation through `to_bytes()` /
  `HeaderBlock.from_bytes()`. Versions 1 and 2 of the format are read as well.
- `gaasana.datablock`: `DataBlock`, the waveforms of all scope channels of an
  event, with `to_bytes()` / `DataBlock.from_bytes()` (version 1 blocks get
  channel IDs 0, 1, 2, ...) and `DataBlock.from_scope_event(event)` to build
  one from a raw `ScopeEvent`. Decoding errors raise `SerializationError`.
- `gaasana.ntuple`: turns directories of scope CSV files into
  `WaveformEvent` records, each with a baseline, its spread and a pulse
  height (`events_from_single_channel_dir`, `events_from_multi_channel_dir`,
  `baseline`, `pulse_height`), and stores them with `write_events` as a
  compressed numpy `.npz` file.
- `gaasana.run_results`: a small fixed-width `Histogram` type, Gaussian fits
  (`fit_gauss_results`, `hist_mean`), per-run summaries (`make_run_results`,
  `format_run_results`, `reference_run_139`) and the normalised difference of
  two waveform profiles (`overlay_difference`).
- `gaasana.geometry`: sensor and detector geometry (`GeometryManager`,
  `Box`, `Mixture`, `Medium`, `Element`), `TrajectoryPoint`, and the
  quick-simulation set-ups `init_n1816()`, `init_suny()` and
  `validate_suny(debug_level)`, each returning a `QuickSimConfig`.

## Example

```python
from gaasana.run_results import Histogram, fit_gauss_results

h = Histogram(100, 0.0, 20.0, name="q1")
for x in samples:          # your charge values
    h.fill(x)
fit = fit_gauss_results(h, rebin_factor=5)
print(fit.mean, fit.mean_err, fit.sigm)
```

## Converting scope files

The `gaasana-ntuple` command reads a directory of scope CSV files and writes
the events found in it, with baseline and pulse height filled in:

```
gaasana-ntuple DIRECTORY                  # one 'time,amplitude' file per event -> aaa.npz
gaasana-ntuple DIRECTORY --run 123        # fourteen amplitude columns per file -> gaasqd.000123.npz
gaasana-ntuple DIRECTORY --run 123 -o out.npz
```

## What the package does not do

It draws no plots and holds no tables of scan campaigns; the run summaries
and histograms it produces are left for the user to plot. It does not run
the photon tracing of the quick simulation either: `gaasana.geometry` only
builds the geometry and parameters such a simulation would use. Event files
are written as numpy `.npz` archives, not in any other storage format.