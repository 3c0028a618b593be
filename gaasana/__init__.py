"""Analysis of GaAs scintillator test-stand waveforms, calibrations, run results and geometry."""

__version__ = "0.1.0"

__all__ = [
    "calib",
    "readout_channel",
    "header",
    "datablock",
    "ntuple",
    "run_results",
    "geometry",
]