[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gaasana"
version = "0.1.0"
description = "Waveform reconstruction, calibration and run-result analysis for GaAs scintillator test-stand data"
requires-python = ">=3.10"
keywords = [
    "physics",
    "oscilloscope",
    "waveform",
    "calibration",
    "detector",
    "gaas",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gaasana-ntuple = "gaasana.ntuple:main"

[tool.hatch.build.targets.wheel]
packages = ["gaasana"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
