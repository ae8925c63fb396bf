[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xsecunfold"
version = "0.1.0"
description = "Systematic-universe covariance matrices, norm/shape decomposition and bin bookkeeping for neutrino cross-section measurements"
requires-python = ">=3.10"
keywords = ["physics", "covariance", "cross section", "systematics", "norm-shape"]
classifiers = [
    "Development Status :: 4 - Beta",
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
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["xsecunfold"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
