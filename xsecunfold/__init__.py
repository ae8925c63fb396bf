"""Systematic universes, covariance matrices, norm/shape decomposition and bin definitions for binned cross-section measurements."""

__version__ = "0.1.0"