"""Covariance matrices and measured event counts built from systematic universes."""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from xsecunfold.systematics import (
    DETVAR_CV,
    DETVAR_CV_EXTRA,
    EXT_BNB,
    ON_BNB,
    detvar_reference_name,
)
from xsecunfold.universe import CovMatrix, Universe

_STAT_TYPES = ("MCstat", "BNBstat", "EXTstat")


@dataclass
class MeasuredEvents:
    """Background-subtracted data and CV predictions in the ordinary reco bins.

    All vectors are column vectors; ``cov_matrix`` is the total covariance
    matrix restricted to the ordinary reco bins.
    """

    reco_signal: np.ndarray
    reco_bkgd: np.ndarray
    reco_mc_plus_ext: np.ndarray
    cov_matrix: np.ndarray


class _Tokens:
    """Whitespace-separated tokens of a configuration, read one at a time."""

    def __init__(self, config_lines):
        if isinstance(config_lines, str):
            config_lines = config_lines.splitlines()
        self._tokens = [tok for line in config_lines for tok in line.split()]
        self._pos = 0

    def has(self, count):
        return self._pos + count <= len(self._tokens)

    def word(self, what):
        if not self.has(1):
            raise ValueError(f"Missing {what} in covariance matrix configuration")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def integer(self, what):
        token = self.word(what)
        try:
            return int(token)
        except ValueError:
            raise ValueError(f"Invalid {what} {token!r}") from None

    def number(self, what):
        token = self.word(what)
        try:
            return float(token)
        except ValueError:
            raise ValueError(f"Invalid {what} {token!r}") from None

    def flag(self, what):
        value = self.integer(what)
        if value not in (0, 1):
            raise ValueError(f"Invalid {what} {value!r}: expected 0 or 1")
        return bool(value)

    def definitions(self):
        """Yield ``(name, type)`` pairs until fewer than two tokens remain."""
        while self.has(2):
            name = self.word("matrix name")
            kind = self.word("matrix type")
            yield name, kind


def _observables(calc, univ, flux_universe_index=-1):
    size = calc.get_covariance_matrix_size()
    return np.array(
        [calc.evaluate_observable(univ, b, flux_universe_index) for b in range(size)]
    )


def make_cov_mat(
    calc, cv_univ, universes, average_over_universes=False, is_flux_variation=False
):
    """Covariance matrix from the spread of universes around a CV universe.

    ``universes`` may be a single Universe or a sequence of them. For flux
    variations each universe's position is passed on as the flux universe
    index.
    """
    if isinstance(universes, Universe):
        universes = [universes]
    universes = list(universes)

    size = calc.get_covariance_matrix_size()
    cv_obs = _observables(calc, cv_univ)
    cov = np.zeros((size, size))

    for u_idx, univ in enumerate(universes):
        flux_u_idx = u_idx if is_flux_variation else -1
        diff = cv_obs - _observables(calc, univ, flux_u_idx)
        cov += np.outer(diff, diff)

    if average_over_universes:
        if not universes:
            raise ValueError("Cannot average a covariance matrix over zero universes")
        cov /= len(universes)

    return CovMatrix(cov)


def _elementwise(size, func):
    return np.array([[func(a, b) for b in range(size)] for a in range(size)])


def _detvar_universe(calc, ntuple_type):
    try:
        return calc.detvar_universes[ntuple_type]
    except KeyError:
        raise ValueError(f"Invalid detector variation type {ntuple_type!r}") from None


def get_covariances(calc, config_lines) -> Dict[str, CovMatrix]:
    """Compute every covariance matrix defined in a systematics configuration.

    Each definition starts with a name and a type; the type decides which
    further tokens follow. Raises ValueError for unknown types, undefined
    sum terms, missing universes and duplicate names.
    """
    tokens = _Tokens(config_lines)
    size = calc.get_covariance_matrix_size()
    matrix_map: Dict[str, CovMatrix] = {}

    for name, kind in tokens.definitions():
        if kind == "sum":
            cov_mat = CovMatrix.zeros(size)
            count = tokens.integer("sum term count")
            for _ in range(count):
                term = tokens.word("sum term name")
                if term not in matrix_map:
                    raise ValueError(f"Undefined covariance matrix {term}")
                cov_mat += matrix_map[term]

        elif kind == "MCstat":
            cv_univ = calc.cv_universe()
            cov_mat = CovMatrix(
                _elementwise(
                    size,
                    lambda a, b: calc.evaluate_mc_stat_covariance(cv_univ, a, b),
                )
            )

        elif kind in ("BNBstat", "EXTstat"):
            use_ext = kind == "EXTstat"
            cov_mat = CovMatrix(
                _elementwise(
                    size,
                    lambda a, b: calc.evaluate_data_stat_covariance(a, b, use_ext),
                )
            )

        elif kind == "MCFullCorr":
            frac_unc = tokens.number("fractional uncertainty")
            cv_obs = _observables(calc, calc.cv_universe())
            cov_mat = CovMatrix(np.outer(cv_obs, cv_obs) * frac_unc**2)

        elif kind == "DV":
            ntuple_type = tokens.word("detector variation type")
            alt_univ = _detvar_universe(calc, ntuple_type)
            cv_univ = calc.reference_detvar_cv(ntuple_type)
            cov_mat = make_cov_mat(calc, cv_univ, alt_univ, False, False)

        elif kind in ("RW", "FluxRW"):
            weight_key = tokens.word("weight key")
            average = tokens.flag("averaging flag")
            if weight_key not in calc.rw_universes:
                raise ValueError(f"Missing weight key {weight_key}")
            cov_mat = make_cov_mat(
                calc,
                calc.cv_universe(),
                calc.rw_universes[weight_key],
                average,
                kind == "FluxRW",
            )

        elif kind == "AltUniv":
            cov_mat = make_cov_mat(
                calc,
                calc.cv_universe(),
                list(calc.alt_cv_universes.values()),
                True,
                False,
            )

        else:
            raise ValueError(f'Unrecognized covariance matrix type "{kind}"')

        if name in matrix_map:
            raise ValueError(f"Duplicate covariance matrix definition for {name}")
        matrix_map[name] = cov_mat

    return matrix_map


def get_measured_events(calc, config_lines):
    """Background-subtracted BNB data with the CV predictions and total covariance."""
    bkgd = calc.get_cv_ordinary_reco_bkgd()
    signal = calc.get_cv_ordinary_reco_signal()

    matrix_map = get_covariances(calc, config_lines)
    if "total" not in matrix_map:
        raise ValueError('Missing "total" covariance matrix definition')
    n_reco = calc.num_ordinary_reco_bins
    cov = matrix_map["total"].get_matrix()[:n_reco, :n_reco].copy()

    if ON_BNB not in calc.data_hists:
        raise ValueError(f"Missing data histogram for {ON_BNB}")
    data = calc.data_hists[ON_BNB][:n_reco].reshape(n_reco, 1)

    return MeasuredEvents(
        reco_signal=data - bkgd,
        reco_bkgd=bkgd,
        reco_mc_plus_ext=signal + bkgd,
        cov_matrix=cov,
    )


def _format_observables(calc, univ, flux_universe_index=-1):
    return "".join(
        f" {value:.17e}" for value in _observables(calc, univ, flux_universe_index)
    )


def dump_universe_observables(calc, config_lines, out_file_name):
    """Write the observables of the CV and all configured universes to a text file."""
    tokens = _Tokens(config_lines)
    parts = [
        f"numXbins {calc.get_covariance_matrix_size()}\n",
        "CV",
        _format_observables(calc, calc.cv_universe()),
        "\n",
        "detVarCV1",
        _format_observables(calc, _detvar_universe(calc, DETVAR_CV)),
        "\ndetVarCV2",
        _format_observables(calc, _detvar_universe(calc, DETVAR_CV_EXTRA)),
    ]

    for name, kind in tokens.definitions():
        if kind == "sum":
            count = tokens.integer("sum term count")
            for _ in range(count):
                tokens.word("sum term name")
        elif kind in _STAT_TYPES:
            continue
        elif kind == "MCFullCorr":
            tokens.number("fractional uncertainty")
        elif kind == "DV":
            ntuple_type = tokens.word("detector variation type")
            alt_univ = _detvar_universe(calc, ntuple_type)
            ref = "2" if detvar_reference_name(ntuple_type) == DETVAR_CV_EXTRA else "1"
            parts.append(f"\n{ntuple_type} detVarCV{ref} 1\n")
            parts.append(_format_observables(calc, alt_univ))
        elif kind in ("RW", "FluxRW"):
            weight_key = tokens.word("weight key")
            tokens.flag("averaging flag")
            if weight_key not in calc.rw_universes:
                raise ValueError(f"Missing weight key {weight_key}")
            univs = calc.rw_universes[weight_key]
            parts.append(f"\n{name} CV {len(univs)}")
            for u_idx, univ in enumerate(univs):
                flux_idx = u_idx if kind == "FluxRW" else -1
                parts.append("\n")
                parts.append(_format_observables(calc, univ, flux_idx))
        elif kind == "AltUniv":
            univs = list(calc.alt_cv_universes.values())
            parts.append(f"\n{name} CV {len(univs)}")
            for univ in univs:
                parts.append("\n")
                parts.append(_format_observables(calc, univ))
        else:
            raise ValueError(f'Unrecognized covariance matrix type "{kind}"')

    with open(out_file_name, "w", encoding="utf-8") as out_file:
        out_file.write("".join(parts))