"""Systematic universes and reco-space predictions built from them."""

from typing import Dict, List, Mapping, Optional

import numpy as np

from xsecunfold.bins import RecoBinType, TrueBinType

# Keys for the two kinds of measured data histograms
ON_BNB = "onBNB"
EXT_BNB = "extBNB"

# Names of the detector-variation universes with special roles
DETVAR_CV = "detVarCV"
DETVAR_CV_EXTRA = "detVarCVExtra"
DETVAR_SCE = "detVarSCE"
DETVAR_RECOMB2 = "detVarRecomb2"

# Fake data are stored in a single universe with this name
FAKE_DATA_UNIVERSE_NAME = "FakeDataMC"


def detvar_reference_name(detvar_name):
    """Return the name of the CV universe that a detector variation is compared to.

    The SCE and Recomb2 variations were generated with smaller MC statistics
    and use the "extra" CV sample.
    """
    if detvar_name in (DETVAR_SCE, DETVAR_RECOMB2):
        return DETVAR_CV_EXTRA
    return DETVAR_CV


class SystematicsCalculator:
    """Holds the CV and systematic universes and the measured data histograms.

    The reco-space observable in each covariance matrix bin is the expected
    event count: the MC reco count in the universe plus the EXT (beam-off)
    count. All signal true bins are assumed to be listed before background
    ones, and all ordinary reco bins before sideband ones.
    """

    def __init__(
        self,
        cv_universe,
        true_bins,
        reco_bins,
        data_hists,
        *,
        data_variances=None,
        rw_universes=None,
        detvar_universes=None,
        alt_cv_universes=None,
        fake_data_universe=None,
        total_bnb_data_pot=0.0,
    ):
        self._cv_universe = cv_universe
        self.true_bins = list(true_bins)
        self.reco_bins = list(reco_bins)

        if cv_universe.num_true_bins != len(self.true_bins):
            raise ValueError("True bin count mismatch between CV universe and bins")
        if cv_universe.num_reco_bins != len(self.reco_bins):
            raise ValueError("Reco bin count mismatch between CV universe and bins")

        self.data_hists: Dict[str, np.ndarray] = {}
        for key, hist in data_hists.items():
            arr = np.array(hist, dtype=float)
            if arr.shape != (len(self.reco_bins),):
                raise ValueError(f"Data histogram {key!r} has the wrong number of bins")
            self.data_hists[key] = arr

        self.data_variances: Dict[str, np.ndarray] = {}
        for key, hist in self.data_hists.items():
            if data_variances is not None and key in data_variances:
                var = np.array(data_variances[key], dtype=float)
                if var.shape != hist.shape:
                    raise ValueError(f"Variance shape mismatch for data histogram {key!r}")
            else:
                var = np.maximum(hist, 0.0)
            self.data_variances[key] = var

        self.rw_universes: Dict[str, List] = {
            name: list(univs) for name, univs in (rw_universes or {}).items()
        }
        for name, univs in self.rw_universes.items():
            for position, univ in enumerate(univs):
                if univ.index != position:
                    raise ValueError(f"Universe index mismatch for {name!r} universes")

        self.detvar_universes: Dict[str, object] = dict(detvar_universes or {})
        self.alt_cv_universes: Dict[str, object] = dict(alt_cv_universes or {})
        self.fake_data_universe = fake_data_universe
        self.total_bnb_data_pot = float(total_bnb_data_pot)

        self.num_signal_true_bins = sum(
            1 for tb in self.true_bins if tb.bin_type == TrueBinType.SIGNAL
        )
        self.num_ordinary_reco_bins = sum(
            1 for rb in self.reco_bins if rb.bin_type == RecoBinType.ORDINARY
        )

    # ------------------------------------------------------------------
    def _data_hist(self, key):
        try:
            return self.data_hists[key]
        except KeyError:
            raise ValueError(f"Missing data histogram for {key}") from None

    def _check_cm_bin(self, cm_bin):
        size = self.get_covariance_matrix_size()
        if not 0 <= cm_bin < size:
            raise IndexError(f"Covariance matrix bin {cm_bin} out of range [0, {size})")

    # ------------------------------------------------------------------
    def cv_universe(self):
        """Return the central-value universe."""
        return self._cv_universe

    def get_covariance_matrix_size(self):
        """Number of bins used in covariance matrices (all reco bins)."""
        return len(self.reco_bins)

    def get_num_signal_true_bins(self):
        """Number of signal true bins."""
        return self.num_signal_true_bins

    def evaluate_observable(self, univ, cm_bin, flux_universe_index=-1):
        """Expected event count in a reco bin for the given universe.

        ``flux_universe_index`` marks flux variations; it does not change an
        event-count observable, but must be -1 or a valid universe index.
        """
        self._check_cm_bin(cm_bin)
        if flux_universe_index < -1:
            raise ValueError("Flux universe index must be -1 or nonnegative")
        ext = self._data_hist(EXT_BNB)
        return float(univ.hist_reco[cm_bin] + ext[cm_bin])

    def evaluate_mc_stat_covariance(self, univ, cm_bin1, cm_bin2):
        """MC statistical covariance between two reco bins in a universe."""
        self._check_cm_bin(cm_bin1)
        self._check_cm_bin(cm_bin2)
        if cm_bin1 == cm_bin2:
            return float(univ.sumw2["hist_reco"][cm_bin1])
        return float(univ.sumw2["hist_reco2d"][cm_bin1, cm_bin2])

    def evaluate_data_stat_covariance(self, cm_bin1, cm_bin2, use_ext):
        """Statistical covariance of the BNB (or EXT) data between two reco bins."""
        self._check_cm_bin(cm_bin1)
        self._check_cm_bin(cm_bin2)
        key = EXT_BNB if use_ext else ON_BNB
        self._data_hist(key)
        if cm_bin1 != cm_bin2:
            return 0.0
        return float(self.data_variances[key][cm_bin1])

    # ------------------------------------------------------------------
    def is_detvar_universe(self, univ):
        """Return True if ``univ`` is one of the owned detector-variation universes."""
        return any(stored is univ for stored in self.detvar_universes.values())

    def get_smearceptance_matrix(self, univ):
        """Reco-by-true smearceptance matrix for the ordinary reco and signal true bins.

        Elements whose true-bin denominator is zero are set to zero.
        """
        n_reco = self.num_ordinary_reco_bins
        n_true = self.num_signal_true_bins
        numer = univ.hist_2d[:n_true, :n_reco].T
        denom = univ.hist_true[:n_true]
        result = np.zeros((n_reco, n_true))
        nonzero = denom != 0.0
        result[:, nonzero] = numer[:, nonzero] / denom[nonzero]
        return result

    def get_cv_smearceptance_matrix(self):
        """Smearceptance matrix in the CV universe."""
        return self.get_smearceptance_matrix(self._cv_universe)

    def get_cv_true_signal(self):
        """Column vector of CV event counts in each signal true bin."""
        n_true = self.num_signal_true_bins
        return self._cv_universe.hist_true[:n_true].reshape(n_true, 1).copy()

    def _cv_ordinary_reco(self):
        cv = self._cv_universe
        n_reco = self.num_ordinary_reco_bins
        ext = self._data_hist(EXT_BNB)
        bkgd = ext[:n_reco].copy()
        signal = np.zeros(n_reco)
        for t, tbin in enumerate(self.true_bins):
            if tbin.bin_type == TrueBinType.BACKGROUND:
                bkgd += cv.hist_2d[t, :n_reco]
            elif tbin.bin_type == TrueBinType.SIGNAL:
                signal += cv.hist_2d[t, :n_reco]
            else:
                raise ValueError("Bad true bin type in CV reco prediction")
        return bkgd.reshape(n_reco, 1), signal.reshape(n_reco, 1)

    def get_cv_ordinary_reco_bkgd(self):
        """Column vector of EXT plus CV MC background in each ordinary reco bin."""
        return self._cv_ordinary_reco()[0]

    def get_cv_ordinary_reco_signal(self):
        """Column vector of CV MC signal in each ordinary reco bin."""
        return self._cv_ordinary_reco()[1]

    def universes_by_name(self) -> Mapping[str, List]:
        """The reweightable universes grouped by name."""
        return self.rw_universes

    def reference_detvar_cv(self, detvar_name) -> Optional[object]:
        """Return the detector-variation CV universe used with ``detvar_name``."""
        reference = detvar_reference_name(detvar_name)
        try:
            return self.detvar_universes[reference]
        except KeyError:
            raise ValueError(f"Missing detector-variation universe {reference}") from None