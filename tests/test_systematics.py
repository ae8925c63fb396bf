import numpy as np
import pytest

from xsecunfold.bins import RecoBin, RecoBinType, TrueBin, TrueBinType
from xsecunfold.systematics import (
    DETVAR_CV,
    DETVAR_CV_EXTRA,
    DETVAR_RECOMB2,
    DETVAR_SCE,
    EXT_BNB,
    ON_BNB,
    SystematicsCalculator,
    detvar_reference_name,
)
from xsecunfold.universe import Universe

HIST_2D = np.array([[4.0, 1.0, 0.0], [1.0, 5.0, 1.0], [2.0, 2.0, 3.0]])
HIST_TRUE = np.array([6.0, 8.0, 9.0])
EXT = np.array([1.0, 2.0, 3.0])
BNB = np.array([10.0, 12.0, 9.0])


def make_universe(name="unweighted", index=0, hist_true=HIST_TRUE, sumw2=None):
    hist_reco = HIST_2D.sum(axis=0)
    return Universe(
        name=name,
        index=index,
        hist_true=hist_true,
        hist_reco=hist_reco,
        hist_2d=HIST_2D,
        hist_categ=np.zeros((2, 3)),
        hist_reco2d=np.diag(hist_reco),
        hist_true2d=np.diag(hist_true),
        sumw2=sumw2 or {},
    )


def make_bins():
    true_bins = [
        TrueBin("", TrueBinType.SIGNAL, 0),
        TrueBin("", TrueBinType.SIGNAL, 0),
        TrueBin("", TrueBinType.BACKGROUND, 0),
    ]
    reco_bins = [
        RecoBin("", RecoBinType.ORDINARY, 0),
        RecoBin("", RecoBinType.ORDINARY, 0),
        RecoBin("", RecoBinType.SIDEBAND, 0),
    ]
    return true_bins, reco_bins


@pytest.fixture
def calc():
    true_bins, reco_bins = make_bins()
    return SystematicsCalculator(
        make_universe(),
        true_bins,
        reco_bins,
        {ON_BNB: BNB, EXT_BNB: EXT},
        detvar_universes={DETVAR_CV: make_universe("detvar", 0)},
    )


def test_bin_counts(calc):
    true_bins, reco_bins = make_bins()
    assert calc.get_covariance_matrix_size() == len(reco_bins)
    assert calc.get_num_signal_true_bins() == 2
    assert calc.num_ordinary_reco_bins == 2


def test_smearceptance_reproduces_reco_signal(calc):
    smearcept = calc.get_cv_smearceptance_matrix()
    assert smearcept.shape == (2, 2)
    predicted = smearcept @ calc.get_cv_true_signal()
    np.testing.assert_allclose(predicted, calc.get_cv_ordinary_reco_signal())


def test_zero_denominator_gives_zero_column():
    true_bins, reco_bins = make_bins()
    univ = make_universe(hist_true=np.array([0.0, 8.0, 9.0]))
    c = SystematicsCalculator(univ, true_bins, reco_bins, {ON_BNB: BNB, EXT_BNB: EXT})
    smearcept = c.get_smearceptance_matrix(univ)
    np.testing.assert_array_equal(smearcept[:, 0], np.zeros(2))
    assert np.all(smearcept[:, 1] > 0)


def test_cv_true_signal_is_column(calc):
    signal = calc.get_cv_true_signal()
    assert signal.shape == (2, 1)
    np.testing.assert_array_equal(signal[:, 0], HIST_TRUE[:2])


def test_background_includes_ext_and_background_true_bins(calc):
    bkgd = calc.get_cv_ordinary_reco_bkgd()
    np.testing.assert_allclose(bkgd[:, 0], EXT[:2] + HIST_2D[2, :2])


def test_signal_plus_background_is_total_prediction(calc):
    total = calc.get_cv_ordinary_reco_bkgd() + calc.get_cv_ordinary_reco_signal()
    np.testing.assert_allclose(total[:, 0], EXT[:2] + HIST_2D[:, :2].sum(axis=0))


def test_evaluate_observable_matches_reco_plus_ext(calc):
    cv = calc.cv_universe()
    values = [calc.evaluate_observable(cv, b) for b in range(3)]
    np.testing.assert_allclose(values, cv.hist_reco + EXT)
    assert calc.evaluate_observable(cv, 1, 0) == values[1]


def test_evaluate_observable_out_of_range(calc):
    with pytest.raises(IndexError):
        calc.evaluate_observable(calc.cv_universe(), 3)


def test_mc_stat_covariance_uses_sumw2():
    true_bins, reco_bins = make_bins()
    w2 = np.array([0.5, 0.25, 2.0])
    univ = make_universe(sumw2={"hist_reco": w2})
    c = SystematicsCalculator(univ, true_bins, reco_bins, {ON_BNB: BNB, EXT_BNB: EXT})
    diag = [c.evaluate_mc_stat_covariance(univ, b, b) for b in range(3)]
    np.testing.assert_allclose(diag, w2)
    assert c.evaluate_mc_stat_covariance(univ, 0, 1) == 0.0


def test_data_stat_covariance_defaults_to_counts(calc):
    bnb = [calc.evaluate_data_stat_covariance(b, b, False) for b in range(3)]
    ext = [calc.evaluate_data_stat_covariance(b, b, True) for b in range(3)]
    np.testing.assert_allclose(bnb, BNB)
    np.testing.assert_allclose(ext, EXT)
    assert calc.evaluate_data_stat_covariance(0, 2, False) == 0.0


def test_missing_ext_histogram_raises():
    true_bins, reco_bins = make_bins()
    c = SystematicsCalculator(make_universe(), true_bins, reco_bins, {ON_BNB: BNB})
    with pytest.raises(ValueError):
        c.get_cv_ordinary_reco_bkgd()


def test_is_detvar_universe_is_identity_based(calc):
    stored = calc.detvar_universes[DETVAR_CV]
    assert calc.is_detvar_universe(stored) is True
    assert calc.is_detvar_universe(make_universe("detvar", 0)) is False


def test_detvar_reference_names():
    assert detvar_reference_name(DETVAR_SCE) == DETVAR_CV_EXTRA
    assert detvar_reference_name(DETVAR_RECOMB2) == DETVAR_CV_EXTRA
    assert detvar_reference_name("detVarLYAttenuation") == DETVAR_CV


def test_rw_universe_index_mismatch_raises():
    true_bins, reco_bins = make_bins()
    with pytest.raises(ValueError):
        SystematicsCalculator(
            make_universe(),
            true_bins,
            reco_bins,
            {ON_BNB: BNB, EXT_BNB: EXT},
            rw_universes={"weight_flux": [make_universe("weight_flux", 1)]},
        )


def test_bin_count_mismatch_raises():
    true_bins, reco_bins = make_bins()
    with pytest.raises(ValueError):
        SystematicsCalculator(
            make_universe(), true_bins[:2], reco_bins, {ON_BNB: BNB, EXT_BNB: EXT}
        )