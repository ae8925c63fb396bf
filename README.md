# xsecunfold

Building blocks for a binned neutrino cross-section measurement: systematic
universes, the covariance matrices built from them, background-subtracted
data, and the decomposition of a covariance matrix into normalisation, shape
and mixed pieces. Every matrix is a NumPy array.

## Modules

- `xsecunfold.constants`: fiducial-volume and proton-containment boundaries,
  particle codes, masses and cut values, the `VarType` and `STVCalcType`
  enumerations, and the checks `in_fiducial_volume(x, y, z)` and
  `in_proton_containment_volume(x, y, z)` (strictly inside, in cm).
- `xsecunfold.matrix_utils`: `invert_matrix(matrix, inversion_tolerance)`
  inverts a square matrix and raises `ValueError` if `matrix @ inverse`
  strays from the identity by more than the tolerance (default `1e-4`).
  `direct_sum(*matrices)` builds a block-diagonal matrix.
- `xsecunfold.bins`: `TrueBin` and `RecoBin` with the `TrueBinType`
  (`SIGNAL`, `BACKGROUND`) and `RecoBinType` (`ORDINARY`, `SIDEBAND`)
  enumerations. `read_block_definitions(stream)` parses a block definition
  file (a true bin count and `index block` pairs, then optionally the same for
  reco bins); `distinct_signal_blocks(true_bins)` returns the set of block
  indices used by signal bins.
- `xsecunfold.normshape`: `decompose_norm_shape(prediction, cov_matrix)`
  returns a `NormShapeCovMatrix` with `norm`, `shape`, `mixed` and
  `mixed_plus_shape`; `make_block_diagonal_norm_shape_covmat` decomposes each
  signal block on its own and assembles block-diagonal results.
- `xsecunfold.universe`: `Universe` holds the six histograms of one
  systematic universe (`hist_true`, `hist_reco`, `hist_2d`, `hist_categ`,
  `hist_reco2d`, `hist_true2d`) with their summed squared weights;
  `Universe.empty(...)` and `Universe.add(other, scale)` build sums.
  `CovMatrix` holds one covariance matrix and supports `+` and `+=`.
  `split_universe_key("weight_flux_3_2d")` gives `("weight_flux", 3)`.
- `xsecunfold.systematics`: `SystematicsCalculator` holds the CV universe,
  the bins, the data histograms (keys `ON_BNB` and `EXT_BNB`) and the
  reweightable, detector-variation and alternate-CV universes. The observable
  in each reco bin is the universe's reco count plus the EXT count. It gives
  the smearceptance matrix, the CV true signal, and the CV signal and
  background in the ordinary reco bins.
- `xsecunfold.covariances`: `get_covariances(calc, config_lines)` builds
  every matrix that a systematics configuration defines;
  `get_measured_events(calc, config_lines)` returns `MeasuredEvents` (data
  minus background, with the `total` covariance restricted to the ordinary
  reco bins); `make_cov_mat` computes a covariance from the spread of
  universes around a CV universe; `dump_universe_observables` writes the
  observables of the configured universes to a text file.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np
from xsecunfold.bins import RecoBin, RecoBinType, TrueBin, TrueBinType
from xsecunfold.covariances import get_covariances, get_measured_events
from xsecunfold.normshape import decompose_norm_shape
from xsecunfold.systematics import EXT_BNB, ON_BNB, SystematicsCalculator
from xsecunfold.universe import Universe

true_bins = [TrueBin("", TrueBinType.SIGNAL, 0), TrueBin("", TrueBinType.BACKGROUND, 0)]
reco_bins = [RecoBin("", RecoBinType.ORDINARY, 0), RecoBin("", RecoBinType.ORDINARY, 0)]

hist_reco = np.array([45.0, 15.0])
cv = Universe(
    name="CV",
    index=0,
    hist_true=np.array([80.0, 20.0]),
    hist_reco=hist_reco,
    hist_2d=np.array([[40.0, 10.0], [5.0, 5.0]]),
    hist_categ=np.zeros((1, 2)),
    hist_reco2d=np.diag(hist_reco),
    hist_true2d=np.zeros((2, 2)),
)

calc = SystematicsCalculator(
    cv, true_bins, reco_bins,
    {ON_BNB: [60.0, 22.0], EXT_BNB: [3.0, 4.0]},
)

config = ["mcstat MCstat", "bnbstat BNBstat", "total sum 2 mcstat bnbstat"]
matrices = get_covariances(calc, config)
total = matrices["total"].get_matrix()

measured = get_measured_events(calc, config)
parts = decompose_norm_shape(measured.reco_signal, measured.cov_matrix)
# parts.norm + parts.shape + parts.mixed equals measured.cov_matrix
```

## Systematics configuration

A configuration is a list of lines (or one string). Each definition names a
covariance matrix, gives its type, then the type's own fields:

```
detVarLYatten DV detVarLYatten
flux FluxRW weight_flux_all 1
xsec RW weight_All_UBGenie 1
mcstat MCstat
bnbstat BNBstat
extstat EXTstat
pot MCFullCorr 0.02
altcv AltUniv
total sum 4 flux xsec mcstat pot
```

- `sum N a b ...`: the sum of matrices already defined.
- `MCstat`, `BNBstat`, `EXTstat`: statistical covariances of the CV MC, the
  beam-on data and the EXT data.
- `MCFullCorr f`: a fully correlated fractional uncertainty `f` on the CV.
- `DV type`: a detector variation against its reference CV (`detVarCVExtra`
  for `detVarSCE` and `detVarRecomb2`, otherwise `detVarCV`).
- `RW key flag` and `FluxRW key flag`: the reweightable universes under
  `key`, averaged over universes when `flag` is 1.
- `AltUniv`: all alternate-CV universes, averaged.

An unknown type, an undefined sum term, a missing universe or a name defined
twice raises `ValueError`.

## What the package does not do

It does not read histogram files from disk or produce universes from event
ntuples: universes and data histograms are passed in as arrays. It contains
no unfolding algorithm, no plotting and no command-line program.