"""Physical constants, analysis cut values and volume checks."""

from enum import IntEnum

# Boundaries of the neutrino vertex fiducial volume (cm)
FV_X_MIN = 21.5
FV_X_MAX = 234.85
FV_Y_MIN = -95.0
FV_Y_MAX = 95.0
FV_Z_MIN = 21.5
FV_Z_MAX = 966.8

# Placeholder values
BOGUS = 9999.0
BOGUS_INT = 9999
BOGUS_INDEX = -1
LOW_FLOAT = -1e30
DEFAULT_WEIGHT = 1.0

# Values of the ccnc branch
CHARGED_CURRENT = 0
NEUTRAL_CURRENT = 1

# PDG codes
ELECTRON_NEUTRINO = 12
MUON = 13
MUON_NEUTRINO = 14
TAU_NEUTRINO = 16
PROTON = 2212
PI_ZERO = 111
PI_PLUS = 211

# Analysis cut parameters
DEFAULT_PROTON_PID_CUT = 0.2
LEAD_P_MIN_MOM_CUT = 0.250  # GeV/c
LEAD_P_MAX_MOM_CUT = 1.0  # GeV/c
MUON_P_MIN_MOM_CUT = 0.100  # GeV/c
MUON_P_MAX_MOM_CUT = 1.200  # GeV/c
CHARGED_PI_MOM_CUT = 0.0  # GeV/c
MUON_MOM_QUALITY_CUT = 0.25  # fractional difference
PROTON_MIN_MOM_CUT = 0.3  # GeV/c
PROTON_MAX_MOM_CUT = 1.0  # GeV/c
TOPO_SCORE_CUT = 0.1
COSMIC_IP_CUT = 10.0  # cm
MUON_TRACK_SCORE_CUT = 0.8
MUON_VTX_DISTANCE_CUT = 4.0  # cm
MUON_LENGTH_CUT = 10.0  # cm
MUON_PID_CUT = 0.2
TRACK_SCORE_CUT = 0.5

# Boundaries of the proton containment volume (reco only), cm
PCV_X_MIN = 10.0
PCV_X_MAX = 246.35
PCV_Y_MIN = -106.5
PCV_Y_MAX = 106.5
PCV_Z_MIN = 10.0
PCV_Z_MAX = 1026.8

# Masses (GeV)
TARGET_MASS = 37.215526  # 40Ar
NEUTRON_MASS = 0.93956541
PROTON_MASS = 0.93827208
MUON_MASS = 0.10565837
PI_PLUS_MASS = 0.13957000

# Shell-occupancy-weighted mean removal energy for 40Ar (GeV)
BINDING_ENERGY = 0.02478


class VarType(IntEnum):
    """Kinds of values stored in an ntuple branch."""

    STRING = 0
    DOUBLE = 1
    FLOAT = 2
    INTEGER = 3
    BOOL = 4
    TVECTOR = 5
    STD_VECTOR = 6


class STVCalcType(IntEnum):
    """Options for computing single-transverse variables."""

    OPT1 = 0
    OPT2 = 1
    OPT3 = 2
    OPT4 = 3


def _inside(value, low, high):
    return low < value < high


def in_fiducial_volume(x, y, z):
    """Return True if the point (cm) lies strictly inside the fiducial volume."""
    return (
        _inside(x, FV_X_MIN, FV_X_MAX)
        and _inside(y, FV_Y_MIN, FV_Y_MAX)
        and _inside(z, FV_Z_MIN, FV_Z_MAX)
    )


def in_proton_containment_volume(x, y, z):
    """Return True if the point (cm) lies strictly inside the proton containment volume."""
    return (
        _inside(x, PCV_X_MIN, PCV_X_MAX)
        and _inside(y, PCV_Y_MIN, PCV_Y_MAX)
        and _inside(z, PCV_Z_MIN, PCV_Z_MAX)
    )