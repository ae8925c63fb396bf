"""True and reco bin definitions and block definition files."""

from dataclasses import dataclass
from enum import IntEnum


class TrueBinType(IntEnum):
    """Whether a true bin holds signal or background events."""

    SIGNAL = 0
    BACKGROUND = 1


class RecoBinType(IntEnum):
    """Whether a reco bin is an ordinary bin or a sideband bin."""

    ORDINARY = 0
    SIDEBAND = 1


@dataclass
class TrueBin:
    """A bin in true space."""

    selection_cut: str = ""
    bin_type: TrueBinType = TrueBinType.SIGNAL
    block_index: int = 0


@dataclass
class RecoBin:
    """A bin in reconstructed space."""

    selection_cut: str = ""
    bin_type: RecoBinType = RecoBinType.ORDINARY
    block_index: int = 0


def _read_pairs(tokens, count, what):
    pairs = []
    for _ in range(count):
        try:
            _index = int(next(tokens))
            block = int(next(tokens))
        except StopIteration:
            raise ValueError(f"Truncated {what} bin list in block definitions") from None
        pairs.append(block)
    return pairs


def _read_count(tokens, what):
    token = next(tokens)
    count = int(token)
    if count < 0:
        raise ValueError(f"Negative {what} bin count in block definitions")
    return count


def read_block_definitions(stream):
    """Parse a block definition file into lists of true and reco bins.

    The format is a true bin count followed by that many ``index block`` pairs,
    then optionally a reco bin count followed by its pairs. True bins are
    signal bins and reco bins are ordinary bins. Raises ValueError on
    malformed or truncated input.
    """
    tokens = iter(stream.read().split())

    try:
        num_true = _read_count(tokens, "true")
    except StopIteration:
        raise ValueError("Missing true bin count in block definitions") from None
    true_bins = [
        TrueBin("", TrueBinType.SIGNAL, block)
        for block in _read_pairs(tokens, num_true, "true")
    ]

    try:
        num_reco = _read_count(tokens, "reco")
    except StopIteration:
        return true_bins, []
    reco_bins = [
        RecoBin("", RecoBinType.ORDINARY, block)
        for block in _read_pairs(tokens, num_reco, "reco")
    ]
    return true_bins, reco_bins


def distinct_signal_blocks(true_bins):
    """Return the set of block indices used by signal true bins."""
    return {tb.block_index for tb in true_bins if tb.bin_type == TrueBinType.SIGNAL}