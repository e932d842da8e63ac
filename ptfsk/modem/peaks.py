"""ptfsk: spectral peak extraction."""

import numpy as np
from numpy.typing import ArrayLike


def peak_bins(spectrum: ArrayLike, window_length: int, k: int = 8) -> list[tuple[float, int]]:
    """Rank positive-frequency bins by magnitude.

    Bins ``1 .. window_length//2 - 1`` are considered (bin 0 is DC).  Pairs
    are ordered by descending magnitude; equal magnitudes put the higher bin
    first, i.e. plain descending ``(magnitude, bin)`` tuple order.

    Returns:
        Up to *k* ``(magnitude, bin)`` pairs.
    """
    spectrum = np.asarray(spectrum)
    hi = window_length // 2
    if hi <= 1 or k <= 0:
        return []

    bins = np.arange(1, hi, dtype=np.intp)
    mags = np.abs(spectrum[1:hi])
    # lexsort: last key is primary; ascending, so read it backwards.
    order = np.lexsort((bins, mags))[::-1][:k]
    return [(float(mags[i]), int(bins[i])) for i in order]


def extract_peaks(spectrum: ArrayLike, window_length: int, sample_rate: float,
                  k: int = 8) -> list[float]:
    """Frequencies (Hz) of the *k* strongest bins, strongest first.

    Output length is ``min(k, window_length//2 - 1)``.  Neighbouring bins of
    one tone are not merged.
    """
    return [b * sample_rate / window_length
            for _, b in peak_bins(spectrum, window_length, k)]
