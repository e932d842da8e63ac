"""ptfsk: frequency → bit classification.

Each table position is resolved independently against every detected
frequency.  The closest candidate (low or high tone) wins, but only if it is
strictly closer than the tolerance; a position with no such candidate reads
as 0 and is flagged as undetected rather than failing the window.
"""

from typing import Iterable

from ..diagnostics import BitMatch, DecodedSymbol
from ..profiles import BitFrequencyTable, TOLERANCE_HZ


def classify(frequencies: Iterable[float], table: BitFrequencyTable,
             tolerance: float = TOLERANCE_HZ, samples: int = 0) -> DecodedSymbol:
    """Map detected frequencies to one symbol.

    Args:
        frequencies: Detected tones in Hz (order only matters for exact ties,
                     where the first one seen is kept).
        table:       Bit-frequency table; position 0 is the MSB.
        tolerance:   Maximum distance, exclusive, for a tone to count.
        samples:     Frames read for this window, carried for diagnostics.

    Returns:
        :class:`DecodedSymbol` with ``len(table)`` bit matches.
    """
    freqs = [float(f) for f in frequencies]
    width = len(table)
    value = 0
    bits: list[BitMatch] = []

    for position, (low, high) in enumerate(table):
        best    = tolerance
        bit     = 0
        matched = None
        for f in freqs:
            diff0 = abs(f - low)
            if diff0 < best:
                best, bit, matched = diff0, 0, f
            diff1 = abs(f - high)
            if diff1 < best:
                best, bit, matched = diff1, 1, f
        bits.append(BitMatch(position=position, frequency=matched, value=bit))
        value |= bit << (width - 1 - position)

    return DecodedSymbol(value=value, bits=bits, samples=samples)
